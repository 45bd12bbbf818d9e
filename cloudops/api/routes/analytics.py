"""Analytics API routes."""

from datetime import datetime

from fastapi import APIRouter, Depends, Path, Query

from cloudops.api.dependencies import get_analytics_service
from cloudops.api.services.analytics_service import AnalyticsService
from cloudops.schemas.analytics import (
    CollectMetricsResponse,
    MetricHistoryResponse,
    MetricService,
    MetricTrendsResponse,
)

router = APIRouter(
    prefix="/api/v1/analytics/{user_id}",
    tags=["analytics"],
)


@router.post("/collect", response_model=CollectMetricsResponse)
async def collect_metrics(
    user_id: str = Path(..., min_length=1),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Collect and store aggregate metrics from current inventory."""
    return await service.collect_and_store_metrics(user_id)


@router.get("/metrics/history", response_model=MetricHistoryResponse)
async def get_metric_history(
    user_id: str = Path(..., min_length=1),
    service_name: MetricService | None = Query(default=None, alias="service"),
    metric: str | None = Query(default=None),
    time_range: str | None = Query(default="24h", alias="timeRange"),
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Get stored metric samples for a time range.

    Args:
        service: Filter by service (EC2, S3, RDS, Lambda, EBS)
        metric: Filter by metric name
        timeRange: 1h, 24h, 7d, 30d, 90d or custom
        startDate: Window start, required for custom
        endDate: Window end, required for custom
    """
    data = service.get_metric_history(
        user_id,
        service=service_name,
        metric=metric,
        time_range=time_range,
        start=start_date,
        end=end_date,
    )
    return MetricHistoryResponse(count=len(data), data=data)


@router.get("/metrics/trends", response_model=MetricTrendsResponse)
async def get_metric_trends(
    user_id: str = Path(..., min_length=1),
    service_name: str | None = Query(default=None, alias="service"),
    metric: str | None = Query(default=None),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Compare this week and month to the previous week and month."""
    trends = service.get_metric_trends(user_id, service_name, metric)
    return MetricTrendsResponse(trends=trends)
