"""Metric history and trend schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class MetricService(str, Enum):
    """Services metric samples are recorded for."""

    EC2 = "EC2"
    S3 = "S3"
    RDS = "RDS"
    LAMBDA = "Lambda"
    EBS = "EBS"


class TimeRange(str, Enum):
    """Look-back windows for metric history."""

    LAST_HOUR = "1h"
    LAST_DAY = "24h"
    LAST_WEEK = "7d"
    LAST_MONTH = "30d"
    LAST_QUARTER = "90d"
    CUSTOM = "custom"


class MetricSample(BaseModel):
    """One stored metric value."""

    id: int
    user_id: str
    service: MetricService
    metric_name: str
    value: float
    timestamp: datetime


class CollectMetricsResponse(BaseModel):
    success: bool = True
    count: int
    message: str | None = None


class MetricHistoryResponse(BaseModel):
    success: bool = True
    count: int
    data: list[MetricSample]


class TrendComparison(BaseModel):
    """Average of one period against the period before it."""

    previous: float
    current: float
    change: float
    direction: str


class MetricTrends(BaseModel):
    current: float
    comparisons: dict[str, TrendComparison]


class MetricTrendsResponse(BaseModel):
    success: bool = True
    trends: MetricTrends
