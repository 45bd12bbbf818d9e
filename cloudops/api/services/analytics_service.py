"""Metric history collection and trend analysis."""

import logging
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cloudops.api.services.inventory_client import InventoryProvider
from cloudops.core.exceptions import InvalidRequestError, PersistenceError
from cloudops.models.metric_history import MetricHistory
from cloudops.schemas.analytics import (
    CollectMetricsResponse,
    MetricSample,
    MetricService,
    MetricTrends,
    TimeRange,
    TrendComparison,
)
from cloudops.schemas.inventory import InventorySnapshot

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 1000

TIME_RANGE_WINDOWS = {
    TimeRange.LAST_HOUR: timedelta(hours=1),
    TimeRange.LAST_DAY: timedelta(hours=24),
    TimeRange.LAST_WEEK: timedelta(days=7),
    TimeRange.LAST_MONTH: timedelta(days=30),
    TimeRange.LAST_QUARTER: timedelta(days=90),
}


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def percent_change(old: float, new: float) -> float:
    """Percent change from ``old`` to ``new``, rounded to two decimals."""
    if old == 0:
        return 100.0 if new > 0 else 0.0
    return round((new - old) / old * 100, 2)


def aggregate_snapshot(snapshot: InventorySnapshot) -> list[tuple[MetricService, str, float]]:
    """Reduce a snapshot to per-service aggregate metrics.

    Categories absent from the source payload produce nothing; present but
    empty categories produce zero counts.
    CPU means skip instances reporting no usage at all.
    """
    samples: list[tuple[MetricService, str, float]] = []

    if snapshot.has_category("ec2"):
        cpus = [i.cpu_utilization for i in snapshot.ec2 if i.cpu_utilization]
        running = sum(1 for i in snapshot.ec2 if i.state == "running")
        samples += [
            (MetricService.EC2, "cpuUtilization", _mean(cpus)),
            (MetricService.EC2, "instanceCount", float(len(snapshot.ec2))),
            (MetricService.EC2, "runningInstances", float(running)),
        ]

    if snapshot.has_category("s3"):
        samples += [
            (MetricService.S3, "bucketCount", float(len(snapshot.s3))),
            (MetricService.S3, "totalSize", float(sum(b.size_bytes for b in snapshot.s3))),
        ]

    if snapshot.has_category("rds"):
        cpus = [db.cpu_utilization for db in snapshot.rds if db.cpu_utilization]
        samples += [
            (MetricService.RDS, "databaseCount", float(len(snapshot.rds))),
            (MetricService.RDS, "cpuUtilization", _mean(cpus)),
        ]

    if snapshot.has_category("lambda_functions"):
        invocations = sum(f.invocations or 0 for f in snapshot.lambda_functions)
        samples += [
            (MetricService.LAMBDA, "functionCount", float(len(snapshot.lambda_functions))),
            (MetricService.LAMBDA, "invocations", float(invocations)),
        ]

    if snapshot.has_category("ebs"):
        samples += [
            (MetricService.EBS, "volumeCount", float(len(snapshot.ebs))),
            (MetricService.EBS, "totalStorage", float(sum(v.size_gb for v in snapshot.ebs))),
        ]

    return samples


def _to_sample(row: MetricHistory) -> MetricSample:
    return MetricSample(
        id=row.id,
        user_id=row.user_id,
        service=MetricService(row.service),
        metric_name=row.metric_name,
        value=row.value,
        timestamp=row.timestamp,
    )


class AnalyticsService:
    """Stores metric history and answers history and trend queries."""

    def __init__(self, db: Session, inventory: InventoryProvider | None = None):
        self.db = db
        self.inventory = inventory

    async def collect_and_store_metrics(self, user_id: str) -> CollectMetricsResponse:
        """Snapshot the user's inventory and append aggregate samples."""
        if self.inventory is None:
            raise RuntimeError("AnalyticsService needs an inventory provider to collect")

        logger.info(f"Collecting metrics for user {user_id}")
        snapshot = await self.inventory.get_snapshot(user_id)
        samples = aggregate_snapshot(snapshot)

        if not samples:
            logger.warning(f"No metrics to store for user {user_id}")
            return CollectMetricsResponse(count=0, message="No metrics available to store")

        timestamp = datetime.utcnow()
        try:
            self.db.add_all([
                MetricHistory(
                    user_id=user_id,
                    service=service.value,
                    metric_name=name,
                    value=value,
                    timestamp=timestamp,
                )
                for service, name, value in samples
            ])
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to store metrics for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(str(e))

        logger.info(f"Stored {len(samples)} metric entries for user {user_id}")
        return CollectMetricsResponse(count=len(samples))

    def get_metric_history(
        self,
        user_id: str,
        service: MetricService | None = None,
        metric: str | None = None,
        time_range: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[MetricSample]:
        """Stored samples in a time window, oldest first.

        Unknown ``time_range`` values fall back to the last 24 hours; ``custom``
        requires both ``start`` and ``end``.
        """
        query = self.db.query(MetricHistory).filter(MetricHistory.user_id == user_id)
        if service:
            query = query.filter(MetricHistory.service == service.value)
        if metric:
            query = query.filter(MetricHistory.metric_name == metric)

        if time_range == TimeRange.CUSTOM.value:
            if start is None or end is None:
                raise InvalidRequestError(
                    "start and end are required for a custom time range",
                    "Invalid time range",
                )
            query = query.filter(MetricHistory.timestamp >= start, MetricHistory.timestamp <= end)
        else:
            try:
                window = TIME_RANGE_WINDOWS[TimeRange(time_range)]
            except ValueError:
                window = TIME_RANGE_WINDOWS[TimeRange.LAST_DAY]
            query = query.filter(MetricHistory.timestamp >= datetime.utcnow() - window)

        try:
            rows = query.order_by(MetricHistory.timestamp.asc()).limit(HISTORY_LIMIT).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load metric history for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(str(e))
        return [_to_sample(r) for r in rows]

    def _average(self, user_id: str, service: str, metric: str, start: datetime, end: datetime) -> float:
        value = (
            self.db.query(func.avg(MetricHistory.value))
            .filter(
                MetricHistory.user_id == user_id,
                MetricHistory.service == service,
                MetricHistory.metric_name == metric,
                MetricHistory.timestamp >= start,
                MetricHistory.timestamp < end,
            )
            .scalar()
        )
        return float(value) if value is not None else 0.0

    def get_metric_trends(self, user_id: str, service: str | None, metric: str | None) -> MetricTrends:
        """Compare this week and month against the week and month before."""
        if not service or not metric:
            raise InvalidRequestError("Service and metric are required", "Service and metric are required")

        now = datetime.utcnow()
        day = timedelta(days=1)
        try:
            this_week = self._average(user_id, service, metric, now - 7 * day, now)
            last_week = self._average(user_id, service, metric, now - 14 * day, now - 7 * day)
            this_month = self._average(user_id, service, metric, now - 30 * day, now)
            last_month = self._average(user_id, service, metric, now - 60 * day, now - 30 * day)
        except SQLAlchemyError as e:
            logger.error(f"Failed to calculate trends for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(str(e))

        comparisons = {}
        for period, previous, current in (
            ("week", last_week, this_week),
            ("month", last_month, this_month),
        ):
            change = percent_change(previous, current)
            comparisons[period] = TrendComparison(
                previous=previous,
                current=current,
                change=change,
                direction="up" if change > 0 else "down",
            )

        return MetricTrends(current=this_week, comparisons=comparisons)
