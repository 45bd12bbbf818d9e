"""Savings tracking service."""

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cloudops.core.exceptions import PersistenceError
from cloudops.models.savings import SavingsTracker
from cloudops.schemas.savings import (
    SavingsTimeframe,
    SavingsTimeline,
    SavingsTimelinePoint,
    TotalSavings,
)

logger = logging.getLogger(__name__)


class SavingsService:
    """Records implemented recommendations and rolls up their savings.

    ``track_implementation`` and ``mark_verified`` only stage changes on the
    session; the calling service commits them together with its own writes.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_entry(self, recommendation_id: int) -> SavingsTracker | None:
        return (
            self.db.query(SavingsTracker)
            .filter(SavingsTracker.recommendation_id == recommendation_id)
            .first()
        )

    def track_implementation(
        self,
        user_id: str,
        recommendation_id: int,
        estimated_savings: float,
        implemented_at: datetime | None = None,
        actual_savings: float | None = None,
    ) -> SavingsTracker:
        """Create the tracker entry for a recommendation unless it already exists."""
        entry = self.get_entry(recommendation_id)
        if entry is None:
            entry = SavingsTracker(
                user_id=user_id,
                recommendation_id=recommendation_id,
                implemented_at=implemented_at or datetime.utcnow(),
                estimated_savings=estimated_savings,
                actual_savings=actual_savings or 0.0,
                verified=False,
            )
            self.db.add(entry)
            self.db.flush()
            logger.info(
                f"Tracking savings for recommendation {recommendation_id}: "
                f"${estimated_savings:.2f}/month estimated"
            )
        elif actual_savings is not None:
            entry.actual_savings = actual_savings
        return entry

    def mark_verified(self, recommendation_id: int, verified: bool, verified_at: datetime) -> bool:
        """Copy a verification outcome onto the tracker entry, if there is one."""
        entry = self.get_entry(recommendation_id)
        if entry is None:
            return False
        entry.verified = verified
        entry.verified_at = verified_at
        return True

    def get_total_savings(
        self,
        user_id: str,
        timeframe: SavingsTimeframe = SavingsTimeframe.ALL,
    ) -> TotalSavings:
        """Roll up verified savings over ``timeframe``.

        ``month`` starts at the first instant of the current calendar month,
        ``week`` covers the last seven days.
        """
        query = self.db.query(SavingsTracker).filter(
            SavingsTracker.user_id == user_id,
            SavingsTracker.verified.is_(True),
        )

        now = datetime.utcnow()
        if timeframe == SavingsTimeframe.MONTH:
            start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
            query = query.filter(SavingsTracker.implemented_at >= start)
        elif timeframe == SavingsTimeframe.WEEK:
            query = query.filter(SavingsTracker.implemented_at >= now - timedelta(days=7))

        try:
            entries = query.all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load savings for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(str(e))

        total_actual = sum(e.actual_savings or 0.0 for e in entries)
        total_estimated = sum(e.estimated_savings or 0.0 for e in entries)
        accuracy = round(total_actual / total_estimated * 100, 2) if total_estimated > 0 else 0.0

        return TotalSavings(
            timeframe=timeframe,
            total_actual_savings=total_actual,
            total_estimated_savings=total_estimated,
            savings_count=len(entries),
            accuracy=accuracy,
        )

    def get_savings_timeline(self, user_id: str, days: int = 30) -> SavingsTimeline:
        """Group all tracked savings of the last ``days`` days by calendar date."""
        start = datetime.utcnow() - timedelta(days=days)
        try:
            entries = (
                self.db.query(SavingsTracker)
                .filter(
                    SavingsTracker.user_id == user_id,
                    SavingsTracker.implemented_at >= start,
                )
                .order_by(SavingsTracker.implemented_at.asc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load savings timeline for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(str(e))

        points: dict = {}
        for entry in entries:
            day = entry.implemented_at.date()
            point = points.get(day)
            if point is None:
                point = points[day] = SavingsTimelinePoint(date=day)
            point.estimated_savings += entry.estimated_savings or 0.0
            point.actual_savings += entry.actual_savings or 0.0
            point.count += 1

        return SavingsTimeline(days=days, timeline=list(points.values()))
