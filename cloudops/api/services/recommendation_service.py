"""Recommendations management service."""

import logging
from datetime import datetime

from pydantic import ValidationError
from sqlalchemy import case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cloudops.api.services.inventory_client import InventoryProvider
from cloudops.api.services.recommendation_engine import MONTHS_PER_YEAR, evaluate_inventory
from cloudops.api.services.savings_service import SavingsService
from cloudops.core.exceptions import NotFoundError, PersistenceError
from cloudops.core.locks import UserLockRegistry, get_user_locks
from cloudops.models.recommendation import Recommendation as RecommendationModel
from cloudops.schemas.recommendation import (
    PRIORITY_RANK,
    CategorySummary,
    GenerateRecommendationsResponse,
    Recommendation,
    RecommendationCategory,
    RecommendationCreate,
    RecommendationPriority,
    RecommendationSummaryResponse,
    SavingsPotential,
    resource_details_adapter,
)

logger = logging.getLogger(__name__)


def to_schema(r: RecommendationModel) -> Recommendation:
    """Convert a recommendation row to its API representation."""
    details = None
    if r.resource_details_json:
        try:
            details = resource_details_adapter.validate_json(r.resource_details_json)
        except ValidationError:
            logger.warning(f"Recommendation {r.id} has unreadable resource details")

    return Recommendation(
        id=r.id,
        user_id=r.user_id,
        recommendation_type=r.recommendation_type,
        priority=RecommendationPriority(r.priority),
        category=RecommendationCategory(r.category),
        title=r.title,
        description=r.description,
        estimated_monthly_savings=r.estimated_monthly_savings,
        estimated_yearly_savings=r.estimated_yearly_savings,
        difficulty=r.difficulty,
        implementation_time=r.implementation_time,
        impact=r.impact,
        auto_implementable=bool(r.auto_implementable),
        resource_details=details,
        implemented=bool(r.implemented),
        implemented_at=r.implemented_at,
        actual_savings=r.actual_savings or 0.0,
        verification_status=r.verification_status,
        verification_reason=r.verification_reason,
        verified_at=r.verified_at,
        created_at=r.created_at,
        updated_at=r.updated_at,
    )


def _to_model(draft: RecommendationCreate) -> RecommendationModel:
    return RecommendationModel(
        user_id=draft.user_id,
        recommendation_type=draft.recommendation_type.value,
        priority=draft.priority.value,
        category=draft.category.value,
        title=draft.title,
        description=draft.description,
        estimated_monthly_savings=draft.estimated_monthly_savings,
        estimated_yearly_savings=draft.estimated_yearly_savings,
        difficulty=draft.difficulty,
        implementation_time=draft.implementation_time,
        impact=draft.impact,
        auto_implementable=draft.auto_implementable,
        resource_details_json=draft.resource_details.model_dump_json(),
        implemented=False,
        actual_savings=0.0,
    )


class RecommendationService:
    """Service for generating and managing a user's recommendations."""

    def __init__(
        self,
        db: Session,
        inventory: InventoryProvider | None = None,
        locks: UserLockRegistry | None = None,
    ):
        self.db = db
        self.inventory = inventory
        self.locks = locks or get_user_locks()

    async def generate_recommendations(self, user_id: str) -> GenerateRecommendationsResponse:
        """Rebuild the user's live recommendations from a fresh inventory.

        Unimplemented recommendations are replaced as a whole; implemented ones
        are kept as history. Runs under the user's lock so concurrent
        regenerations never interleave.
        """
        if self.inventory is None:
            raise RuntimeError("RecommendationService needs an inventory provider to generate")

        async with self.locks.hold(user_id):
            logger.info(f"Generating cost recommendations for user {user_id}")
            snapshot = await self.inventory.get_snapshot(user_id)
            drafts = evaluate_inventory(user_id, snapshot)

            try:
                removed = (
                    self.db.query(RecommendationModel)
                    .filter(
                        RecommendationModel.user_id == user_id,
                        RecommendationModel.implemented.is_(False),
                    )
                    .delete(synchronize_session=False)
                )
                rows = [_to_model(d) for d in drafts]
                self.db.add_all(rows)
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Failed to store recommendations for user {user_id}: {e}", exc_info=True)
                raise PersistenceError(str(e))

            for row in rows:
                self.db.refresh(row)

        if rows:
            logger.info(
                f"Generated {len(rows)} recommendations for user {user_id} "
                f"(replaced {removed})"
            )
        else:
            logger.info(f"No recommendations for user {user_id}, infrastructure is optimized")

        recommendations = [to_schema(r) for r in rows]
        return GenerateRecommendationsResponse(count=len(recommendations), recommendations=recommendations)

    def get_recommendations(
        self,
        user_id: str,
        implemented: bool | None = None,
        priority: RecommendationPriority | None = None,
        category: RecommendationCategory | None = None,
    ) -> list[Recommendation]:
        """List the user's recommendations, highest priority and savings first."""
        query = self.db.query(RecommendationModel).filter(RecommendationModel.user_id == user_id)

        # Apply filters
        if implemented is not None:
            query = query.filter(RecommendationModel.implemented.is_(implemented))
        if priority:
            query = query.filter(RecommendationModel.priority == priority.value)
        if category:
            query = query.filter(RecommendationModel.category == category.value)

        priority_rank = case(PRIORITY_RANK, value=RecommendationModel.priority, else_=len(PRIORITY_RANK))
        query = query.order_by(
            priority_rank.asc(),
            RecommendationModel.estimated_monthly_savings.desc(),
            RecommendationModel.id.asc(),
        )

        try:
            rows = query.all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load recommendations for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(str(e))
        return [to_schema(r) for r in rows]

    def get_recommendation_model(self, user_id: str, recommendation_id: int) -> RecommendationModel:
        """Load a recommendation row owned by ``user_id`` or raise NotFoundError."""
        row = (
            self.db.query(RecommendationModel)
            .filter(
                RecommendationModel.id == recommendation_id,
                RecommendationModel.user_id == user_id,
            )
            .first()
        )
        if row is None:
            raise NotFoundError(f"Recommendation {recommendation_id} not found", "Recommendation not found")
        return row

    def get_recommendation(self, user_id: str, recommendation_id: int) -> Recommendation:
        return to_schema(self.get_recommendation_model(user_id, recommendation_id))

    def get_savings_potential(self, user_id: str) -> SavingsPotential:
        """Total estimated savings across the user's unimplemented recommendations."""
        rows = (
            self.db.query(RecommendationModel.estimated_monthly_savings)
            .filter(
                RecommendationModel.user_id == user_id,
                RecommendationModel.implemented.is_(False),
            )
            .all()
        )
        total_monthly = sum(r.estimated_monthly_savings or 0.0 for r in rows)
        return SavingsPotential(
            total_monthly_savings=total_monthly,
            total_yearly_savings=total_monthly * MONTHS_PER_YEAR,
            recommendation_count=len(rows),
        )

    def get_recommendation_summary(self, user_id: str) -> RecommendationSummaryResponse:
        """Group live recommendations by category."""
        live = self.get_recommendations(user_id, implemented=False)

        by_category: dict[RecommendationCategory, list[Recommendation]] = {}
        for r in live:
            if r.category not in by_category:
                by_category[r.category] = []
            by_category[r.category].append(r)

        summary = []
        for category, recs in by_category.items():
            by_priority: dict[str, int] = {}
            for r in recs:
                by_priority[r.priority.value] = by_priority.get(r.priority.value, 0) + 1
            summary.append(
                CategorySummary(
                    category=category,
                    count=len(recs),
                    potential_savings_monthly=sum(r.estimated_monthly_savings for r in recs),
                    by_priority=by_priority,
                )
            )

        # Sort by potential savings
        summary.sort(key=lambda s: s.potential_savings_monthly, reverse=True)
        return RecommendationSummaryResponse(summary=summary)

    def mark_implemented(
        self,
        user_id: str,
        recommendation_id: int,
        actual_savings: float | None = None,
    ) -> Recommendation:
        """Mark a recommendation implemented and make sure its savings are tracked."""
        row = self.get_recommendation_model(user_id, recommendation_id)
        now = datetime.utcnow()

        try:
            if not row.implemented or row.implemented_at is None:
                row.implemented = True
                row.implemented_at = now
            if actual_savings is not None:
                row.actual_savings = actual_savings

            SavingsService(self.db).track_implementation(
                user_id=user_id,
                recommendation_id=row.id,
                estimated_savings=row.estimated_monthly_savings,
                implemented_at=row.implemented_at,
                actual_savings=actual_savings,
            )
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to mark recommendation {recommendation_id} implemented: {e}", exc_info=True)
            raise PersistenceError(str(e))

        logger.info(f"Recommendation {recommendation_id} marked implemented for user {user_id}")
        return to_schema(row)
