"""Verification of implemented recommendations.

A recommendation is checked against a fresh inventory snapshot using only the
resource details captured when it was generated. The outcome is written back
to the recommendation and, when one exists, to its savings tracker entry.
"""

import logging
from datetime import datetime

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cloudops.api.services.inventory_client import InventoryProvider
from cloudops.api.services.savings_service import SavingsService
from cloudops.core.exceptions import CloudOpsError
from cloudops.models.recommendation import Recommendation as RecommendationModel
from cloudops.schemas.inventory import InventorySnapshot
from cloudops.schemas.recommendation import (
    IdleInstancesDetails,
    LargeBucketsDetails,
    RecommendationType,
    ReservedInstancesDetails,
    ResourceDetails,
    StoppedInstancesDetails,
    UnattachedVolumesDetails,
    UnderutilizedDatabasesDetails,
    UnusedFunctionsDetails,
    VerificationResult,
    VerificationStatus,
    resource_details_adapter,
)

logger = logging.getLogger(__name__)

# Instances in these states no longer incur compute cost
INACTIVE_INSTANCE_STATES = {"stopped", "terminated"}

# Average CPU above which a rightsized database counts as fixed
RIGHTSIZED_CPU_PERCENT = 30.0

UNKNOWN_TYPE_REASON = "Unknown recommendation type"
NOT_FOUND_REASON = "Recommendation not found"


def _format_cpu(cpu: float | None) -> str:
    return "N/A" if cpu is None else f"{cpu:g}"


def check_resolved(details: ResourceDetails, snapshot: InventorySnapshot) -> VerificationResult:
    """Decide whether the issue described by ``details`` is gone from ``snapshot``."""
    if isinstance(details, IdleInstancesDetails):
        flagged = {i.id for i in details.instances}
        still_active = [
            i for i in snapshot.ec2
            if i.id in flagged and i.state not in INACTIVE_INSTANCE_STATES
        ]
        if not still_active:
            return VerificationResult(
                verified=True,
                reason="All instances stopped or terminated - no longer incurring costs",
            )
        listed = ", ".join(i.display for i in still_active)
        return VerificationResult(
            verified=False,
            reason=f"{len(still_active)} instance(s) still active: {listed}",
        )

    if isinstance(details, StoppedInstancesDetails):
        flagged = {i.id for i in details.instances}
        survivors = [i for i in snapshot.ec2 if i.id in flagged and i.state != "terminated"]
        if not survivors:
            return VerificationResult(verified=True, reason="All stopped instances have been terminated")
        listed = ", ".join(i.display for i in survivors)
        return VerificationResult(
            verified=False,
            reason=f"{len(survivors)} instance(s) still exist: {listed}",
        )

    if isinstance(details, UnattachedVolumesDetails):
        flagged = {v.volume_id for v in details.volumes}
        survivors = [v for v in snapshot.ebs if v.volume_id in flagged and v.state != "deleted"]
        if not survivors:
            return VerificationResult(verified=True, reason="All unused volumes deleted successfully")
        listed = ", ".join(f"{v.volume_id} ({v.state})" for v in survivors)
        return VerificationResult(
            verified=False,
            reason=f"{len(survivors)} volume(s) still exist: {listed}",
        )

    if isinstance(details, UnderutilizedDatabasesDetails):
        flagged = {db.identifier for db in details.databases}
        matched = [db for db in snapshot.rds if db.identifier in flagged]
        if not matched:
            return VerificationResult(verified=True, reason="All databases removed or rightsized")
        avg_cpu = sum(db.cpu_utilization or 0.0 for db in matched) / len(matched)
        if avg_cpu > RIGHTSIZED_CPU_PERCENT:
            return VerificationResult(
                verified=True,
                reason=f"CPU utilization increased to {avg_cpu:.1f}% - rightsizing successful",
            )
        listed = ", ".join(f"{db.identifier} ({_format_cpu(db.cpu_utilization)}%)" for db in matched)
        return VerificationResult(verified=False, reason=f"Databases still under-utilized: {listed}")

    if isinstance(details, UnusedFunctionsDetails):
        flagged = {f.name for f in details.functions}
        survivors = [f for f in snapshot.lambda_functions if f.name in flagged]
        if not survivors:
            return VerificationResult(verified=True, reason="All unused Lambda functions deleted successfully")
        listed = ", ".join(f.name for f in survivors)
        return VerificationResult(
            verified=False,
            reason=f"{len(survivors)} function(s) still exist: {listed}",
        )

    if isinstance(details, LargeBucketsDetails):
        return VerificationResult(
            verified=True,
            reason="Manual verification: Please confirm lifecycle policies configured in S3 console",
        )

    if isinstance(details, ReservedInstancesDetails):
        return VerificationResult(
            verified=True,
            reason="Manual verification - please confirm changes were made",
        )

    return VerificationResult(verified=False, reason=UNKNOWN_TYPE_REASON)


class VerificationService:
    """Re-checks recommendations against the live inventory."""

    def __init__(self, db: Session, inventory: InventoryProvider):
        self.db = db
        self.inventory = inventory

    async def verify_implementation(self, user_id: str, recommendation_id: int) -> VerificationResult:
        """Verify a recommendation and record the outcome.

        Never raises: upstream and database failures are reported as an
        unverified result with a ``Verification error`` reason.
        """
        logger.info(f"Verifying recommendation {recommendation_id} for user {user_id}")

        try:
            row = (
                self.db.query(RecommendationModel)
                .filter(
                    RecommendationModel.id == recommendation_id,
                    RecommendationModel.user_id == user_id,
                )
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load recommendation {recommendation_id}: {e}", exc_info=True)
            return VerificationResult(verified=False, reason=f"Verification error: {e}")

        if row is None:
            return VerificationResult(verified=False, reason=NOT_FOUND_REASON)

        result = await self._evaluate(row, user_id)

        try:
            self._record(row, result)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to record verification of {recommendation_id}: {e}", exc_info=True)
            return VerificationResult(verified=False, reason=f"Verification error: {e}")

        logger.info(
            f"Verification {'passed' if result.verified else 'failed'} for "
            f"recommendation {recommendation_id}: {result.reason}"
        )
        return result

    async def _evaluate(self, row: RecommendationModel, user_id: str) -> VerificationResult:
        known_types = {t.value for t in RecommendationType}
        if row.recommendation_type not in known_types:
            return VerificationResult(verified=False, reason=UNKNOWN_TYPE_REASON)

        try:
            details = resource_details_adapter.validate_json(row.resource_details_json or "")
        except ValidationError as e:
            logger.error(f"Recommendation {row.id} has unreadable resource details: {e}")
            return VerificationResult(verified=False, reason="Verification error: unreadable resource details")

        try:
            snapshot = await self.inventory.get_snapshot(user_id)
        except CloudOpsError as e:
            return VerificationResult(verified=False, reason=f"Verification error: {e.error}")
        except Exception as e:
            logger.error(f"Inventory lookup failed while verifying {row.id}: {e}", exc_info=True)
            return VerificationResult(verified=False, reason=f"Verification error: {e}")

        return check_resolved(details, snapshot)

    def _record(self, row: RecommendationModel, result: VerificationResult) -> None:
        now = datetime.utcnow()
        row.verification_status = (
            VerificationStatus.VERIFIED.value if result.verified else VerificationStatus.FAILED.value
        )
        row.verification_reason = result.reason
        row.verified_at = now
        SavingsService(self.db).mark_verified(row.id, result.verified, now)
        self.db.commit()
