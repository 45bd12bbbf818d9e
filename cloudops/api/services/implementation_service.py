"""Carrying out recommendations through the actuator."""

import logging
from collections.abc import Awaitable, Callable

from sqlalchemy.orm import Session

from cloudops.api.services.actuator_client import Actuator
from cloudops.api.services.recommendation_service import RecommendationService
from cloudops.core.exceptions import ActuationFailedError
from cloudops.core.locks import UserLockRegistry, get_user_locks
from cloudops.schemas.recommendation import ActionResponse

logger = logging.getLogger(__name__)

Operation = Callable[[str, str, int], Awaitable[bool]]


class ImplementationService:
    """Runs cloud operations and records the recommendations they implement."""

    def __init__(self, db: Session, actuator: Actuator, locks: UserLockRegistry | None = None):
        self.db = db
        self.actuator = actuator
        self.locks = locks or get_user_locks()
        self.recommendations = RecommendationService(db, locks=self.locks)

    async def stop_instance(self, user_id: str, instance_id: str, recommendation_id: int) -> ActionResponse:
        return await self._actuate(
            user_id,
            instance_id,
            recommendation_id,
            operation=self.actuator.stop_instance,
            action="stop instance",
            success_message="Instance stopped successfully",
        )

    async def terminate_instance(self, user_id: str, instance_id: str, recommendation_id: int) -> ActionResponse:
        return await self._actuate(
            user_id,
            instance_id,
            recommendation_id,
            operation=self.actuator.terminate_instance,
            action="terminate instance",
            success_message="Instance terminated successfully",
        )

    async def delete_volume(self, user_id: str, volume_id: str, recommendation_id: int) -> ActionResponse:
        return await self._actuate(
            user_id,
            volume_id,
            recommendation_id,
            operation=self.actuator.delete_volume,
            action="delete volume",
            success_message="Volume deleted successfully",
        )

    async def _actuate(
        self,
        user_id: str,
        resource_id: str,
        recommendation_id: int,
        operation: Operation,
        action: str,
        success_message: str,
    ) -> ActionResponse:
        """Run ``operation`` and, only if it succeeds, mark the recommendation implemented.

        Raises:
            NotFoundError: the recommendation does not belong to the user.
            UpstreamUnavailableError: the actuator could not be reached.
            ActuationFailedError: the actuator reported failure.
        """
        async with self.locks.hold(user_id):
            # Fails before touching the cloud if the recommendation is unknown
            self.recommendations.get_recommendation_model(user_id, recommendation_id)

            logger.info(f"Requesting {action} on {resource_id} for user {user_id}")
            succeeded = await operation(user_id, resource_id, recommendation_id)
            if not succeeded:
                logger.warning(f"Actuator refused to {action} {resource_id} for user {user_id}")
                raise ActuationFailedError(f"Failed to {action}")

            self.recommendations.mark_implemented(user_id, recommendation_id)

        logger.info(f"{success_message}: {resource_id} (recommendation {recommendation_id})")
        return ActionResponse(message=success_message)
