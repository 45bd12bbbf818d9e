"""Tests for carrying out recommendations through the actuator."""

import pytest

from cloudops.api.services.implementation_service import ImplementationService
from cloudops.core.exceptions import ActuationFailedError, NotFoundError, UpstreamUnavailableError
from cloudops.models.savings import SavingsTracker
from tests.fixtures import OTHER_USER_ID, USER_ID, create_recommendation


@pytest.fixture
def service(db_session, actuator, locks):
    return ImplementationService(db_session, actuator, locks)


@pytest.fixture
def recommendation(db_session):
    return create_recommendation(db_session, USER_ID, estimated_monthly_savings=30.0)


class TestActuationSuccess:
    """Tests for successful cloud operations."""

    @pytest.mark.asyncio
    async def test_stop_instance(self, service, actuator, db_session, recommendation):
        # Execute
        response = await service.stop_instance(USER_ID, "i-1", recommendation.id)

        # Verify
        assert response.success is True
        assert response.message == "Instance stopped successfully"
        assert actuator.calls == [("stop", USER_ID, "i-1", recommendation.id)]

        db_session.refresh(recommendation)
        assert recommendation.implemented is True
        assert recommendation.implemented_at is not None

        entry = db_session.query(SavingsTracker).filter_by(recommendation_id=recommendation.id).one()
        assert entry.user_id == USER_ID
        assert entry.estimated_savings == 30.0
        assert entry.verified is False

    @pytest.mark.asyncio
    async def test_terminate_instance(self, service, actuator, recommendation):
        response = await service.terminate_instance(USER_ID, "i-2", recommendation.id)

        assert response.message == "Instance terminated successfully"
        assert actuator.calls[0][0] == "terminate"

    @pytest.mark.asyncio
    async def test_delete_volume(self, service, actuator, recommendation):
        response = await service.delete_volume(USER_ID, "vol-1", recommendation.id)

        assert response.message == "Volume deleted successfully"
        assert actuator.calls == [("delete_volume", USER_ID, "vol-1", recommendation.id)]

    @pytest.mark.asyncio
    async def test_repeated_action_tracks_once(self, service, db_session, recommendation):
        await service.stop_instance(USER_ID, "i-1", recommendation.id)
        await service.stop_instance(USER_ID, "i-1", recommendation.id)

        count = db_session.query(SavingsTracker).filter_by(recommendation_id=recommendation.id).count()
        assert count == 1


class TestActuationFailure:
    """Tests for failed or rejected cloud operations."""

    @pytest.mark.asyncio
    async def test_refused_operation_changes_nothing(self, service, actuator, db_session, recommendation):
        actuator.succeed = False

        with pytest.raises(ActuationFailedError) as exc_info:
            await service.stop_instance(USER_ID, "i-1", recommendation.id)

        assert exc_info.value.error == "Failed to stop instance"
        db_session.refresh(recommendation)
        assert recommendation.implemented is False
        assert db_session.query(SavingsTracker).count() == 0

    @pytest.mark.asyncio
    async def test_unreachable_actuator_changes_nothing(self, service, actuator, db_session, recommendation):
        actuator.error = UpstreamUnavailableError("timed out")

        with pytest.raises(UpstreamUnavailableError):
            await service.delete_volume(USER_ID, "vol-1", recommendation.id)

        db_session.refresh(recommendation)
        assert recommendation.implemented is False
        assert db_session.query(SavingsTracker).count() == 0

    @pytest.mark.asyncio
    async def test_unknown_recommendation_skips_actuator(self, service, actuator, recommendation):
        with pytest.raises(NotFoundError):
            await service.stop_instance(OTHER_USER_ID, "i-1", recommendation.id)

        assert actuator.calls == []

    @pytest.mark.asyncio
    async def test_lock_released_after_failure(self, service, actuator, locks, recommendation):
        actuator.succeed = False

        with pytest.raises(ActuationFailedError):
            await service.stop_instance(USER_ID, "i-1", recommendation.id)

        assert not locks.is_locked(USER_ID)
