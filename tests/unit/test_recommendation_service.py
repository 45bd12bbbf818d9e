"""Tests for recommendation generation and storage."""

import asyncio

import pytest

from cloudops.api.services.recommendation_service import RecommendationService
from cloudops.core.exceptions import NotFoundError, UpstreamUnavailableError
from cloudops.models.recommendation import Recommendation as RecommendationModel
from cloudops.models.savings import SavingsTracker
from cloudops.schemas.recommendation import (
    IdleInstancesDetails,
    RecommendationCategory,
    RecommendationPriority,
)
from tests.fixtures import (
    OTHER_USER_ID,
    USER_ID,
    FakeInventoryProvider,
    create_recommendation,
    ebs_volume,
    ec2_instance,
    lambda_function,
    rds_database,
)


class SlowInventory(FakeInventoryProvider):
    """Yields to the event loop mid-fetch and records overlapping calls."""

    def __init__(self):
        super().__init__()
        self.active = 0
        self.max_active = 0

    async def get_snapshot(self, user_id: str):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0.01)
            return await super().get_snapshot(user_id)
        finally:
            self.active -= 1


@pytest.fixture
def service(db_session, inventory, locks):
    return RecommendationService(db_session, inventory, locks)


@pytest.fixture
def mixed_inventory(inventory):
    """Inventory that triggers High, Medium and Low recommendations."""
    inventory.set_resources(
        USER_ID,
        ec2=[ec2_instance("i-1", cpu="1", name="web-1"), ec2_instance("i-2", state="stopped")],
        rds=[rds_database("db1", cpu="10")],
        ebs=[ebs_volume("vol-1", size="30GiB")],
        **{"lambda": [lambda_function("fn", invocations=0)]},
    )
    return inventory


class TestGenerateRecommendations:
    """Tests for regeneration."""

    @pytest.mark.asyncio
    async def test_generates_and_persists(self, service, db_session, mixed_inventory):
        # Execute
        result = await service.generate_recommendations(USER_ID)

        # Verify
        assert result.success is True
        assert result.count == 5
        assert all(r.id for r in result.recommendations)
        stored = db_session.query(RecommendationModel).filter_by(user_id=USER_ID).count()
        assert stored == 5

    @pytest.mark.asyncio
    async def test_resource_details_round_trip(self, service, mixed_inventory):
        await service.generate_recommendations(USER_ID)

        idle = [r for r in service.get_recommendations(USER_ID) if r.recommendation_type == "EC2_IDLE"][0]
        assert isinstance(idle.resource_details, IdleInstancesDetails)
        assert idle.resource_details.instances[0].id == "i-1"

    @pytest.mark.asyncio
    async def test_regeneration_replaces_unimplemented_only(self, service, db_session, inventory):
        # Setup: 3 live recommendations and 1 implemented
        for _ in range(3):
            create_recommendation(db_session, USER_ID)
        kept = create_recommendation(db_session, USER_ID, implemented=True)
        inventory.set_resources(USER_ID)

        # Execute
        result = await service.generate_recommendations(USER_ID)

        # Verify
        assert result.count == 0
        db_session.expire_all()
        remaining = db_session.query(RecommendationModel).filter_by(user_id=USER_ID).all()
        assert [r.id for r in remaining] == [kept.id]

    @pytest.mark.asyncio
    async def test_other_users_untouched(self, service, db_session, inventory):
        other = create_recommendation(db_session, OTHER_USER_ID)
        inventory.set_resources(USER_ID)

        await service.generate_recommendations(USER_ID)

        assert db_session.get(RecommendationModel, other.id) is not None

    @pytest.mark.asyncio
    async def test_upstream_failure_keeps_existing(self, service, db_session, inventory):
        existing = create_recommendation(db_session, USER_ID)
        inventory.fail_with("gateway down")

        with pytest.raises(UpstreamUnavailableError):
            await service.generate_recommendations(USER_ID)

        assert db_session.get(RecommendationModel, existing.id) is not None

    @pytest.mark.asyncio
    async def test_concurrent_regenerations_serialized(self, session_factory, db_session, locks):
        # Setup: two sessions sharing one lock registry and a slow inventory
        inventory = SlowInventory()
        inventory.set_resources(
            USER_ID,
            ec2=[ec2_instance("i-1", cpu="1"), ec2_instance("i-2", state="stopped")],
        )
        first_db, second_db = session_factory(), session_factory()
        try:
            first = RecommendationService(first_db, inventory, locks)
            second = RecommendationService(second_db, inventory, locks)

            # Execute
            results = await asyncio.gather(
                first.generate_recommendations(USER_ID),
                second.generate_recommendations(USER_ID),
            )
        finally:
            first_db.close()
            second_db.close()

        # Verify
        assert [r.count for r in results] == [2, 2]
        assert inventory.max_active == 1
        live = (
            db_session.query(RecommendationModel)
            .filter_by(user_id=USER_ID, implemented=False)
            .count()
        )
        assert live == 2


class TestGetRecommendations:
    """Tests for listing and filtering."""

    @pytest.mark.asyncio
    async def test_sorted_by_priority_then_savings(self, service, mixed_inventory):
        await service.generate_recommendations(USER_ID)

        recs = service.get_recommendations(USER_ID)

        ranks = {"High": 0, "Medium": 1, "Low": 2}
        keys = [(ranks[r.priority.value], -r.estimated_monthly_savings) for r in recs]
        assert keys == sorted(keys)
        assert recs[0].recommendation_type == "RDS_RIGHTSIZING"
        assert recs[-1].recommendation_type == "LAMBDA_UNUSED"

    @pytest.mark.asyncio
    async def test_filters(self, service, mixed_inventory):
        await service.generate_recommendations(USER_ID)

        high = service.get_recommendations(USER_ID, priority=RecommendationPriority.HIGH)
        storage = service.get_recommendations(USER_ID, category=RecommendationCategory.STORAGE)

        assert {r.recommendation_type for r in high} == {"EC2_IDLE", "RDS_RIGHTSIZING", "EBS_UNUSED"}
        assert [r.recommendation_type for r in storage] == ["EBS_UNUSED"]

    def test_implemented_filter(self, service, db_session):
        create_recommendation(db_session, USER_ID)
        done = create_recommendation(db_session, USER_ID, implemented=True)

        implemented = service.get_recommendations(USER_ID, implemented=True)
        live = service.get_recommendations(USER_ID, implemented=False)

        assert [r.id for r in implemented] == [done.id]
        assert len(live) == 1

    def test_get_recommendation_scoped_to_user(self, service, db_session):
        rec = create_recommendation(db_session, OTHER_USER_ID)

        with pytest.raises(NotFoundError):
            service.get_recommendation(USER_ID, rec.id)
        assert service.get_recommendation(OTHER_USER_ID, rec.id).id == rec.id


class TestSavingsPotential:
    """Tests for potential savings totals."""

    def test_totals_over_unimplemented(self, service, db_session):
        create_recommendation(db_session, USER_ID, estimated_monthly_savings=15.0)
        create_recommendation(db_session, USER_ID, estimated_monthly_savings=89.0)
        create_recommendation(db_session, USER_ID, estimated_monthly_savings=500.0, implemented=True)

        potential = service.get_savings_potential(USER_ID)

        assert potential.total_monthly_savings == 104.0
        assert potential.total_yearly_savings == 1248.0
        assert potential.recommendation_count == 2

    def test_empty(self, service):
        potential = service.get_savings_potential(USER_ID)
        assert potential.total_monthly_savings == 0
        assert potential.recommendation_count == 0


class TestRecommendationSummary:
    """Tests for the per-category summary."""

    @pytest.mark.asyncio
    async def test_grouped_by_category(self, service, mixed_inventory):
        await service.generate_recommendations(USER_ID)

        summary = {s.category: s for s in service.get_recommendation_summary(USER_ID).summary}

        compute = summary[RecommendationCategory.COMPUTE]
        assert compute.count == 3
        assert compute.by_priority == {"High": 1, "Medium": 1, "Low": 1}
        assert summary[RecommendationCategory.DATABASE].potential_savings_monthly == 89


class TestMarkImplemented:
    """Tests for recording implementation."""

    def test_marks_and_tracks(self, service, db_session):
        rec = create_recommendation(db_session, USER_ID, estimated_monthly_savings=15.0)

        result = service.mark_implemented(USER_ID, rec.id, actual_savings=12.5)

        assert result.implemented is True
        assert result.implemented_at is not None
        assert result.actual_savings == 12.5
        entry = db_session.query(SavingsTracker).filter_by(recommendation_id=rec.id).one()
        assert entry.estimated_savings == 15.0
        assert entry.actual_savings == 12.5
        assert entry.verified is False

    def test_repeat_creates_single_entry(self, service, db_session):
        rec = create_recommendation(db_session, USER_ID)

        service.mark_implemented(USER_ID, rec.id)
        service.mark_implemented(USER_ID, rec.id, actual_savings=9.0)

        entries = db_session.query(SavingsTracker).filter_by(recommendation_id=rec.id).all()
        assert len(entries) == 1
        assert entries[0].actual_savings == 9.0

    def test_repeat_keeps_first_implementation_time(self, service, db_session):
        rec = create_recommendation(db_session, USER_ID)

        first = service.mark_implemented(USER_ID, rec.id)
        second = service.mark_implemented(USER_ID, rec.id, actual_savings=4.0)

        assert second.implemented_at == first.implemented_at
        entry = db_session.query(SavingsTracker).filter_by(recommendation_id=rec.id).one()
        assert entry.implemented_at == first.implemented_at

    def test_unknown_recommendation(self, service):
        with pytest.raises(NotFoundError):
            service.mark_implemented(USER_ID, 999)
