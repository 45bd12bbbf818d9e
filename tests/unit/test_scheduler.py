"""Tests for scheduled jobs."""

from contextlib import contextmanager
from unittest.mock import patch

import pytest
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from cloudops.core import scheduler as scheduler_module
from cloudops.core.exceptions import UpstreamUnavailableError
from cloudops.models.metric_history import MetricHistory
from cloudops.models.recommendation import Recommendation as RecommendationModel
from tests.fixtures import FakeInventoryProvider, ec2_instance


class PartlyFailingInventory(FakeInventoryProvider):
    """Fails for the listed users only."""

    def __init__(self, failing: set[str]):
        super().__init__()
        self.failing = failing

    async def get_snapshot(self, user_id: str):
        if user_id in self.failing:
            raise UpstreamUnavailableError(f"no inventory for {user_id}")
        return await super().get_snapshot(user_id)


@pytest.fixture
def job_db(session_factory):
    """Route the jobs' sessions to the test database."""

    @contextmanager
    def _context():
        db = session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    with patch.object(scheduler_module, "get_db_context", _context):
        yield


class TestInitScheduler:
    """Tests for job registration."""

    def test_registers_jobs(self):
        scheduler = scheduler_module.init_scheduler()

        jobs = {job.id: job for job in scheduler.get_jobs()}

        assert set(jobs) == {"collect_metrics", "refresh_recommendations"}
        assert isinstance(jobs["collect_metrics"].trigger, IntervalTrigger)
        assert isinstance(jobs["refresh_recommendations"].trigger, CronTrigger)
        assert scheduler_module.get_scheduler() is scheduler
        assert not scheduler.running


class TestScheduledJobs:
    """Tests for per-user job execution."""

    @pytest.mark.asyncio
    async def test_collect_metrics_continues_after_failure(self, job_db, db_session):
        # Setup
        inventory = PartlyFailingInventory(failing={"bad-user"})
        inventory.set_resources("good-user", ec2=[ec2_instance("i-1")])

        # Execute
        errors = await scheduler_module.collect_metrics(["bad-user", "good-user"], inventory)

        # Verify
        assert errors == 1
        users = {row.user_id for row in db_session.query(MetricHistory).all()}
        assert users == {"good-user"}

    @pytest.mark.asyncio
    async def test_refresh_recommendations_continues_after_failure(self, job_db, db_session):
        inventory = PartlyFailingInventory(failing={"bad-user"})
        inventory.set_resources("good-user", ec2=[ec2_instance("i-1", cpu="1")])

        errors = await scheduler_module.refresh_recommendations(["good-user", "bad-user"], inventory)

        assert errors == 1
        rows = db_session.query(RecommendationModel).all()
        assert [(r.user_id, r.recommendation_type) for r in rows] == [("good-user", "EC2_IDLE")]

    @pytest.mark.asyncio
    async def test_no_monitored_users(self, job_db):
        inventory = FakeInventoryProvider()

        assert await scheduler_module.collect_metrics([], inventory) == 0
        assert inventory.calls == []
