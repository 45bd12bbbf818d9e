"""Tests for savings roll-ups."""

from datetime import datetime, timedelta

import pytest

from cloudops.api.services.savings_service import SavingsService
from cloudops.models.savings import SavingsTracker
from cloudops.schemas.savings import SavingsTimeframe
from tests.fixtures import OTHER_USER_ID, USER_ID, create_recommendation, create_savings_entry


@pytest.fixture
def service(db_session):
    return SavingsService(db_session)


@pytest.fixture
def make_entry(db_session):
    """Create a recommendation plus its savings entry."""

    def _make(estimated, actual=0.0, verified=False, implemented_at=None, user_id=USER_ID):
        rec = create_recommendation(db_session, user_id, implemented=True)
        return create_savings_entry(
            db_session,
            user_id,
            rec.id,
            estimated_savings=estimated,
            actual_savings=actual,
            verified=verified,
            implemented_at=implemented_at,
        )

    return _make


class TestTotalSavings:
    """Tests for get_total_savings."""

    def test_only_verified_entries_count(self, service, make_entry):
        # Setup
        make_entry(100.0, actual=80.0, verified=True)
        make_entry(50.0, actual=0.0, verified=False)

        # Execute
        totals = service.get_total_savings(USER_ID, SavingsTimeframe.ALL)

        # Verify
        assert totals.total_actual_savings == 80.0
        assert totals.total_estimated_savings == 100.0
        assert totals.savings_count == 1
        assert totals.accuracy == 80.0

    def test_accuracy_zero_without_estimates(self, service):
        totals = service.get_total_savings(USER_ID)

        assert totals.savings_count == 0
        assert totals.accuracy == 0.0

    def test_accuracy_rounded(self, service, make_entry):
        make_entry(3.0, actual=1.0, verified=True)

        assert service.get_total_savings(USER_ID).accuracy == 33.33

    def test_week_excludes_older_entries(self, service, make_entry):
        make_entry(10.0, verified=True)
        make_entry(20.0, verified=True, implemented_at=datetime.utcnow() - timedelta(days=10))

        totals = service.get_total_savings(USER_ID, SavingsTimeframe.WEEK)

        assert totals.total_estimated_savings == 10.0

    def test_month_starts_at_calendar_month(self, service, make_entry):
        make_entry(10.0, verified=True)
        make_entry(20.0, verified=True, implemented_at=datetime.utcnow() - timedelta(days=40))

        month = service.get_total_savings(USER_ID, SavingsTimeframe.MONTH)
        everything = service.get_total_savings(USER_ID, SavingsTimeframe.ALL)

        assert month.total_estimated_savings == 10.0
        assert everything.total_estimated_savings == 30.0

    def test_scoped_to_user(self, service, make_entry):
        make_entry(10.0, verified=True, user_id=OTHER_USER_ID)

        assert service.get_total_savings(USER_ID).savings_count == 0


class TestSavingsTimeline:
    """Tests for get_savings_timeline."""

    def test_same_day_entries_grouped(self, service, make_entry):
        now = datetime.utcnow().replace(hour=12, minute=0, second=0, microsecond=0) - timedelta(days=1)
        make_entry(10.0, actual=5.0, implemented_at=now)
        make_entry(20.0, verified=True, implemented_at=now + timedelta(hours=1))

        timeline = service.get_savings_timeline(USER_ID, days=30)

        assert timeline.days == 30
        assert len(timeline.timeline) == 1
        point = timeline.timeline[0]
        assert point.date == now.date()
        assert point.count == 2
        assert point.estimated_savings == 30.0
        assert point.actual_savings == 5.0

    def test_dates_ascending_within_window(self, service, make_entry):
        now = datetime.utcnow()
        make_entry(1.0, implemented_at=now - timedelta(days=2))
        make_entry(2.0, implemented_at=now - timedelta(days=5))
        make_entry(4.0, implemented_at=now - timedelta(days=45))

        timeline = service.get_savings_timeline(USER_ID, days=30).timeline

        assert [p.estimated_savings for p in timeline] == [2.0, 1.0]
        assert timeline[0].date < timeline[1].date


class TestTracking:
    """Tests for tracker entry creation and verification updates."""

    def test_track_implementation_idempotent(self, service, db_session):
        rec = create_recommendation(db_session, USER_ID)

        first = service.track_implementation(USER_ID, rec.id, 15.0)
        second = service.track_implementation(USER_ID, rec.id, 15.0)
        db_session.commit()

        assert first.id == second.id
        assert db_session.query(SavingsTracker).count() == 1

    def test_mark_verified_without_entry(self, service):
        assert service.mark_verified(12345, True, datetime.utcnow()) is False
