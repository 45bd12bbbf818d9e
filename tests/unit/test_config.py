"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from cloudops.core.config import Settings


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        settings = Settings(_env_file=None, api_gateway_url="http://gw:3003")

        assert settings.api_gateway_url == "http://gw:3003"
        assert settings.inventory_timeout_seconds == 10.0
        assert settings.actuator_timeout_seconds == 30.0
        assert settings.metrics_collection_interval_minutes == 5
        assert settings.recommendation_schedule_hour == 9

    def test_comma_separated_lists(self):
        settings = Settings(
            _env_file=None,
            monitored_user_ids="alice, bob,,carol ",
            cors_origins="http://a.test,http://b.test",
        )

        assert settings.monitored_user_ids == ["alice", "bob", "carol"]
        assert settings.cors_origins == ["http://a.test", "http://b.test"]

    def test_monitored_users_from_environment(self, monkeypatch):
        monkeypatch.setenv("MONITORED_USER_IDS", "u1,u2")

        assert Settings(_env_file=None).monitored_user_ids == ["u1", "u2"]

    def test_debug_forbidden_in_production(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, environment="production", debug=True)

    def test_wildcard_cors_forbidden_in_production(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, environment="production", cors_origins="*")

    def test_sqlite_detection(self):
        assert Settings(_env_file=None, database_url="sqlite:///:memory:").is_sqlite
        assert not Settings(_env_file=None, database_url="postgresql://db/cloudops").is_sqlite
