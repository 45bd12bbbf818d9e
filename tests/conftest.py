"""Shared fixtures for cost optimizer tests."""

import os

# Configure before any cloudops module reads settings
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["MONITORED_USER_IDS"] = ""
os.environ["ENVIRONMENT"] = "development"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cloudops import models  # noqa: F401
from cloudops.api.services.actuator_client import get_actuator
from cloudops.api.services.inventory_client import get_inventory_provider
from cloudops.core.database import Base, get_db
from cloudops.core.locks import UserLockRegistry, get_user_locks
from cloudops.main import app
from tests.fixtures import FakeActuator, FakeInventoryProvider


@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def inventory():
    return FakeInventoryProvider()


@pytest.fixture
def actuator():
    return FakeActuator()


@pytest.fixture
def locks():
    return UserLockRegistry()


@pytest.fixture
def client(db_session, inventory, actuator, locks):
    """Test client with the database and upstream services replaced."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_inventory_provider] = lambda: inventory
    app.dependency_overrides[get_actuator] = lambda: actuator
    app.dependency_overrides[get_user_locks] = lambda: locks

    yield TestClient(app, raise_server_exceptions=False)

    app.dependency_overrides.clear()
