"""Shared pytest fixtures."""

import os
import tempfile
from collections.abc import Iterator

import pytest


# Settings are cached on first use; pin the test environment before any import
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="learnpath-logs-"))
os.environ.setdefault("LOG_REQUESTS", "false")
os.environ.setdefault("EMAIL_ENABLED", "false")

from fastapi.testclient import TestClient  # noqa: E402

from fakes import Engine  # noqa: E402
from src.main import app  # noqa: E402


APP_STATE_SERVICES = (
    "user_service",
    "catalog_service",
    "acquisition_service",
    "progression_service",
    "certificate_service",
    "notification_service",
    "enrollment_service",
    "dispatcher",
)


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Test client without lifespan: no Cassandra, no Redis."""
    yield TestClient(app)
    for name in APP_STATE_SERVICES:
        if hasattr(app.state, name):
            delattr(app.state, name)


@pytest.fixture
def engine() -> Engine:
    """Enrollment engine wired to in-memory stores."""
    return Engine()


@pytest.fixture
def engine_client(engine: Engine, client: TestClient) -> TestClient:
    """Test client whose services are the in-memory engine."""
    app.state.enrollment_service = engine.service
    app.state.progression_service = engine.progression
    app.state.certificate_service = engine.certificates
    app.state.user_service = engine.users
    return client
