"""Tests for health endpoints."""

from fastapi.testclient import TestClient

from src.main import app
from src.notifications.dispatcher import SideEffectDispatcher


def test_liveness(client: TestClient) -> None:
    """Test the liveness endpoint."""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness_without_backends(client: TestClient) -> None:
    """Without Cassandra and the worker the app reports not ready."""
    response = client.get("/health/ready")
    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "not_ready"
    assert data["cassandra"] == "unavailable"
    assert data["redis"] == "disabled"
    assert data["side_effects"] is None


def test_readiness_reports_dispatcher_stats(client: TestClient) -> None:
    """Queue statistics are exposed even while not ready."""
    app.state.dispatcher = SideEffectDispatcher(queue_size=10)

    data = client.get("/health/ready").json()

    assert data["side_effects"]["running"] is False
    assert data["side_effects"]["queue_length"] == 0


def test_health(client: TestClient) -> None:
    """Test the general health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app_name"] == "learnpath"
    assert data["environment"] == "testing"


def test_root(client: TestClient) -> None:
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    assert "LearnPath" in response.json()["message"]


def test_request_id_is_echoed(client: TestClient) -> None:
    response = client.get("/health/live", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
