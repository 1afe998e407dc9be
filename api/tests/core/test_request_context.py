"""Tests for request IDs and log redaction."""

from fastapi.testclient import TestClient

from src.core.logging import filter_sensitive_data
from src.core.middleware import REQUEST_ID_HEADER


class TestRequestId:
    def test_generated_when_absent(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.headers[REQUEST_ID_HEADER]

    def test_echoed_when_sent(self, client: TestClient) -> None:
        response = client.get("/health", headers={REQUEST_ID_HEADER: "req-123"})

        assert response.headers[REQUEST_ID_HEADER] == "req-123"

    def test_error_envelope_carries_request_id(
        self, engine_client: TestClient
    ) -> None:
        response = engine_client.get(
            "/v1/module-enrollments/my", headers={REQUEST_ID_HEADER: "req-401"}
        )

        assert response.status_code == 401
        assert response.json()["request_id"] == "req-401"


class TestFilterSensitiveData:
    """Tests for masking secrets in log events."""

    def test_masks_long_values(self) -> None:
        event = filter_sensitive_data(None, "info", {"access_token": "abcdefghij"})
        assert event["access_token"] == "ab******ij"

    def test_masks_short_values(self) -> None:
        event = filter_sensitive_data(None, "info", {"password": "abc"})
        assert event["password"] == "***"

    def test_nested_and_plain_values(self) -> None:
        event = filter_sensitive_data(
            None,
            "info",
            {"event": "login", "payload": {"api_key": "k-123456", "email": "a@b.io"}},
        )

        assert event["event"] == "login"
        assert event["payload"]["email"] == "a@b.io"
        assert event["payload"]["api_key"] == "k-****56"
