"""Tests for the liveness endpoints."""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from project_admin.config.database import Database
from project_admin.core.application import create_application


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@pytest.mark.api
@pytest.mark.unit
class TestHealthEndpoint:
    """Tests for GET /health."""

    def test_health_check_success(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "API is healthy"
        assert set(data) == {"success", "message", "timestamp"}

    def test_health_timestamp_is_current_utc_instant(self, client):
        before = datetime.now(timezone.utc)
        response = client.get("/health")
        after = datetime.now(timezone.utc)

        timestamp = _parse_timestamp(response.json()["timestamp"])
        assert timestamp.tzinfo is not None
        assert before - timedelta(seconds=1) <= timestamp <= after + timedelta(seconds=1)
        assert response.json()["timestamp"].endswith("Z")


@pytest.mark.api
@pytest.mark.unit
class TestRootEndpoint:
    """Tests for GET /."""

    def test_root_returns_static_body(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "API Running",
            "version": "1.0.0",
        }


@pytest.mark.api
@pytest.mark.integration
class TestLivenessIndependentOfDatabase:
    """The probes answer whatever the database is doing."""

    def test_health_before_startup_has_run(self, app):
        # No lifespan: the database stage has not even started
        test_client = TestClient(app)

        assert app.state.startup.database_ready.is_set() is False
        assert test_client.get("/health").status_code == 200
        assert test_client.get("/").json()["message"] == "API Running"

    def test_health_when_database_is_unreachable(self, settings):
        database = MagicMock(spec=Database)
        database.connect.side_effect = ConnectionRefusedError("connection refused")
        exit_process = MagicMock()
        app = create_application(settings, database=database, exit_process=exit_process)

        with TestClient(app) as test_client:
            response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["success"] is True
        exit_process.assert_called_once_with(1)
