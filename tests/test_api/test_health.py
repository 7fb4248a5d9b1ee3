"""Tests for health endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from clinic_os import __version__


@pytest.fixture
def health_client():
    from clinic_os.api.routes import health

    app = FastAPI()
    app.include_router(health.router)
    return TestClient(app)


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_health_check(self, health_client):
        response = health_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "clinic-os", "version": __version__}

    def test_liveness_check(self, health_client):
        response = health_client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_readiness_check_success(self, health_client):
        with patch("clinic_os.api.routes.health.ping", AsyncMock(return_value=True)):
            response = health_client.get("/health/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ready", "database": "ok"}

    def test_readiness_check_database_down(self, health_client):
        with patch("clinic_os.api.routes.health.ping", AsyncMock(return_value=False)):
            response = health_client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"
