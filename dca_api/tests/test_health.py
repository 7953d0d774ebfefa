"""API-level tests for root and health endpoints."""

from fastapi.testclient import TestClient

from dca_api import __version__
from dca_api.main import app

client = TestClient(app)


def test_root_identifies_service():
    """GET / returns the service name and version."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "dca-api"
    assert data["version"] == __version__


def test_health_check():
    """GET /health returns healthy status."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_liveness():
    """GET /health/live returns alive status."""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness(monkeypatch):
    """GET /health/ready is ready with the default config and no email setup."""
    monkeypatch.delenv("GMAIL_USER", raising=False)

    response = client.get("/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ready", "email_configured": False}


def test_readiness_reports_email_configured(monkeypatch):
    """GET /health/ready reports a complete Gmail setup."""
    monkeypatch.setenv("GMAIL_USER", "test@gmail.com")
    monkeypatch.setenv("GMAIL_APP_PASSWORD", "test-password")
    monkeypatch.setenv("REPORT_EMAIL_TO", "recipient@example.com")

    response = client.get("/health/ready")

    assert response.status_code == 200
    assert response.json()["email_configured"] is True


def test_readiness_with_invalid_config(monkeypatch):
    """An unusable config makes the service not ready."""
    monkeypatch.setenv("ANALYSIS_MAX_CONCURRENCY", "0")

    response = client.get("/health/ready")

    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "not_ready"
    assert "Concurrency" in data["detail"]
