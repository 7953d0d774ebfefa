"""API-level tests for the CSS allocation endpoints."""

import pytest
from fastapi.testclient import TestClient

from dca_api.core.config import AllocationConfig
from dca_api.core.pipeline import AllocationEngine
from dca_api.main import app
from dca_api.routes.allocation import (
    get_allocation_config,
    get_allocation_engine,
    get_report_notifier,
    get_report_store,
)
from dca_api.storage import LocalReportStore

MOCK_SYMBOLS = ["QQQ", "TLT"]


class RecordingNotifier:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.sent = []

    def send(self, report) -> bool:
        if self.error is not None:
            raise self.error
        self.sent.append(report)
        return True


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def market_data(make_market_data):
    return make_market_data()


@pytest.fixture()
def allocation_client(tmp_path, market_data, fake_sentiment, notifier):
    """TestClient with config, data sources, store and email overridden."""
    app.dependency_overrides[get_allocation_config] = lambda: AllocationConfig(
        asset_symbols=list(MOCK_SYMBOLS)
    )
    app.dependency_overrides[get_allocation_engine] = lambda: AllocationEngine(
        market_data, fake_sentiment
    )
    app.dependency_overrides[get_report_store] = lambda: LocalReportStore(tmp_path)
    app.dependency_overrides[get_report_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


# ============================================================================
# GET /allocation/css
# ============================================================================


def test_preview_returns_report_without_delivery(allocation_client, notifier, tmp_path):
    response = allocation_client.get("/allocation/css")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    report = data["report"]
    assert {a["symbol"] for a in report["allocations"]} == set(MOCK_SYMBOLS)
    assert report["total_amount"] == sum(a["final_amount"] for a in report["allocations"])
    assert report["recommendations"][-1].startswith("Budget range")
    assert notifier.sent == []
    assert not (tmp_path / "reports").exists()


# ============================================================================
# POST /allocation/css
# ============================================================================


def test_run_stores_and_emails(allocation_client, notifier, tmp_path):
    response = allocation_client.post("/allocation/css", json={})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["email_sent"] is True
    assert data["saved_report"] is True
    assert data["replaced_existing"] is False
    assert data["report_id"] == data["report"]["timestamp"][:10]
    assert (tmp_path / "reports" / f"{data['report_id']}.json").exists()
    assert len(notifier.sent) == 1


def test_run_without_body_uses_defaults(allocation_client):
    response = allocation_client.post("/allocation/css")

    assert response.status_code == 200
    assert response.json()["report"]["base_budget"] == 250.0


def test_second_run_same_day_replaces_snapshot(allocation_client):
    allocation_client.post("/allocation/css", json={})
    response = allocation_client.post("/allocation/css", json={})

    assert response.json()["replaced_existing"] is True


def test_request_overrides_budget_and_symbols(allocation_client, market_data):
    response = allocation_client.post(
        "/allocation/css",
        json={"investment_amount": 100, "stocks": ["voo", "qqq"]},
    )

    assert response.status_code == 200
    report = response.json()["report"]
    assert report["base_budget"] == 100.0
    assert report["min_budget"] == 50.0
    assert report["max_budget"] == 120.0
    assert {a["symbol"] for a in report["allocations"]} == {"VOO", "QQQ"}
    assert ("quote", "VOO") in market_data.calls


def test_delivery_flags_skip_steps(allocation_client, notifier, tmp_path):
    response = allocation_client.post(
        "/allocation/css",
        json={"send_email": False, "save_report": False},
    )

    data = response.json()
    assert data["email_sent"] is False
    assert data["saved_report"] is False
    assert data["storage_error"] is None
    assert notifier.sent == []
    assert not (tmp_path / "reports").exists()


def test_email_failure_does_not_fail_request(allocation_client):
    app.dependency_overrides[get_report_notifier] = lambda: RecordingNotifier(
        RuntimeError("smtp down")
    )

    response = allocation_client.post("/allocation/css", json={})

    assert response.status_code == 200
    data = response.json()
    assert data["email_sent"] is False
    assert data["email_error"] == "smtp down"
    assert data["saved_report"] is True


def test_unconfigured_storage_is_reported(allocation_client):
    del app.dependency_overrides[get_report_store]

    response = allocation_client.post("/allocation/css", json={"send_email": False})

    assert response.status_code == 200
    data = response.json()
    assert data["saved_report"] is False
    assert data["storage_error"] == "Report storage not configured"


def test_failed_asset_is_left_out(allocation_client, market_data):
    market_data.failing.add("TLT")

    response = allocation_client.post("/allocation/css", json={"send_email": False})

    assert response.status_code == 200
    report = response.json()["report"]
    assert [a["symbol"] for a in report["allocations"]] == ["QQQ"]
    assert report["provenance"]["excluded_symbols"] == ["TLT"]


@pytest.mark.parametrize(
    "payload",
    [
        {"stocks": ["QQQ1"]},
        {"stocks": ["BRK.B"]},
        {"stocks": ["TOOLONGSYMBOL"]},
        {"stocks": []},
        {"stocks": [f"S{chr(65 + i)}" for i in range(21)]},
        {"investment_amount": 10},
        {"investment_amount": 20000},
    ],
)
def test_invalid_request_returns_422(allocation_client, payload):
    response = allocation_client.post("/allocation/css", json=payload)
    assert response.status_code == 422


def test_invalid_environment_config_returns_400(monkeypatch):
    monkeypatch.setenv("WEEKLY_INVESTMENT_AMOUNT", "lots")
    client = TestClient(app)

    assert client.get("/allocation/css").status_code == 400
    response = client.post("/allocation/css", json={})
    assert response.status_code == 400
    assert "WEEKLY_INVESTMENT_AMOUNT" in response.json()["detail"]
