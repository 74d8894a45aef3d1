import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from backend.routers import dashboard, webhooks
from backend.services.data_aggregator import DataAggregator
from tests.fakes import FakeStore


@pytest.fixture
def client(aggregator, monkeypatch):
    monkeypatch.delenv("WEBHOOK_SECRET", raising=False)
    app = FastAPI()
    app.state.aggregator = aggregator
    app.include_router(dashboard.router, prefix="/api/dashboard")
    app.include_router(webhooks.router, prefix="/api/webhooks")
    return TestClient(app)


def test_business_metrics(client):
    resp = client.get("/api/dashboard/biz1/metrics", params={"period": "30d"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["business_id"] == "biz1"
    assert body["period"] == "30d"
    assert body["metrics"]["total_revenue"]["display"] == "$1,500.00"


def test_default_business_metrics(client, cache):
    resp = client.get("/api/dashboard/metrics")

    assert resp.status_code == 200
    assert resp.json()["business_id"] == "default"
    assert "metrics_7d_default" in cache.keys()


def test_invalid_period_is_400(client):
    resp = client.get("/api/dashboard/biz1/metrics", params={"period": "1y"})
    assert resp.status_code == 400
    assert "Invalid period" in resp.json()["detail"]


def test_aggregation_failure_is_500(cache, connectors):
    connectors["store"] = FakeStore(record={"revenue": "n/a"})
    app = FastAPI()
    app.state.aggregator = DataAggregator(cache, **connectors)
    app.include_router(dashboard.router, prefix="/api/dashboard")

    resp = TestClient(app).get("/api/dashboard/biz1/metrics")

    assert resp.status_code == 500
    assert resp.json()["detail"] == "Failed to load dashboard metrics"


def test_platforms(client):
    resp = client.get("/api/dashboard/biz1/platforms")

    assert resp.status_code == 200
    assert len(resp.json()) == 4


def test_charts_type_param_narrows(client, cache):
    resp = client.get("/api/dashboard/biz1/charts", params={"type": "conversions"})

    assert resp.status_code == 200
    assert resp.json() == {"conversions": {"google_ads": 12, "meta_ads": 8}}
    assert "charts_7d_conversions_biz1" in cache.keys()


def test_charts_unknown_type_is_400(client):
    resp = client.get("/api/dashboard/charts", params={"type": "funnel"})
    assert resp.status_code == 400


def test_refresh(client, cache):
    resp = client.post("/api/dashboard/biz1/refresh")

    assert resp.status_code == 200
    assert resp.json()["refreshed"] is True
    assert "metrics_30d_biz1" in cache.keys()


def test_refresh_while_running_is_reported(client, aggregator):
    aggregator.refresh_in_progress = True

    resp = client.post("/api/dashboard/refresh")

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "refreshed": False,
        "message": "Data refresh already in progress",
    }


def test_status(client):
    resp = client.get("/api/dashboard/biz1/status")

    assert resp.status_code == 200
    body = resp.json()
    assert set(body["services"].values()) == {"healthy"}
    assert body["refresh_in_progress"] is False


def test_webhook_invalidates_platform_entries(client, cache):
    cache.set("metrics_7d_bigcommerce-outlet", 1)
    cache.set("metrics_7d_biz1", 2)

    resp = client.post("/api/webhooks/bigcommerce", json={"scope": "store/order/created", "store_id": 1025646})

    assert resp.status_code == 200
    assert resp.json() == {"received": True, "platform": "bigcommerce", "invalidated": 1}
    assert list(cache.keys()) == ["metrics_7d_biz1"]


def test_webhook_without_body(client):
    resp = client.post("/api/webhooks/meta_ads")
    assert resp.status_code == 200
    assert resp.json()["invalidated"] == 0


def test_webhook_unknown_platform_is_404(client):
    resp = client.post("/api/webhooks/shopify")
    assert resp.status_code == 404


def test_webhook_secret_is_enforced(client, monkeypatch):
    monkeypatch.setenv("WEBHOOK_SECRET", "s3cret")

    assert client.post("/api/webhooks/bigcommerce").status_code == 401
    assert client.post("/api/webhooks/bigcommerce", headers={"X-Webhook-Secret": "wrong"}).status_code == 401
    assert client.post("/api/webhooks/bigcommerce", headers={"X-Webhook-Secret": "s3cret"}).status_code == 200


def test_app_health(monkeypatch):
    from backend.main import app

    monkeypatch.setenv("BIGCOMMERCE_STORE_HASH", "abc123")
    monkeypatch.setenv("BIGCOMMERCE_ACCESS_TOKEN", "token")

    resp = TestClient(app).get("/api/health")

    assert resp.status_code == 200
    assert resp.json()["services"]["bigcommerce"] == "configured"
