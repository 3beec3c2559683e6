"""HTTP adapters: parameter handling and status mapping, with dependencies overridden."""

import pytest
from fastapi.testclient import TestClient

from bestsellers.api.deps import memory_cache_dep, redis_dep, shopify_dep
from bestsellers.main import app
from bestsellers.utils.cache import MemoryTTLCache

from conftest import FakeShopify, order, product


@pytest.fixture
def api(settings, fake_redis, make_client):
    fake = FakeShopify(pages=[[order((2, product("p1", "polo", ["men"]))), order((5, product("p2", "falda", ["mujer"])))]])
    app.dependency_overrides[shopify_dep] = lambda: make_client(fake)
    app.dependency_overrides[redis_dep] = lambda: fake_redis
    app.dependency_overrides[memory_cache_dep] = lambda: MemoryTTLCache(900)
    client = TestClient(app)
    yield client, fake
    app.dependency_overrides.clear()


def test_bestsellers_live(api, monkeypatch, settings):
    client, _ = api
    monkeypatch.setattr("bestsellers.domain.services.bestsellers_svc.get_settings", lambda: settings)
    r = client.get("/api/bestsellers", params={"segments": "mujer", "debug": "1"})
    assert r.status_code == 200
    body = r.json()
    assert body["handles"] == ["falda"]
    assert body["meta"]["source"] == "live"
    assert r.headers["X-Bestsellers-Source"] == "live"


def test_bestsellers_hides_meta_without_debug(api, monkeypatch, settings):
    client, _ = api
    monkeypatch.setattr("bestsellers.domain.services.bestsellers_svc.get_settings", lambda: settings)
    r = client.get("/api/bestsellers")
    assert r.json() == {"handles": ["falda", "polo"]}


def test_bestsellers_rejects_bad_dates(api):
    client, fake = api
    r = client.get("/api/bestsellers", params={"from": "not-a-date"})
    assert r.status_code == 400
    assert fake.calls == 0


def test_bestsellers_upstream_failure_is_200_empty(api, monkeypatch, settings):
    client, fake = api
    monkeypatch.setattr("bestsellers.domain.services.bestsellers_svc.get_settings", lambda: settings)
    fake.fail_orders_page = 0
    r = client.get("/api/bestsellers")
    assert r.status_code == 200
    assert r.json()["handles"] == []
    assert r.json()["meta"]["error"] == "live-failed"


def test_snapshot_unauthorized(api, monkeypatch, settings):
    client, fake = api
    monkeypatch.setattr("bestsellers.domain.services.snapshot_svc.get_settings", lambda: settings)
    r = client.get("/api/bestsellers/snapshot", params={"secret": "nope"})
    assert r.status_code == 401
    assert fake.calls == 0


def test_snapshot_ok(api, monkeypatch, settings):
    client, _ = api
    monkeypatch.setattr("bestsellers.domain.services.snapshot_svc.get_settings", lambda: settings)
    r = client.post("/api/bestsellers/snapshot", params={"secret": "s3cret", "limit": 5})
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["limit"] == 5
    assert len(body["segments"]) == 16
    assert r.headers["Cache-Control"] == "no-store"
