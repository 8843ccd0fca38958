from __future__ import annotations

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from placesearch.app import app, get_orchestrator
from placesearch.errors import ProviderPage1Failure
from placesearch.pipeline.orchestrator import SearchOrchestrator

from .test_pipeline import FakeExtractor, FakeGeocoder, FakeProvider, TickClock

client = TestClient(app)


def _install(provider=None):
    orchestrator = SearchOrchestrator(
        extractor=FakeExtractor(),
        provider=provider or FakeProvider(),
        geocoder=FakeGeocoder(),
        clock=TickClock(),
        now=lambda: datetime(2024, 6, 3, 12, 0),
        request_ids=lambda: "req-app",
    )
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    return orchestrator


@pytest.fixture(autouse=True)
def _clear_overrides():
    yield
    app.dependency_overrides.clear()


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_search_success():
    _install()

    resp = client.post("/search", json={"query": "open pizza in Tel Aviv", "locale": "en"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["request_id"] == "req-app"
    assert data["groups"][0]["places"][0]["id"] == "open"
    assert data["counts"]["returned"] == 2
    assert {s["dimension"] for s in data["stats"]} >= {"open_state", "city_distance"}
    assert data["timings"]["total_ms"] > 0


def test_search_fatal_failure_is_502():
    _install(FakeProvider(error=ProviderPage1Failure("REQUEST_DENIED", stage="candidates")))

    resp = client.post("/search", json={"query": "pizza in Tel Aviv"})

    assert resp.status_code == 502
    assert resp.json() == {
        "request_id": "req-app",
        "error": {"code": "PROVIDER_PAGE1_FAILURE", "message": "REQUEST_DENIED", "stage": "candidates"},
    }


def test_search_validation_errors():
    _install()

    assert client.post("/search", json={}).status_code == 422
    assert client.post("/search", json={"query": "   "}).status_code == 422
    assert client.post("/search", json={"query": "pizza", "lat": 123.0, "lng": 0}).status_code == 422


def test_search_passes_origin_and_city():
    orchestrator = _install()
    seen = []

    async def spy(query):
        seen.append(query)
        return orchestrator.extractor.extraction

    orchestrator.extractor.extract = spy

    client.post("/search", json={"query": "pizza", "lat": 32.08, "lng": 34.78, "city": "Haifa"})

    assert seen[0].origin.lat == 32.08
    assert seen[0].target_city == "Haifa"


def test_cache_stats():
    _install()

    resp = client.get("/cache/stats")

    assert resp.status_code == 200
    data = resp.json()
    assert data["places"]["l2"] is None
    assert data["geocoding"]["hits"] == 0
