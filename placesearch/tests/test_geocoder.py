from __future__ import annotations

import asyncio

import pytest

from placesearch.errors import GeocodeUnresolved
from placesearch.geo import geocoder
from placesearch.geo.config import GeocodingConfig
from placesearch.geo.geocoder import GoogleGeocoder
from placesearch.geo.models import Coordinates

CONFIG = GeocodingConfig(api_key="key", timeout=1.0)

OK_PAYLOAD = {"status": "OK", "results": [{"geometry": {"location": {"lat": 32.0853, "lng": 34.7818}}}]}


class FakeGeocode:
    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.calls = []

    def __call__(self, address, api_key, region=None, timeout=3.0):
        self.calls.append((address, region))
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def fake_geocode(monkeypatch):
    def _install(**kwargs):
        fake = FakeGeocode(**kwargs)
        monkeypatch.setattr(geocoder, "geocode", fake)
        return fake

    return _install


def test_resolve_returns_coordinates(fake_geocode):
    fake = fake_geocode(payload=OK_PAYLOAD)

    coords = asyncio.run(GoogleGeocoder(CONFIG).resolve("Tel Aviv", "IL"))

    assert coords == Coordinates(lat=32.0853, lng=34.7818)
    assert fake.calls == [("Tel Aviv", "IL")]


def test_resolve_is_cached(fake_geocode):
    fake = fake_geocode(payload=OK_PAYLOAD)
    resolver = GoogleGeocoder(CONFIG)

    asyncio.run(resolver.resolve("Tel Aviv"))
    asyncio.run(resolver.resolve("  tel aviv "))

    assert len(fake.calls) == 1
    assert resolver.cache.stats()["hits"] == 1


def test_zero_results_is_unresolved(fake_geocode):
    fake_geocode(payload={"status": "ZERO_RESULTS", "results": []})

    with pytest.raises(GeocodeUnresolved) as excinfo:
        asyncio.run(GoogleGeocoder(CONFIG).resolve("Atlantis"))

    assert excinfo.value.recoverable


def test_transport_error_is_unresolved(fake_geocode):
    fake_geocode(error=ConnectionError("no route"))

    with pytest.raises(GeocodeUnresolved):
        asyncio.run(GoogleGeocoder(CONFIG).resolve("Haifa"))


def test_malformed_result_is_unresolved(fake_geocode):
    fake_geocode(payload={"status": "OK", "results": [{"geometry": {}}]})

    with pytest.raises(GeocodeUnresolved):
        asyncio.run(GoogleGeocoder(CONFIG).resolve("Haifa"))


def test_missing_key_is_unresolved(fake_geocode):
    fake = fake_geocode(payload=OK_PAYLOAD)

    with pytest.raises(GeocodeUnresolved):
        asyncio.run(GoogleGeocoder(GeocodingConfig(api_key="")).resolve("Haifa"))

    assert fake.calls == []
