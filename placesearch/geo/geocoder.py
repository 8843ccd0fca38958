"""City-centre resolution through the Google Geocoding API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import requests

from ..candidates.cache import LocalTTLCache
from ..errors import GeocodeUnresolved
from .config import DEFAULT_GEOCODING_CONFIG, GeocodingConfig
from .models import Coordinates

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


def geocode(address: str, api_key: str, region: str | None = None, timeout: float = 3.0) -> dict[str, Any]:
    params = {"address": address, "key": api_key}
    if region:
        params["region"] = region.lower()
    response = _SESSION.get(_GEOCODE_URL, params=params, timeout=timeout)
    response.raise_for_status()
    return response.json()


class GoogleGeocoder:
    """Resolve a city name to its centre coordinates, caching answers for a day."""

    def __init__(self, config: GeocodingConfig = DEFAULT_GEOCODING_CONFIG, cache: LocalTTLCache | None = None) -> None:
        self.config = config
        self.cache = cache or LocalTTLCache(ttl=config.cache_ttl, maxsize=config.cache_size)

    async def resolve(self, city: str, region: str | None = None) -> Coordinates:
        """Raise ``GeocodeUnresolved`` when the city cannot be located."""
        key = f"geo:{city.strip().lower()}:{(region or '').lower()}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        if not self.config.api_key:
            raise GeocodeUnresolved("GOOGLE_API_KEY is not configured", stage="geocode")
        try:
            payload = await asyncio.wait_for(
                asyncio.to_thread(geocode, city, self.config.api_key, region, self.config.timeout),
                timeout=self.config.timeout + 1,
            )
        except Exception as exc:  # noqa: BLE001
            raise GeocodeUnresolved(f"geocoding {city!r} failed: {exc}", stage="geocode") from exc

        results = payload.get("results") or []
        if payload.get("status") != "OK" or not results:
            raise GeocodeUnresolved(f"no geocoding result for {city!r} (status={payload.get('status')})", stage="geocode")

        location = (results[0].get("geometry") or {}).get("location") or {}
        try:
            coords = Coordinates(lat=location["lat"], lng=location["lng"])
        except (KeyError, TypeError, ValueError) as exc:
            raise GeocodeUnresolved(f"malformed geocoding result for {city!r}", stage="geocode") from exc

        self.cache.set(key, coords)
        return coords
