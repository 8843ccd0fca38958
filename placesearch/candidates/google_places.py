"""Client utilities for the Google Places web service."""

from __future__ import annotations

import logging
from typing import Any

import requests

from ..geo.models import Coordinates
from ..models import TriState
from .models import Candidate, OpeningPeriod

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_BASE_URL = "https://maps.googleapis.com/maps/api/place"
_KOSHER_MARKERS = ("kosher", "כשר", "casher", "cacher", "koscher")


class GooglePlacesError(RuntimeError):
    """Raised when the Places API returns a non-successful response."""


def _get(endpoint: str, params: dict[str, Any], timeout: float) -> dict[str, Any]:
    response = _SESSION.get(f"{_BASE_URL}/{endpoint}/json", params=params, timeout=timeout)
    response.raise_for_status()
    payload = response.json()
    status = payload.get("status")
    if status not in {"OK", "ZERO_RESULTS"}:
        logger.error("%s failed: status=%s, error_message=%s", endpoint, status, payload.get("error_message"))
        raise GooglePlacesError(payload.get("error_message") or status)
    return payload


def text_search(
    query: str,
    api_key: str,
    language: str | None = None,
    region: str | None = None,
    location: Coordinates | None = None,
    radius: int | None = None,
    timeout: float = 10,
) -> dict[str, Any]:
    params: dict[str, Any] = {"query": query, "key": api_key}
    if language:
        params["language"] = language
    if region:
        params["region"] = region.lower()
    if location is not None and radius:
        params["location"] = f"{location.lat},{location.lng}"
        params["radius"] = radius
    return _get("textsearch", params, timeout)


def nearby_search(
    location: Coordinates,
    radius: int,
    api_key: str,
    keyword: str | None = None,
    language: str | None = None,
    timeout: float = 10,
) -> dict[str, Any]:
    params: dict[str, Any] = {"location": f"{location.lat},{location.lng}", "radius": radius, "key": api_key}
    if keyword:
        params["keyword"] = keyword
    if language:
        params["language"] = language
    return _get("nearbysearch", params, timeout)


def next_page(endpoint: str, pagetoken: str, api_key: str, timeout: float = 10) -> dict[str, Any]:
    # Google requires a continuation request to carry nothing but the key and the token.
    return _get(endpoint, {"pagetoken": pagetoken, "key": api_key}, timeout)


def _hhmm_to_minutes(value: str | None) -> int | None:
    if not value or len(value) != 4 or not value.isdigit():
        return None
    hours, minutes = int(value[:2]), int(value[2:])
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def _parse_periods(opening_hours: dict[str, Any]) -> tuple[OpeningPeriod, ...] | None:
    periods = opening_hours.get("periods")
    if not periods:
        return None
    parsed = []
    for period in periods:
        open_part = period.get("open") or {}
        close_part = period.get("close") or {}
        open_minute = _hhmm_to_minutes(open_part.get("time"))
        if open_part.get("day") is None or open_minute is None:
            logger.debug("Skipping unparseable opening period: %s", period)
            continue
        parsed.append(
            OpeningPeriod(
                open_day=open_part["day"],
                open_minute=open_minute,
                close_day=close_part.get("day"),
                close_minute=_hhmm_to_minutes(close_part.get("time")),
            )
        )
    return tuple(parsed) or None


def _kosher_state(result: dict[str, Any]) -> TriState:
    haystack = " ".join([result.get("name") or "", *result.get("types", [])]).lower()
    if any(marker in haystack for marker in _KOSHER_MARKERS):
        return TriState.TRUE
    return TriState.UNKNOWN


def _parking_state(result: dict[str, Any]) -> TriState:
    options = result.get("parking_options")
    if not isinstance(options, dict) or not options:
        return TriState.UNKNOWN
    values = [v for v in options.values() if isinstance(v, bool)]
    if any(values):
        return TriState.TRUE
    if values:
        return TriState.FALSE
    return TriState.UNKNOWN


def to_candidate(result: dict[str, Any]) -> Candidate | None:
    """Map one Places result to a Candidate. Missing fields stay unknown."""
    place_id = result.get("place_id")
    if not place_id:
        logger.debug("Skipping result without place_id: %s", result)
        return None

    geometry = (result.get("geometry") or {}).get("location") or {}
    location = None
    if geometry.get("lat") is not None and geometry.get("lng") is not None:
        location = Coordinates(lat=geometry["lat"], lng=geometry["lng"])

    opening_hours = result.get("opening_hours") or {}
    return Candidate(
        id=place_id,
        name=result.get("name") or place_id,
        location=location,
        address=result.get("formatted_address") or result.get("vicinity"),
        open_now=TriState.from_optional(opening_hours.get("open_now")),
        opening_periods=_parse_periods(opening_hours),
        price_level=result.get("price_level"),
        rating=result.get("rating"),
        user_ratings_total=result.get("user_ratings_total"),
        types=tuple(result.get("types", [])),
        is_kosher=_kosher_state(result),
        accessible=TriState.from_optional(result.get("wheelchair_accessible_entrance")),
        parking=_parking_state(result),
    )
