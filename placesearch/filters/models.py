from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from ..candidates.models import Candidate


class FilterDimension(str, Enum):
    OPEN_STATE = "open_state"
    PRICE = "price"
    RATING = "rating"
    KOSHER = "kosher"
    ACCESSIBLE = "accessible"
    PARKING = "parking"
    CITY_DISTANCE = "city_distance"


class CityMatch(str, Enum):
    WITHIN_CITY = "WITHIN_CITY"
    NEARBY_SUBURBS = "NEARBY_SUBURBS"
    TOO_FAR = "TOO_FAR"
    UNKNOWN = "UNKNOWN"


class FilterStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    dimension: FilterDimension
    applied: bool = False
    before: int = 0
    after: int = 0
    removed: int = 0
    unknown_kept: int = 0
    unknown_removed: int = 0


class FilteredPlace(BaseModel):
    """A candidate that survived filtering, with what could not be verified about it."""

    model_config = ConfigDict(frozen=True)

    candidate: Candidate
    unverified: tuple[FilterDimension, ...] = ()
    city_match: CityMatch | None = None
    distance_km: float | None = None
    dietary_hints: tuple[str, ...] = ()
