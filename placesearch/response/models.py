from __future__ import annotations

from pydantic import BaseModel, Field

from ..extraction.models import Clarification, SearchRoute
from ..filters.models import CityMatch, FilterStats
from ..geo.models import Coordinates
from ..grouping.models import Band
from ..models import TriState


class PlaceOut(BaseModel):
    id: str
    name: str
    address: str | None
    location: Coordinates | None
    rating: float | None
    user_ratings_total: int | None
    price_level: int | None
    open_now: TriState
    is_kosher: TriState
    accessible: TriState
    parking: TriState
    band: Band
    distance_m: float | None = None
    city_match: CityMatch | None = None
    distance_km: float | None = None
    unverified: list[str] = Field(default_factory=list, description="Filters this place passed only because the data was unknown")
    dietary_hints: list[str] = Field(default_factory=list)


class GroupOut(BaseModel):
    name: str
    band: Band
    anchor: Coordinates | None
    count: int
    exact_count: int
    nearby_count: int
    places: list[PlaceOut]


class CountsOut(BaseModel):
    candidates: int
    after_post_filters: int
    after_city_filter: int
    returned: int
    unknown_kept: int
    removed: int


class StageTimingOut(BaseModel):
    stage: str
    duration_ms: float


class TimingsOut(BaseModel):
    stages: list[StageTimingOut]
    durations_sum_ms: float
    unaccounted_ms: float
    total_ms: float


class SearchResponse(BaseModel):
    request_id: str
    route: SearchRoute
    language: str
    street_token: str | None
    groups: list[GroupOut]
    stats: list[FilterStats]
    counts: CountsOut
    degraded: bool
    partial: bool
    cache_source: str | None
    clarification: Clarification
    timings: TimingsOut | None = None


class ErrorOut(BaseModel):
    code: str
    message: str
    stage: str | None = None


class SearchFailure(BaseModel):
    request_id: str
    error: ErrorOut
