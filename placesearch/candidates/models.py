from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ..geo.models import Coordinates
from ..models import TriState


class OpeningPeriod(BaseModel):
    """One weekly opening interval. Days are 0=Sunday..6=Saturday, times are minutes after midnight."""

    model_config = ConfigDict(frozen=True)

    open_day: int = Field(..., ge=0, le=6)
    open_minute: int = Field(..., ge=0, lt=24 * 60)
    close_day: int | None = Field(default=None, ge=0, le=6)
    close_minute: int | None = Field(default=None, ge=0, lt=24 * 60)


class Candidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    location: Coordinates | None = None
    address: str | None = None
    open_now: TriState = TriState.UNKNOWN
    opening_periods: tuple[OpeningPeriod, ...] | None = None
    price_level: int | None = Field(default=None, ge=0, le=4)
    rating: float | None = None
    user_ratings_total: int | None = None
    types: tuple[str, ...] = ()
    is_kosher: TriState = TriState.UNKNOWN
    accessible: TriState = TriState.UNKNOWN
    parking: TriState = TriState.UNKNOWN


class CandidatePool(BaseModel):
    model_config = ConfigDict(frozen=True)

    candidates: tuple[Candidate, ...] = ()
    partial: bool = False
    pages_fetched: int = 0


class FetchOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    pool: CandidatePool
    source: Literal["l1", "l2", "provider"]
