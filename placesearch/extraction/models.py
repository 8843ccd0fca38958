from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..geo.models import Coordinates
from ..models import TriState

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
RATING_BUCKETS = (3.5, 4.0, 4.5)


class SearchRoute(str, Enum):
    TEXTSEARCH = "TEXTSEARCH"
    NEARBY = "NEARBY"


class OpenState(str, Enum):
    OPEN_NOW = "OPEN_NOW"
    CLOSED_NOW = "CLOSED_NOW"
    OPEN_AT = "OPEN_AT"
    OPEN_BETWEEN = "OPEN_BETWEEN"


class Intent(BaseModel):
    model_config = ConfigDict(frozen=True)

    route: SearchRoute = SearchRoute.TEXTSEARCH
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reason: str = "default"


class BaseConstraints(BaseModel):
    model_config = ConfigDict(frozen=True)

    query_text: str
    language: str = "en"
    region: str | None = None
    location: Coordinates | None = None
    radius_m: int | None = None
    city_text: str | None = None
    street_text: str | None = None


class OpenAt(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: int | None = Field(default=None, ge=0, le=6)
    time: str | None = Field(default=None, pattern=HHMM_PATTERN)


class OpenBetween(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: int | None = Field(default=None, ge=0, le=6)
    start: str | None = Field(default=None, pattern=HHMM_PATTERN)
    end: str | None = Field(default=None, pattern=HHMM_PATTERN)


class Requirements(BaseModel):
    model_config = ConfigDict(frozen=True)

    accessible: TriState = TriState.UNKNOWN
    parking: TriState = TriState.UNKNOWN


class PostConstraints(BaseModel):
    """Constraints applied after retrieval. Every field is always present."""

    model_config = ConfigDict(frozen=True)

    open_state: OpenState | None = None
    open_at: OpenAt | None = None
    open_between: OpenBetween | None = None
    price_level: int | None = Field(default=None, ge=1, le=4)
    min_rating: float | None = Field(default=None, ge=0, le=5)
    is_kosher: TriState = TriState.UNKNOWN
    is_gluten_free: TriState = TriState.UNKNOWN
    requirements: Requirements = Field(default_factory=Requirements)


class Clarification(BaseModel):
    model_config = ConfigDict(frozen=True)

    needed: bool = False
    reason: str | None = None


class Extraction(BaseModel):
    model_config = ConfigDict(frozen=True)

    intent: Intent
    base: BaseConstraints
    post: PostConstraints = Field(default_factory=PostConstraints)
    street_token: str | None = None
    degraded: bool = False
    source: Literal["llm", "pattern", "default"] = "default"
    clarification: Clarification = Field(default_factory=Clarification)


# ---------------------------------------------------------------------------
# LLM output schemas. Every key is required (nullable where "unspecified" is
# allowed) and unknown keys are rejected.
# ---------------------------------------------------------------------------


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


class LLMIntentOutput(_Strict):
    route: SearchRoute
    confidence: float = Field(..., ge=0.0, le=1.0)
    reason: str
    language: str | None = Field(..., max_length=5)
    city_text: str | None
    street_text: str | None


class LLMOpenAt(_Strict):
    day: int | None = Field(..., ge=0, le=6)
    timeHHmm: str | None = Field(..., pattern=HHMM_PATTERN)


class LLMOpenBetween(_Strict):
    day: int | None = Field(..., ge=0, le=6)
    startHHmm: str | None = Field(..., pattern=HHMM_PATTERN)
    endHHmm: str | None = Field(..., pattern=HHMM_PATTERN)


class LLMRequirements(_Strict):
    accessible: bool | None
    parking: bool | None


class LLMPostConstraintsOutput(_Strict):
    openState: OpenState | None
    openAt: LLMOpenAt | None
    openBetween: LLMOpenBetween | None
    priceLevel: Literal[1, 2, 3, 4] | None
    minRating: float | None
    isKosher: bool | None
    isGlutenFree: bool | None
    requirements: LLMRequirements

    @field_validator("minRating")
    @classmethod
    def _rating_bucket(cls, value: float | None) -> float | None:
        if value is not None and value not in RATING_BUCKETS:
            raise ValueError(f"minRating must be one of {RATING_BUCKETS}")
        return value

    def to_constraints(self) -> PostConstraints:
        open_at = None
        if self.openAt is not None:
            open_at = OpenAt(day=self.openAt.day, time=self.openAt.timeHHmm)
        open_between = None
        if self.openBetween is not None:
            open_between = OpenBetween(
                day=self.openBetween.day,
                start=self.openBetween.startHHmm,
                end=self.openBetween.endHHmm,
            )
        return PostConstraints(
            open_state=self.openState,
            open_at=open_at,
            open_between=open_between,
            price_level=self.priceLevel,
            min_rating=self.minRating,
            is_kosher=TriState.from_optional(self.isKosher),
            is_gluten_free=TriState.from_optional(self.isGlutenFree),
            requirements=Requirements(
                accessible=TriState.from_optional(self.requirements.accessible),
                parking=TriState.from_optional(self.requirements.parking),
            ),
        )
