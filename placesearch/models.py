from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .geo.models import Coordinates


class TriState(str, Enum):
    """A boolean that can also be unknown. ``UNKNOWN`` is never the same as ``FALSE``."""

    TRUE = "true"
    FALSE = "false"
    UNKNOWN = "unknown"

    @classmethod
    def from_optional(cls, value: bool | str | None) -> "TriState":
        if value is True:
            return cls.TRUE
        if value is False:
            return cls.FALSE
        if isinstance(value, str) and value.lower() in {"true", "false"}:
            return cls(value.lower())
        return cls.UNKNOWN

    @property
    def is_known(self) -> bool:
        return self is not TriState.UNKNOWN


class Query(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = Field(..., min_length=1, max_length=500)
    origin: Coordinates | None = None
    target_city: str | None = None
    locale: str | None = Field(default=None, description="UI language hint, e.g. 'he' or 'en'")


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=500)
    lat: float | None = Field(default=None, ge=-90.0, le=90.0)
    lng: float | None = Field(default=None, ge=-180.0, le=180.0)
    city: str | None = Field(default=None, description="Explicit target city, overrides the one in the query")
    locale: str | None = None

    @field_validator("query")
    @classmethod
    def _strip_query(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("query must not be blank")
        return value

    def to_query(self) -> Query:
        origin = None
        if self.lat is not None and self.lng is not None:
            origin = Coordinates(lat=self.lat, lng=self.lng)
        return Query(text=self.query, origin=origin, target_city=self.city or None, locale=self.locale)
