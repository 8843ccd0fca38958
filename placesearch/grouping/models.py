from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from ..filters.models import FilteredPlace
from ..geo.models import Coordinates


class Band(str, Enum):
    WITHIN_EXACT = "WITHIN_EXACT"
    NEARBY = "NEARBY"


class GroupMember(BaseModel):
    model_config = ConfigDict(frozen=True)

    place: FilteredPlace
    band: Band
    distance_m: float | None = None


class ResultGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    band: Band
    anchor: Coordinates | None = None
    members: tuple[GroupMember, ...] = ()
    exact_count: int = 0
    nearby_count: int = 0

    @property
    def count(self) -> int:
        return len(self.members)
