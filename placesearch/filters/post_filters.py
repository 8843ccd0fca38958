from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from ..candidates.models import Candidate
from ..extraction.models import OpenState, PostConstraints
from ..models import TriState
from .models import FilterDimension, FilteredPlace, FilterStats
from .opening_hours import evaluate_open_at, evaluate_open_between

logger = logging.getLogger(__name__)

# Returns TRUE (match), FALSE (mismatch) or UNKNOWN (no provider data).
Matcher = Callable[[Candidate], TriState]


class PostFilterResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    places: tuple[FilteredPlace, ...]
    stats: tuple[FilterStats, ...]


def _from_bool(value: bool | None) -> TriState:
    return TriState.from_optional(value)


def _tristate_matcher(required: TriState, attribute: str) -> Matcher:
    def match(candidate: Candidate) -> TriState:
        actual: TriState = getattr(candidate, attribute)
        if not actual.is_known:
            return TriState.UNKNOWN
        return TriState.TRUE if actual is required else TriState.FALSE

    return match


def _open_state_matcher(constraints: PostConstraints, now: datetime) -> Matcher | None:
    state = constraints.open_state
    if state is OpenState.OPEN_NOW:
        return lambda c: c.open_now
    if state is OpenState.CLOSED_NOW:
        return lambda c: {TriState.TRUE: TriState.FALSE, TriState.FALSE: TriState.TRUE}.get(c.open_now, TriState.UNKNOWN)
    if state is OpenState.OPEN_AT and constraints.open_at is not None:
        open_at = constraints.open_at
        return lambda c: _from_bool(evaluate_open_at(c.opening_periods, open_at, now))
    if state is OpenState.OPEN_BETWEEN and constraints.open_between is not None:
        open_between = constraints.open_between
        return lambda c: _from_bool(evaluate_open_between(c.opening_periods, open_between, now))
    return None


def _price_matcher(level: int) -> Matcher:
    def match(candidate: Candidate) -> TriState:
        if candidate.price_level is None:
            return TriState.UNKNOWN
        return TriState.TRUE if candidate.price_level == level else TriState.FALSE

    return match


def _rating_matcher(minimum: float) -> Matcher:
    def match(candidate: Candidate) -> TriState:
        if candidate.rating is None:
            return TriState.UNKNOWN
        return TriState.TRUE if candidate.rating >= minimum else TriState.FALSE

    return match


def build_matchers(constraints: PostConstraints, now: datetime) -> dict[FilterDimension, Matcher | None]:
    """One matcher per dimension, ``None`` where the constraint is unspecified."""
    requirements = constraints.requirements
    return {
        FilterDimension.OPEN_STATE: _open_state_matcher(constraints, now),
        FilterDimension.PRICE: _price_matcher(constraints.price_level) if constraints.price_level is not None else None,
        FilterDimension.RATING: _rating_matcher(constraints.min_rating) if constraints.min_rating is not None else None,
        FilterDimension.KOSHER: (
            _tristate_matcher(constraints.is_kosher, "is_kosher") if constraints.is_kosher.is_known else None
        ),
        FilterDimension.ACCESSIBLE: (
            _tristate_matcher(requirements.accessible, "accessible") if requirements.accessible.is_known else None
        ),
        FilterDimension.PARKING: (
            _tristate_matcher(requirements.parking, "parking") if requirements.parking.is_known else None
        ),
    }


def apply_dimension(
    places: Sequence[FilteredPlace], dimension: FilterDimension, matcher: Matcher | None,
) -> tuple[list[FilteredPlace], FilterStats]:
    before = len(places)
    if matcher is None:
        return list(places), FilterStats(dimension=dimension, before=before, after=before)

    kept: list[FilteredPlace] = []
    unknown_kept = 0
    for place in places:
        verdict = matcher(place.candidate)
        if verdict is TriState.TRUE:
            kept.append(place)
        elif verdict is TriState.UNKNOWN:
            unknown_kept += 1
            kept.append(place.model_copy(update={"unverified": place.unverified + (dimension,)}))

    return kept, FilterStats(
        dimension=dimension,
        applied=True,
        before=before,
        after=len(kept),
        removed=before - len(kept),
        unknown_kept=unknown_kept,
    )


def _gluten_hint(candidate: Candidate) -> str:
    haystack = " ".join([candidate.name, *candidate.types]).lower()
    return "gluten_free:likely" if "gluten" in haystack else "gluten_free:unknown"


def apply_post_filters(
    candidates: Sequence[Candidate], constraints: PostConstraints, now: datetime | None = None,
) -> PostFilterResult:
    """
    Apply every post constraint in turn.

    Explicit provider values are matched strictly. Candidates without a value
    for a filtered dimension are kept, counted in ``unknown_kept`` and tagged
    as unverified for that dimension. Gluten-free is only a hint.
    """
    now = now or datetime.now()
    places = [FilteredPlace(candidate=c) for c in candidates]
    stats = []
    for dimension, matcher in build_matchers(constraints, now).items():
        places, dimension_stats = apply_dimension(places, dimension, matcher)
        stats.append(dimension_stats)
        if dimension_stats.applied:
            logger.info(
                "Post filter %s: %d -> %d (unknown kept %d)",
                dimension.value, dimension_stats.before, dimension_stats.after, dimension_stats.unknown_kept,
            )

    if constraints.is_gluten_free is TriState.TRUE:
        places = [
            p.model_copy(update={"dietary_hints": p.dietary_hints + (_gluten_hint(p.candidate),)}) for p in places
        ]

    return PostFilterResult(places=tuple(places), stats=tuple(stats))
