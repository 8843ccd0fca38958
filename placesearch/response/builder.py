from __future__ import annotations

from collections.abc import Sequence

from ..extraction.models import Extraction
from ..filters.models import FilterDimension
from ..grouping.models import GroupMember, ResultGroup
from ..pipeline.context import PipelineContext
from .models import CountsOut, GroupOut, PlaceOut, SearchResponse, StageTimingOut, TimingsOut


def _place_out(member: GroupMember) -> PlaceOut:
    place = member.place
    candidate = place.candidate
    return PlaceOut(
        id=candidate.id,
        name=candidate.name,
        address=candidate.address,
        location=candidate.location,
        rating=candidate.rating,
        user_ratings_total=candidate.user_ratings_total,
        price_level=candidate.price_level,
        open_now=candidate.open_now,
        is_kosher=candidate.is_kosher,
        accessible=candidate.accessible,
        parking=candidate.parking,
        band=member.band,
        distance_m=member.distance_m,
        city_match=place.city_match,
        distance_km=place.distance_km,
        unverified=[dimension.value for dimension in place.unverified],
        dietary_hints=list(place.dietary_hints),
    )


def _group_out(group: ResultGroup) -> GroupOut:
    return GroupOut(
        name=group.name,
        band=group.band,
        anchor=group.anchor,
        count=group.count,
        exact_count=group.exact_count,
        nearby_count=group.nearby_count,
        places=[_place_out(m) for m in group.members],
    )


def build_timings(context: PipelineContext) -> TimingsOut:
    return TimingsOut(
        stages=[StageTimingOut(stage=t.stage, duration_ms=round(t.duration_ms, 3)) for t in context.timings],
        durations_sum_ms=round(context.durations_sum_ms, 3),
        unaccounted_ms=round(context.unaccounted_ms, 3),
        total_ms=round(context.total_ms, 3),
    )


def build_response(
    context: PipelineContext,
    extraction: Extraction,
    groups: Sequence[ResultGroup],
    candidates_total: int,
) -> SearchResponse:
    """Assemble the payload. Reads its inputs only; timings are attached when the context is finished."""
    stats = list(context.stats)
    after_post = candidates_total
    after_city = None
    for entry in stats:
        if entry.dimension is FilterDimension.CITY_DISTANCE:
            after_city = entry.after
        else:
            after_post = entry.after

    return SearchResponse(
        request_id=context.request_id,
        route=extraction.intent.route,
        language=extraction.base.language,
        street_token=extraction.street_token,
        groups=[_group_out(g) for g in groups],
        stats=stats,
        counts=CountsOut(
            candidates=candidates_total,
            after_post_filters=after_post,
            after_city_filter=after_post if after_city is None else after_city,
            returned=sum(g.count for g in groups),
            unknown_kept=sum(s.unknown_kept for s in stats),
            removed=sum(s.removed for s in stats),
        ),
        degraded=context.flags.degraded,
        partial=context.flags.partial,
        cache_source=context.flags.cache_source,
        clarification=extraction.clarification,
        timings=build_timings(context) if context.finished_at is not None else None,
    )
