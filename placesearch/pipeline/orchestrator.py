from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from datetime import datetime

from ..candidates.provider import CandidateProvider
from ..errors import GeocodeUnresolved, SearchPipelineError
from ..extraction.models import Extraction, SearchRoute
from ..extraction.strategies import FallbackExtractor
from ..filters.city_distance import filter_by_city_distance
from ..filters.config import DEFAULT_FILTER_CONFIG, FilterConfig
from ..filters.post_filters import apply_post_filters
from ..geo.geocoder import GoogleGeocoder
from ..geo.models import Coordinates
from ..grouping.config import DEFAULT_GROUPING_CONFIG, GroupingConfig
from ..grouping.streets import group_by_street
from ..models import Query
from ..response.builder import build_response, build_timings
from ..response.models import ErrorOut, SearchFailure, SearchResponse
from .context import PipelineContext

logger = logging.getLogger(__name__)


def _new_request_id() -> str:
    return uuid.uuid4().hex


class SearchOrchestrator:
    """
    Run one search request through every stage in order.

    Recoverable errors are handled inside the stage that raised them. Anything
    else aborts the request and is returned as a ``SearchFailure``. Nothing is
    retried at this level.
    """

    def __init__(
        self,
        extractor: FallbackExtractor,
        provider: CandidateProvider,
        geocoder: GoogleGeocoder | None = None,
        filter_config: FilterConfig = DEFAULT_FILTER_CONFIG,
        grouping_config: GroupingConfig = DEFAULT_GROUPING_CONFIG,
        clock: Callable[[], float] = time.perf_counter,
        now: Callable[[], datetime] = datetime.now,
        request_ids: Callable[[], str] = _new_request_id,
    ) -> None:
        self.extractor = extractor
        self.provider = provider
        self.geocoder = geocoder
        self.filter_config = filter_config
        self.grouping_config = grouping_config
        self._clock = clock
        self._now = now
        self._request_ids = request_ids

    async def search(self, query: Query) -> SearchResponse | SearchFailure:
        context = PipelineContext(request_id=self._request_ids(), started_at=self._clock())
        logger.info("search_started request_id=%s", context.request_id)
        stage = None
        try:
            stage = "extraction"
            started = self._stage_started(context, stage)
            extraction = await self.extractor.extract(query)
            context = self._stage_completed(context, stage, started).with_flags(degraded=extraction.degraded)

            city = query.target_city or extraction.base.city_text
            center = None
            if city:
                stage = "geocode"
                started = self._stage_started(context, stage)
                center = await self._resolve_city(city, extraction.base.region)
                context = self._stage_completed(context, stage, started)
            if center is None:
                context = context.with_flags(city_filter_skipped=True)

            stage = "candidates"
            started = self._stage_started(context, stage)
            outcome = await self.provider.fetch(extraction.base, extraction.intent.route)
            context = self._stage_completed(context, stage, started).with_flags(
                partial=outcome.pool.partial, cache_source=outcome.source,
            )
            candidates = outcome.pool.candidates

            stage = "post_filter"
            started = self._stage_started(context, stage)
            filtered = apply_post_filters(candidates, extraction.post, self._now())
            context = self._stage_completed(context, stage, started).with_stats(*filtered.stats)

            stage = "city_filter"
            started = self._stage_started(context, stage)
            places, city_stats = filter_by_city_distance(filtered.places, center, self.filter_config)
            context = self._stage_completed(context, stage, started).with_stats(city_stats)

            stage = "grouping"
            started = self._stage_started(context, stage)
            groups = group_by_street(
                places,
                street_token=extraction.street_token,
                seed_anchor=self._seed_anchor(extraction),
                config=self.grouping_config,
            )
            context = self._stage_completed(context, stage, started)

            stage = "response_build"
            started = self._stage_started(context, stage)
            response = build_response(context, extraction, groups, len(candidates))
            context = self._stage_completed(context, stage, started).finish(self._clock())
        except SearchPipelineError as exc:
            return self._failure(context, exc.code, str(exc), exc.stage or stage)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error in stage %s (request_id=%s)", stage, context.request_id)
            return self._failure(context, "INTERNAL_ERROR", str(exc) or type(exc).__name__, stage)

        logger.info(
            "search_completed request_id=%s total_ms=%.1f stages_ms=%.1f unaccounted_ms=%.1f",
            context.request_id, context.total_ms, context.durations_sum_ms, context.unaccounted_ms,
        )
        return response.model_copy(update={"timings": build_timings(context)})

    def _stage_started(self, context: PipelineContext, stage: str) -> float:
        logger.info("stage_started stage=%s request_id=%s", stage, context.request_id)
        return self._clock()

    def _stage_completed(self, context: PipelineContext, stage: str, started: float) -> PipelineContext:
        ended = self._clock()
        context = context.with_timing(stage, started, ended)
        logger.info(
            "stage_completed stage=%s request_id=%s duration_ms=%.1f",
            stage, context.request_id, context.timings[-1].duration_ms,
        )
        return context

    async def _resolve_city(self, city: str, region: str | None) -> Coordinates | None:
        if self.geocoder is None:
            return None
        try:
            return await self.geocoder.resolve(city, region)
        except GeocodeUnresolved as exc:
            logger.warning("City filter skipped, could not resolve %r: %s", city, exc)
            return None

    @staticmethod
    def _seed_anchor(extraction: Extraction) -> Coordinates | None:
        # Nearby searches are centred on the caller, so results group around them.
        if extraction.intent.route is SearchRoute.NEARBY:
            return extraction.base.location
        return None

    def _failure(self, context: PipelineContext, code: str, message: str, stage: str | None) -> SearchFailure:
        logger.error("search_failed request_id=%s stage=%s code=%s: %s", context.request_id, stage, code, message)
        return SearchFailure(request_id=context.request_id, error=ErrorOut(code=code, message=message, stage=stage))
