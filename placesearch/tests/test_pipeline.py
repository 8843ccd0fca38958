from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from placesearch.candidates.cache import LocalTTLCache
from placesearch.candidates.models import Candidate, CandidatePool, FetchOutcome
from placesearch.errors import GeocodeUnresolved, ProviderPage1Failure
from placesearch.extraction.models import (
    BaseConstraints,
    Clarification,
    Extraction,
    Intent,
    OpenState,
    PostConstraints,
    SearchRoute,
)
from placesearch.filters.models import FilterDimension, FilterStats
from placesearch.geo.models import Coordinates
from placesearch.models import Query, TriState
from placesearch.pipeline.context import STAGES, PipelineContext
from placesearch.pipeline.orchestrator import SearchOrchestrator
from placesearch.response.models import SearchFailure, SearchResponse

TEL_AVIV = Coordinates(lat=32.0853, lng=34.7818)
NOW = datetime(2024, 6, 3, 12, 0)


def _extraction(city: str | None = "Tel Aviv", degraded: bool = False, post: PostConstraints | None = None) -> Extraction:
    return Extraction(
        intent=Intent(route=SearchRoute.TEXTSEARCH, confidence=0.9, reason="test"),
        base=BaseConstraints(query_text="pizza", language="en", city_text=city),
        post=post or PostConstraints(open_state=OpenState.OPEN_NOW),
        street_token="Dizengoff",
        degraded=degraded,
        source="pattern" if degraded else "llm",
    )


def _candidates() -> tuple[Candidate, ...]:
    return (
        Candidate(id="open", name="Open Pizza", location=TEL_AVIV, open_now=TriState.TRUE),
        Candidate(id="closed", name="Closed Pizza", location=TEL_AVIV, open_now=TriState.FALSE),
        Candidate(id="unknown", name="Mystery Pizza", location=TEL_AVIV),
        Candidate(id="far", name="Jerusalem Pizza", location=Coordinates(lat=31.7683, lng=35.2137), open_now=TriState.TRUE),
    )


class TickClock:
    """Advances one millisecond per reading."""

    def __init__(self):
        self.readings = 0

    def __call__(self):
        self.readings += 1
        return self.readings / 1000.0


class FakeExtractor:
    def __init__(self, extraction=None, error=None):
        self.extraction = extraction or _extraction()
        self.error = error

    async def extract(self, query):
        if self.error is not None:
            raise self.error
        return self.extraction


class FakeProvider:
    def __init__(self, candidates=None, partial=False, source="provider", error=None):
        self.outcome = FetchOutcome(
            pool=CandidatePool(candidates=candidates if candidates is not None else _candidates(), partial=partial, pages_fetched=1),
            source=source,
        )
        self.error = error
        self.calls = []

    async def fetch(self, base, route, size=None):
        self.calls.append((base, route))
        if self.error is not None:
            raise self.error
        return self.outcome

    def cache_stats(self):
        return {"l1": {"size": 0, "hits": 0, "misses": 0, "hit_rate": 0.0}, "l2": None}


class FakeGeocoder:
    def __init__(self, center=TEL_AVIV, error=None):
        self.center = center
        self.error = error
        self.calls = []
        self.cache = LocalTTLCache(ttl=60)

    async def resolve(self, city, region=None):
        self.calls.append(city)
        if self.error is not None:
            raise self.error
        return self.center


def _orchestrator(extractor=None, provider=None, geocoder=None, clock=None):
    return SearchOrchestrator(
        extractor=extractor or FakeExtractor(),
        provider=provider or FakeProvider(),
        geocoder=geocoder if geocoder is not None else FakeGeocoder(),
        clock=clock or TickClock(),
        now=lambda: NOW,
        request_ids=lambda: "req-1",
    )


def _search(orchestrator, query=None):
    return asyncio.run(orchestrator.search(query or Query(text="open pizza on Dizengoff in Tel Aviv")))


# ── Context ──────────────────────────────────────────────────────────────


class TestPipelineContext:
    def test_with_methods_return_new_instances(self):
        context = PipelineContext(request_id="r", started_at=0.0)
        timed = context.with_timing("extraction", 0.0, 0.5)
        flagged = timed.with_flags(degraded=True)
        with_stats = flagged.with_stats(FilterStats(dimension=FilterDimension.PRICE))

        assert context.timings == ()
        assert not timed.flags.degraded
        assert flagged.flags.degraded
        assert len(with_stats.stats) == 1
        assert flagged.stats == ()

    def test_duration_decomposition(self):
        context = (
            PipelineContext(request_id="r", started_at=1.000)
            .with_timing("extraction", 1.001, 1.101)
            .with_timing("candidates", 1.102, 1.402)
            .with_timing("grouping", 1.403, 1.413)
            .finish(1.420)
        )

        assert context.total_ms == pytest.approx(420.0)
        assert context.durations_sum_ms == pytest.approx(410.0)
        assert context.unaccounted_ms == pytest.approx(10.0)
        assert context.durations_sum_ms + context.unaccounted_ms == pytest.approx(context.total_ms)

    def test_unfinished_total_is_zero(self):
        assert PipelineContext(request_id="r", started_at=5.0).total_ms == 0.0


# ── Orchestrator ─────────────────────────────────────────────────────────


class TestSearchOrchestrator:
    def test_happy_path(self):
        geocoder = FakeGeocoder()
        response = _search(_orchestrator(geocoder=geocoder))

        assert isinstance(response, SearchResponse)
        assert response.request_id == "req-1"
        assert geocoder.calls == ["Tel Aviv"]
        places = [p for g in response.groups for p in g.places]
        assert [p.id for p in places] == ["open", "unknown"]
        assert places[1].unverified == ["open_state"]
        assert places[0].unverified == []
        assert response.groups[0].name == "Dizengoff"

    def test_stage_order_and_timings(self):
        response = _search(_orchestrator())

        assert [t.stage for t in response.timings.stages] == list(STAGES)
        for stage in response.timings.stages:
            assert stage.duration_ms == pytest.approx(1.0)
        timings = response.timings
        assert timings.durations_sum_ms + timings.unaccounted_ms == pytest.approx(timings.total_ms, abs=0.01)
        assert timings.unaccounted_ms >= 0

    def test_counts_and_stats(self):
        response = _search(_orchestrator())

        assert response.counts.candidates == 4
        assert response.counts.after_post_filters == 3
        assert response.counts.after_city_filter == 2
        assert response.counts.returned == 2
        assert response.counts.unknown_kept == 1
        assert response.counts.removed == 2
        city = next(s for s in response.stats if s.dimension is FilterDimension.CITY_DISTANCE)
        assert city.applied
        assert city.removed == 1

    def test_no_city_skips_geocode(self):
        geocoder = FakeGeocoder()
        orchestrator = _orchestrator(extractor=FakeExtractor(_extraction(city=None)), geocoder=geocoder)

        response = _search(orchestrator, Query(text="open pizza on Dizengoff"))

        assert geocoder.calls == []
        assert "geocode" not in [t.stage for t in response.timings.stages]
        city = next(s for s in response.stats if s.dimension is FilterDimension.CITY_DISTANCE)
        assert not city.applied
        assert response.counts.returned == 3

    def test_target_city_wins(self):
        geocoder = FakeGeocoder()

        _search(_orchestrator(geocoder=geocoder), Query(text="pizza in Tel Aviv", target_city="Haifa"))

        assert geocoder.calls == ["Haifa"]

    def test_unresolved_city_skips_city_filter(self):
        geocoder = FakeGeocoder(error=GeocodeUnresolved("no result", stage="geocode"))

        response = _search(_orchestrator(geocoder=geocoder))

        assert isinstance(response, SearchResponse)
        assert response.counts.after_city_filter == response.counts.after_post_filters == 3

    def test_flags_propagate(self):
        orchestrator = _orchestrator(
            extractor=FakeExtractor(_extraction(degraded=True)),
            provider=FakeProvider(partial=True, source="l1"),
        )

        response = _search(orchestrator)

        assert response.degraded
        assert response.partial
        assert response.cache_source == "l1"

    def test_clarification_is_passed_through(self):
        extraction = _extraction().model_copy(
            update={"clarification": Clarification(needed=True, reason="single_token")}
        )

        response = _search(_orchestrator(extractor=FakeExtractor(extraction)))

        assert response.clarification.needed
        assert response.clarification.reason == "single_token"

    def test_page_one_failure_returns_structured_failure(self):
        provider = FakeProvider(error=ProviderPage1Failure("REQUEST_DENIED", stage="candidates"))

        result = _search(_orchestrator(provider=provider))

        assert isinstance(result, SearchFailure)
        assert result.request_id == "req-1"
        assert result.error.code == "PROVIDER_PAGE1_FAILURE"
        assert result.error.stage == "candidates"
        assert len(provider.calls) == 1

    def test_unexpected_error_is_internal_failure(self):
        result = _search(_orchestrator(extractor=FakeExtractor(error=KeyError("boom"))))

        assert isinstance(result, SearchFailure)
        assert result.error.code == "INTERNAL_ERROR"
        assert result.error.stage == "extraction"

    def test_nearby_route_seeds_grouping_on_origin(self):
        extraction = Extraction(
            intent=Intent(route=SearchRoute.NEARBY, confidence=0.9, reason="near me"),
            base=BaseConstraints(query_text="pizza", location=TEL_AVIV, radius_m=1500),
            post=PostConstraints(),
            source="llm",
        )
        response = _search(
            _orchestrator(extractor=FakeExtractor(extraction)), Query(text="pizza near me", origin=TEL_AVIV),
        )

        assert response.groups[0].anchor == TEL_AVIV
        assert response.route is SearchRoute.NEARBY
