from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import ValidationError

from ..errors import CacheUnavailable, ProviderPage1Failure, ProviderPageNFailure
from ..extraction.models import BaseConstraints, SearchRoute
from . import google_places
from .cache import LocalTTLCache, RedisCache, make_key
from .config import DEFAULT_CANDIDATES_CONFIG, CandidatesConfig
from .models import Candidate, CandidatePool, FetchOutcome

logger = logging.getLogger(__name__)

_PUNCTUATION_RE = re.compile(r"[?.!,;:]")


def provider_query_text(base: BaseConstraints) -> str:
    """Query text sent to text search, with the city and street appended when not already present."""
    text = base.query_text.strip()
    for part in (base.street_text, base.city_text):
        if part and part.lower() not in text.lower():
            text = f"{text} {part}"
    return text


def cache_key(base: BaseConstraints, route: SearchRoute, size: int) -> str:
    normalized = _PUNCTUATION_RE.sub(" ", provider_query_text(base).lower())
    normalized = re.sub(r"\s+", " ", normalized).strip()
    location = None
    if base.location is not None:
        location = [round(base.location.lat, 4), round(base.location.lng, 4)]
    return make_key(
        "places:v1",
        {
            "q": normalized,
            "route": route.value,
            "language": base.language,
            "region": base.region,
            "location": location,
            "radius": base.radius_m,
            "size": size,
        },
    )


class CandidateProvider:
    """
    Build a bounded, deduplicated candidate pool for one set of base constraints.

    Lookup order is L1, then L2, then Google. Pages are fetched one after the
    other because each continuation token comes from the previous response.
    """

    def __init__(
        self,
        config: CandidatesConfig = DEFAULT_CANDIDATES_CONFIG,
        l1: LocalTTLCache | None = None,
        l2: RedisCache | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config
        self.l1 = l1 or LocalTTLCache(ttl=config.l1_ttl, maxsize=config.l1_size)
        self.l2 = l2
        self._sleep = sleep

    async def fetch(self, base: BaseConstraints, route: SearchRoute, size: int | None = None) -> FetchOutcome:
        size = size or self.config.pool_size
        key = cache_key(base, route, size)

        pool = self.l1.get(key)
        if pool is not None:
            logger.info("Candidate pool served from L1 (%d candidates)", len(pool.candidates))
            return FetchOutcome(pool=pool, source="l1")

        pool = await self._l2_get(key)
        if pool is not None:
            logger.info("Candidate pool served from L2 (%d candidates)", len(pool.candidates))
            self.l1.set(key, pool)
            return FetchOutcome(pool=pool, source="l2")

        pool = await self._fetch_pages(base, route, size)
        if pool.partial:
            logger.info("Not caching partial pool (%d candidates)", len(pool.candidates))
        else:
            self.l1.set(key, pool)
            await self._l2_set(key, pool)
        return FetchOutcome(pool=pool, source="provider")

    def cache_stats(self) -> dict:
        return {
            "l1": self.l1.stats(),
            "l2": self.l2.stats() if self.l2 is not None else None,
        }

    # -- cache tiers -------------------------------------------------------

    async def _l2_get(self, key: str) -> CandidatePool | None:
        if self.l2 is None:
            return None
        try:
            raw = await self.l2.get(key)
        except CacheUnavailable as exc:
            logger.warning("L2 cache unavailable, bypassing: %s", exc)
            return None
        if raw is None:
            return None
        try:
            return CandidatePool.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable L2 entry %s", key)
            return None

    async def _l2_set(self, key: str, pool: CandidatePool) -> None:
        if self.l2 is None:
            return
        try:
            await self.l2.set(key, pool.model_dump_json(), self.config.l2_ttl)
        except CacheUnavailable as exc:
            logger.warning("L2 cache unavailable, pool not shared: %s", exc)

    # -- provider ----------------------------------------------------------

    def _call(self, base: BaseConstraints, route: SearchRoute, pagetoken: str | None) -> dict:
        endpoint = "nearbysearch" if route is SearchRoute.NEARBY else "textsearch"
        if pagetoken:
            return google_places.next_page(
                endpoint, pagetoken, self.config.api_key, timeout=self.config.request_timeout,
            )
        if route is SearchRoute.NEARBY and base.location is not None:
            return google_places.nearby_search(
                base.location,
                base.radius_m or 1500,
                self.config.api_key,
                keyword=base.query_text,
                language=base.language,
                timeout=self.config.request_timeout,
            )
        return google_places.text_search(
            provider_query_text(base),
            self.config.api_key,
            language=base.language,
            region=base.region,
            location=base.location,
            radius=base.radius_m,
            timeout=self.config.request_timeout,
        )

    async def _request_page(
        self, base: BaseConstraints, route: SearchRoute, pagetoken: str | None, page: int,
    ) -> dict:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._call, base, route, pagetoken),
                timeout=self.config.request_timeout + 1,
            )
        except Exception as exc:  # noqa: BLE001
            if page == 1:
                raise ProviderPage1Failure(f"first page failed: {exc}", stage="candidates") from exc
            raise ProviderPageNFailure(f"page {page} failed: {exc}", page=page, stage="candidates") from exc

    async def _fetch_pages(self, base: BaseConstraints, route: SearchRoute, size: int) -> CandidatePool:
        candidates: list[Candidate] = []
        seen: set[str] = set()
        pagetoken = None
        pages = 0
        partial = False

        while pages < self.config.max_pages:
            if pages > 0:
                await self._sleep(self.config.page_delay)
            try:
                payload = await self._request_page(base, route, pagetoken, pages + 1)
            except ProviderPageNFailure as exc:
                logger.warning("Stopping pagination after %d page(s): %s", pages, exc)
                partial = True
                break
            pages += 1

            results = payload.get("results", [])
            logger.info("Fetched %d results on page %d", len(results), pages)
            for result in results:
                candidate = google_places.to_candidate(result)
                if candidate is None or candidate.id in seen:
                    continue
                seen.add(candidate.id)
                candidates.append(candidate)

            pagetoken = payload.get("next_page_token")
            if not pagetoken or len(candidates) >= size:
                break

        return CandidatePool(candidates=tuple(candidates[:size]), partial=partial, pages_fetched=pages)
