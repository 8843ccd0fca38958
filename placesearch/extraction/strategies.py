from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from ..errors import LLMError, SchemaInvalid
from ..llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from ..llm.groq_client import complete_json
from ..models import Query
from .config import DEFAULT_EXTRACTION_CONFIG, ExtractionConfig
from .language import detect_language
from .models import (
    BaseConstraints,
    Clarification,
    Extraction,
    Intent,
    LLMIntentOutput,
    LLMPostConstraintsOutput,
    PostConstraints,
    SearchRoute,
)
from .patterns import detect_near_me, match_post_constraints, match_query, strip_near_me
from .prompts import INTENT_SYSTEM_PROMPT, POST_CONSTRAINTS_SYSTEM_PROMPT, build_user_message

logger = logging.getLogger(__name__)


def build_base_constraints(
    query: Query,
    route: SearchRoute,
    language: str,
    city_text: str | None,
    street_text: str | None,
    config: ExtractionConfig,
) -> tuple[SearchRoute, BaseConstraints]:
    """
    Shape the provider-facing constraints.

    A NEARBY route without an origin cannot be dispatched, so it is
    downgraded to TEXTSEARCH. An explicit ``query.target_city`` wins over
    any extracted city.
    """
    city = query.target_city or city_text
    if route is SearchRoute.NEARBY and query.origin is None:
        route = SearchRoute.TEXTSEARCH

    location = None
    radius = None
    if query.origin is not None and (route is SearchRoute.NEARBY or not (city or street_text)):
        location = query.origin
        radius = config.nearby_radius_m

    text = strip_near_me(query.text) if route is SearchRoute.NEARBY else query.text.strip()
    return route, BaseConstraints(
        query_text=text,
        language=language,
        region=config.default_region,
        location=location,
        radius_m=radius,
        city_text=city,
        street_text=street_text,
    )


def assess_clarification(query: Query, near_me: bool, base: BaseConstraints) -> Clarification:
    tokens = query.text.split()
    if len(tokens) <= 1 and not (base.city_text or base.street_text):
        return Clarification(needed=True, reason="single_token")
    if near_me and query.origin is None and not (base.city_text or base.street_text):
        return Clarification(needed=True, reason="missing_location")
    return Clarification()


def default_extraction(query: Query, config: ExtractionConfig = DEFAULT_EXTRACTION_CONFIG) -> Extraction:
    """Terminal fallback: a general text search with no post constraints."""
    _, base = build_base_constraints(
        query, SearchRoute.TEXTSEARCH, query.locale or "en", None, None, config,
    )
    return Extraction(
        intent=Intent(route=SearchRoute.TEXTSEARCH, confidence=0.0, reason="default_text_search"),
        base=base,
        degraded=True,
        source="default",
        clarification=assess_clarification(query, detect_near_me(query.text), base),
    )


class ExtractionStrategy(ABC):
    @abstractmethod
    async def extract(self, query: Query) -> Extraction:
        ...


class PatternExtractionStrategy(ExtractionStrategy):
    """Keyword and regex matching. Never performs I/O."""

    def __init__(self, config: ExtractionConfig = DEFAULT_EXTRACTION_CONFIG) -> None:
        self.config = config

    async def extract(self, query: Query) -> Extraction:
        return self.extract_sync(query)

    def extract_sync(self, query: Query) -> Extraction:
        match = match_query(query.text)
        language = detect_language(query.text, query.locale)
        requested = SearchRoute.NEARBY if match.near_me and not match.city_text else SearchRoute.TEXTSEARCH
        route, base = build_base_constraints(
            query, requested, language, match.city_text, match.street_token, self.config,
        )
        confidence = 0.6 if match.cues else 0.3
        return Extraction(
            intent=Intent(route=route, confidence=confidence, reason="pattern:" + ("+".join(match.cues) or "generic")),
            base=base,
            post=match_post_constraints(query.text),
            street_token=match.street_token,
            source="pattern",
            clarification=assess_clarification(query, match.near_me, base),
        )


class LLMExtractionStrategy(ExtractionStrategy):
    """
    Two Groq calls issued concurrently: one for intent and location, one for
    post constraints.

    Raises ``LLMError`` (or a subclass) when the intent call fails. A failed
    post-constraints call is reported through ``post_failed`` so the caller
    can substitute the pattern constraints.
    """

    def __init__(
        self,
        llm_config: LLMConfig = DEFAULT_LLM_CONFIG,
        config: ExtractionConfig = DEFAULT_EXTRACTION_CONFIG,
    ) -> None:
        self.llm_config = llm_config
        self.config = config

    async def extract(self, query: Query) -> Extraction:
        extraction, _ = await self.extract_parts(query)
        return extraction

    async def extract_parts(self, query: Query) -> tuple[Extraction, bool]:
        user_message = build_user_message(query.text, query.locale, query.origin is not None)
        intent_result, post_result = await asyncio.gather(
            complete_json(INTENT_SYSTEM_PROMPT, user_message, LLMIntentOutput, self.llm_config),
            complete_json(POST_CONSTRAINTS_SYSTEM_PROMPT, user_message, LLMPostConstraintsOutput, self.llm_config),
            return_exceptions=True,
        )
        if isinstance(intent_result, BaseException):
            if isinstance(intent_result, LLMError):
                raise intent_result
            raise LLMError(f"intent call failed: {intent_result}") from intent_result

        post_failed = isinstance(post_result, BaseException)
        if post_failed:
            logger.warning("Post-constraints LLM call failed: %s", post_result)
            post = PostConstraints()
        else:
            post = post_result.to_constraints()

        language = intent_result.language or detect_language(query.text, query.locale)
        route, base = build_base_constraints(
            query,
            intent_result.route,
            language,
            intent_result.city_text,
            intent_result.street_text,
            self.config,
        )
        extraction = Extraction(
            intent=Intent(route=route, confidence=intent_result.confidence, reason=intent_result.reason),
            base=base,
            post=post,
            street_token=intent_result.street_text,
            source="llm",
        )
        return extraction, post_failed


class FallbackExtractor:
    """
    Race the LLM strategy against the pattern strategy.

    Both start together. The LLM result is used if it validates before the
    deadline; otherwise the pattern result is returned with ``degraded=True``.
    Always returns an ``Extraction``.
    """

    def __init__(
        self,
        primary: LLMExtractionStrategy | None = None,
        fallback: PatternExtractionStrategy | None = None,
        config: ExtractionConfig = DEFAULT_EXTRACTION_CONFIG,
    ) -> None:
        self.primary = primary or LLMExtractionStrategy(config=config)
        self.fallback = fallback or PatternExtractionStrategy(config)
        self.config = config

    async def extract(self, query: Query) -> Extraction:
        fallback_task = asyncio.create_task(self.fallback.extract(query))
        try:
            llm_extraction, post_failed = await asyncio.wait_for(
                self.primary.extract_parts(query), timeout=self.config.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("LLM extraction exceeded %.1fs, using pattern fallback", self.config.timeout)
            llm_extraction, post_failed = None, False
        except SchemaInvalid:
            logger.warning("LLM extraction failed schema validation, using pattern fallback", exc_info=True)
            llm_extraction, post_failed = None, False
        except LLMError as exc:
            logger.warning("LLM extraction failed (%s), using pattern fallback", exc.code)
            llm_extraction, post_failed = None, False

        try:
            pattern_extraction = await fallback_task
        except Exception:  # noqa: BLE001
            logger.exception("Pattern extraction failed")
            pattern_extraction = None

        if llm_extraction is None:
            if pattern_extraction is None:
                return default_extraction(query, self.config)
            return pattern_extraction.model_copy(update={"degraded": True})

        if pattern_extraction is None:
            return llm_extraction.model_copy(update={"degraded": post_failed})
        return self._merge(query, llm_extraction, pattern_extraction, post_failed)

    def _merge(self, query: Query, llm: Extraction, pattern: Extraction, post_failed: bool) -> Extraction:
        street = llm.street_token or pattern.street_token
        base = llm.base
        if base.street_text is None and street:
            base = base.model_copy(update={"street_text": street})
        near_me = detect_near_me(query.text)
        return llm.model_copy(
            update={
                "base": base,
                "post": pattern.post if post_failed else llm.post,
                "street_token": street,
                "degraded": post_failed,
                "clarification": assess_clarification(query, near_me, base),
            }
        )
