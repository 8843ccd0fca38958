from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse

from .candidates.cache import RedisCache
from .candidates.config import DEFAULT_CANDIDATES_CONFIG
from .candidates.provider import CandidateProvider
from .extraction.strategies import FallbackExtractor
from .geo.geocoder import GoogleGeocoder
from .models import SearchRequest
from .pipeline.orchestrator import SearchOrchestrator
from .response.models import SearchFailure, SearchResponse

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Place Search API", version="1.0.0")


@lru_cache(maxsize=1)
def get_orchestrator() -> SearchOrchestrator:
    """Build the process-wide orchestrator. L2 is enabled only when ``REDIS_URL`` is set."""
    l2 = None
    if DEFAULT_CANDIDATES_CONFIG.l2_url:
        l2 = RedisCache(DEFAULT_CANDIDATES_CONFIG.l2_url)
    else:
        logger.info("REDIS_URL not set, running with the in-process cache only")
    return SearchOrchestrator(
        extractor=FallbackExtractor(),
        provider=CandidateProvider(DEFAULT_CANDIDATES_CONFIG, l2=l2),
        geocoder=GoogleGeocoder(),
    )


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post(
    "/search",
    response_model=SearchResponse,
    responses={502: {"model": SearchFailure}},
)
async def search(
    body: SearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
):
    result = await orchestrator.search(body.to_query())
    if isinstance(result, SearchFailure):
        return JSONResponse(status_code=502, content=result.model_dump(mode="json"))
    return result


@app.get("/cache/stats")
def cache_stats(orchestrator: SearchOrchestrator = Depends(get_orchestrator)) -> dict:
    return {
        "places": orchestrator.provider.cache_stats(),
        "geocoding": orchestrator.geocoder.cache.stats() if orchestrator.geocoder is not None else None,
    }
