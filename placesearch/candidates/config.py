from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class CandidatesConfig:
    api_key: str = os.getenv("GOOGLE_API_KEY", "")
    pool_size: int = int(os.getenv("PLACES_POOL_SIZE", "30"))
    max_pages: int = int(os.getenv("PLACES_MAX_PAGES", "3"))
    # Google rejects a next_page_token used before it becomes valid.
    page_delay: float = float(os.getenv("PLACES_PAGE_DELAY_SECONDS", "2.0"))
    request_timeout: float = float(os.getenv("PLACES_REQUEST_TIMEOUT_SECONDS", "10"))
    l1_ttl: float = float(os.getenv("CACHE_PLACES_L1_TTL_SECONDS", "300"))
    l1_size: int = int(os.getenv("CACHE_PLACES_L1_SIZE", "1000"))
    l2_url: str = os.getenv("REDIS_URL", "")
    l2_ttl: float = float(os.getenv("CACHE_PLACES_L2_TTL_SECONDS", "900"))

    def __post_init__(self) -> None:
        if not 600 <= self.l2_ttl <= 1800:
            logger.warning("L2 TTL %.0fs is outside the 10-30 minute window", self.l2_ttl)


DEFAULT_CANDIDATES_CONFIG = CandidatesConfig()
