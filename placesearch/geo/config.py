from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class GeocodingConfig:
    api_key: str = os.getenv("GOOGLE_API_KEY", "")
    timeout: float = float(os.getenv("GEOCODING_TIMEOUT_SECONDS", "3.0"))
    cache_ttl: float = float(os.getenv("GEOCODING_CACHE_TTL_SECONDS", "86400"))
    cache_size: int = int(os.getenv("GEOCODING_CACHE_SIZE", "500"))


DEFAULT_GEOCODING_CONFIG = GeocodingConfig()
