from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class ExtractionConfig:
    timeout: float = float(os.getenv("EXTRACTION_TIMEOUT_SECONDS", "3.0"))
    default_region: str | None = os.getenv("DEFAULT_REGION_CODE") or None
    nearby_radius_m: int = int(os.getenv("NEARBY_RADIUS_METERS", "1500"))


DEFAULT_EXTRACTION_CONFIG = ExtractionConfig()
