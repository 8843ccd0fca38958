from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class FilterConfig:
    city_within_km: float = float(os.getenv("CITY_WITHIN_KM", "10"))
    city_suburbs_km: float = float(os.getenv("CITY_SUBURBS_KM", "20"))


DEFAULT_FILTER_CONFIG = FilterConfig()
