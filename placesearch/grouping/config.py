from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class GroupingConfig:
    exact_radius_m: float = float(os.getenv("GROUP_EXACT_RADIUS_M", "200"))
    nearby_radius_m: float = float(os.getenv("GROUP_NEARBY_RADIUS_M", "400"))
    cluster_label: str = "Nearby cluster"


DEFAULT_GROUPING_CONFIG = GroupingConfig()
