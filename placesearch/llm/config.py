from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class LLMConfig:
    api_key: str = os.getenv("GROQ_API_KEY", "")
    model: str = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    timeout: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "3.0"))
    max_tokens: int = 512
    enabled: bool = os.getenv("LLM_ENABLED", "true").lower() in {"1", "true", "yes"}


DEFAULT_LLM_CONFIG = LLMConfig()
