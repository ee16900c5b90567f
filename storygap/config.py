# storygap/config.py

"""
Environment-driven settings.

- Reads .env once at import (python-dotenv)
- Accepts the HF token from HF_TOKEN or HUGGINGFACEHUB_API_TOKEN
- LLM_MODELS is an ordered, comma-separated fallback chain
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

from dotenv import load_dotenv

load_dotenv()

PRIMARY_MODEL = "meta-llama/Meta-Llama-3.1-8B-Instruct"
FALLBACK_MODEL = "meta-llama/Llama-3.2-3B-Instruct"
DEFAULT_MODELS: Tuple[str, ...] = (PRIMARY_MODEL, FALLBACK_MODEL)

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    hf_token: str
    models: Tuple[str, ...]
    timeout_s: float
    ambiguity_check: bool
    log_level: str
    cors_origins: Tuple[str, ...]


def _split_csv(value: str) -> Tuple[str, ...]:
    return tuple(p.strip() for p in value.split(",") if p.strip())


@lru_cache
def get_settings() -> Settings:
    token = os.getenv("HF_TOKEN", "").strip() or os.getenv("HUGGINGFACEHUB_API_TOKEN", "").strip()
    models = _split_csv(os.getenv("LLM_MODELS", "")) or DEFAULT_MODELS
    return Settings(
        hf_token=token,
        models=models,
        timeout_s=float(os.getenv("HF_TIMEOUT_S", "60")),
        ambiguity_check=os.getenv("STORY_GAP_AMBIGUITY_CHECK", "").strip().lower() in _TRUTHY,
        log_level=os.getenv("STORY_GAP_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "*")) or ("*",),
    )
