"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file into environment
load_dotenv()

REPO_ROOT = Path(__file__).resolve().parents[2]


def _get_int_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_path_env(name: str, default: Path) -> Path:
    value = os.environ.get(name)
    if not value:
        return default
    return Path(value).expanduser()


OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
EMBEDDING_API_URL = os.getenv("MATCHFEED_EMBEDDING_URL", "https://api.openai.com/v1/embeddings")
EMBEDDING_MODEL = os.getenv("MATCHFEED_EMBEDDING_MODEL", "text-embedding-3-small")
EMBEDDING_DIM = _get_int_env("MATCHFEED_EMBEDDING_DIM", 1536)
EMBEDDING_MAX_CHARS = _get_int_env("MATCHFEED_EMBEDDING_MAX_CHARS", 8000)

ROUTING_API_URL = os.getenv("MATCHFEED_ROUTING_URL")
ROUTING_API_KEY = os.getenv("MATCHFEED_ROUTING_API_KEY")
TRAVEL_TTL_S = _get_float_env("MATCHFEED_TRAVEL_TTL_S", 120.0)
UPSTREAM_TIMEOUT_S = _get_float_env("MATCHFEED_UPSTREAM_TIMEOUT_S", 20.0)

BACKFILL_CONCURRENCY = _get_int_env("MATCHFEED_BACKFILL_CONCURRENCY", 5)

PAGE_SIZE_MIN = 1
PAGE_SIZE_MAX = 60
PAGE_SIZE = _get_int_env("MATCHFEED_PAGE_SIZE", 40)
SESSION_TTL_S = _get_float_env("MATCHFEED_SESSION_TTL_S", 600.0)

STATE_DIR = _get_path_env("MATCHFEED_STATE_DIR", REPO_ROOT / "state")
EMBEDDING_DB_PATH = _get_path_env("MATCHFEED_EMBEDDING_DB", STATE_DIR / "embeddings.sqlite")
PROFILES_PATH: Optional[Path] = _get_path_env("MATCHFEED_PROFILES_PATH", REPO_ROOT / "data" / "profiles.json")
SCORING_CONFIG_PATH = _get_path_env("MATCHFEED_SCORING_CONFIG", REPO_ROOT / "config" / "scoring.json")


def clamp_page_size(value: Optional[int]) -> int:
    if value is None:
        value = PAGE_SIZE
    return max(PAGE_SIZE_MIN, min(PAGE_SIZE_MAX, int(value)))
