from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Optional

from catalog_cache.core.env import load_env


PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_USER_DATA_DIR = Path.home() / ".catalog_cache" / "data"


@dataclass(frozen=True)
class Settings:
    environment: str  # development, production, staging, test
    data_dir: Path
    redis_url: str
    cache_prefix: str
    cache_version: str
    cache_list_ttl_seconds: int
    cache_stats_ttl_seconds: int
    cache_sweep_interval_seconds: int
    full_tier_ttl_seconds: int
    essential_limit: int
    preload_delay_ms: int
    startup_preload_delay_seconds: float
    catalog_api_base: str
    catalog_api_timeout: float
    log_level: str
    log_json: bool
    log_file: str

    @property
    def list_ttl(self) -> timedelta:
        return timedelta(seconds=self.cache_list_ttl_seconds)

    @property
    def stats_ttl(self) -> timedelta:
        return timedelta(seconds=self.cache_stats_ttl_seconds)

    @property
    def sweep_interval(self) -> timedelta:
        return timedelta(seconds=self.cache_sweep_interval_seconds)

    @property
    def full_tier_ttl(self) -> Optional[timedelta]:
        # 0 keeps the full tier until an explicit reload
        if self.full_tier_ttl_seconds <= 0:
            return None
        return timedelta(seconds=self.full_tier_ttl_seconds)


def _get_int(name: str, default: int, *, minimum: Optional[int] = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except (TypeError, ValueError):
        return default
    if minimum is not None and value < minimum:
        return default
    return value


def _get_float(name: str, default: float, *, minimum: Optional[float] = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw.strip())
    except (TypeError, ValueError):
        return default
    if minimum is not None and value < minimum:
        return default
    return value


def _get_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_str(name: str, default: str = "") -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip()


load_env()


def _default_data_dir() -> Path:
    env_dir = os.getenv("DATA_DIR")
    if env_dir and env_dir.strip():
        return Path(env_dir).expanduser()
    return DEFAULT_USER_DATA_DIR


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    environment = os.getenv("ENVIRONMENT", "development").strip().lower()
    if environment not in {"development", "production", "staging", "test"}:
        environment = "development"

    prefix = _get_str("CACHE_PREFIX", "catalog_cache").rstrip("_") or "catalog_cache"

    return Settings(
        environment=environment,
        data_dir=_default_data_dir(),
        redis_url=_get_str("REDIS_URL"),
        cache_prefix=prefix,
        cache_version=_get_str("CACHE_VERSION", "1.0.0") or "1.0.0",
        cache_list_ttl_seconds=_get_int("CACHE_LIST_TTL_SECONDS", 30 * 60, minimum=1),
        cache_stats_ttl_seconds=_get_int("CACHE_STATS_TTL_SECONDS", 15 * 60, minimum=1),
        cache_sweep_interval_seconds=_get_int("CACHE_SWEEP_INTERVAL_SECONDS", 30 * 60, minimum=1),
        full_tier_ttl_seconds=_get_int("FULL_TIER_TTL_SECONDS", 0, minimum=0),
        essential_limit=_get_int("ESSENTIAL_LIMIT", 10, minimum=1),
        preload_delay_ms=_get_int("PRELOAD_DELAY_MS", 300, minimum=0),
        startup_preload_delay_seconds=_get_float("STARTUP_PRELOAD_DELAY_SECONDS", 0.5, minimum=0.0),
        catalog_api_base=_get_str("CATALOG_API_BASE"),
        catalog_api_timeout=_get_float("CATALOG_API_TIMEOUT", 10.0, minimum=0.1),
        log_level=(_get_str("LOG_LEVEL", "INFO") or "INFO").upper(),
        log_json=_get_bool("LOG_JSON"),
        log_file=_get_str("LOG_FILE"),
    )


__all__ = ["Settings", "get_settings"]
