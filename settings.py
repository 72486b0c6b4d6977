from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_STORE_PATH_ENV = "READING_STORE_PATH"
_TIME_RANGE_ENV = "DEFAULT_TIME_RANGE_HOURS"
_AUTO_SELECT_ENV = "AUTO_SELECT_COUNT"
_MAX_READINGS_ENV = "MAX_READINGS_PER_QUERY"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    store_path: Optional[str]
    default_time_range_hours: int
    auto_select_count: int
    max_readings_per_query: int
    log_level: str


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/readings.json"),
        default_time_range_hours=_read_positive_int(_TIME_RANGE_ENV, 24),
        auto_select_count=_read_positive_int(_AUTO_SELECT_ENV, 3),
        max_readings_per_query=_read_positive_int(_MAX_READINGS_ENV, 50000),
        log_level=_read_log_level("INFO"),
    )
