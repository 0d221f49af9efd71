from __future__ import annotations

import math
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_WINDOW_START_ENV = "HEAT_RATIO_WINDOW_START"
_WINDOW_END_ENV = "HEAT_RATIO_WINDOW_END"
_INVERT_ENV = "INVERT_HEAT_RATIOS"
_DOWNSTREAM_LIMIT_ENV = "DOWNSTREAM_TEMP_LIMIT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    heat_ratio_window_start: int
    heat_ratio_window_end: int
    invert_heat_ratios: bool
    downstream_temp_limit: Optional[float]
    log_level: str


def _read_millis(name: str, default: int) -> int:
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
    return parsed if parsed >= 0 else default


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUTHY:
        return True
    if candidate in _FALSY:
        return False
    return default


def _read_optional_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if math.isfinite(parsed) and parsed > 0 else default


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
        heat_ratio_window_start=_read_millis(_WINDOW_START_ENV, 55000),
        heat_ratio_window_end=_read_millis(_WINDOW_END_ENV, 75000),
        invert_heat_ratios=_read_bool(_INVERT_ENV, False),
        downstream_temp_limit=_read_optional_float(_DOWNSTREAM_LIMIT_ENV, None),
        log_level=_read_log_level("INFO"),
    )
