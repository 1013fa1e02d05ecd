from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_LOG_DIR_ENV = "SENSOR_LOG_DIR"
_BAUD_RATE_ENV = "SENSOR_BAUD_RATE"
_READ_TIMEOUT_ENV = "SENSOR_READ_TIMEOUT"
_POLL_INTERVAL_ENV = "SENSOR_POLL_INTERVAL"
_PRUNE_INTERVAL_ENV = "SENSOR_PRUNE_INTERVAL"
_BUFFER_CAPACITY_ENV = "SENSOR_BUFFER_CAPACITY"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    log_dir: str
    baud_rate: int
    read_timeout: float
    poll_interval: float
    prune_interval: float
    buffer_capacity: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


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


def _read_positive_float(name: str, default: float) -> float:
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
        log_dir=_read_str_env(_LOG_DIR_ENV, "."),
        baud_rate=_read_positive_int(_BAUD_RATE_ENV, 9600),
        read_timeout=_read_positive_float(_READ_TIMEOUT_ENV, 0.05),
        poll_interval=_read_positive_float(_POLL_INTERVAL_ENV, 0.01),
        prune_interval=_read_positive_float(_PRUNE_INTERVAL_ENV, 3600.0),
        # One slot stays reserved for the terminator, so at least two are needed.
        buffer_capacity=max(_read_positive_int(_BUFFER_CAPACITY_ENV, 64), 2),
        log_level=_read_log_level("INFO"),
    )
