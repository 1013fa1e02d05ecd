from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Iterable, Sequence

from settings import get_settings

_DEFAULT_EXTRA_KEYS = (
    "device",
    "log_name",
    "value",
    "unit",
    "average",
    "max_age_seconds",
    "retained",
    "dropped",
    "reason",
)

_configured = False


class ContextualFormatter(logging.Formatter):

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context_parts: list[str] = []
        for key in self._extra_keys:
            value = getattr(record, key, None)
            if value is None:
                continue
            context_parts.append(f"{key}={value}")
        if context_parts:
            return f"{message} | {' '.join(context_parts)}"
        return message


class MaxLevelFilter(logging.Filter):
    """Pass records up to ``max_level`` so the console stream stays diagnostic."""

    def __init__(self, max_level: str | int = logging.INFO) -> None:
        super().__init__()
        if isinstance(max_level, str):
            max_level = logging.getLevelName(max_level.upper())
        self.max_level: int = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno <= self.max_level


def build_logging_config(level: str | int) -> dict:
    """Readings and rollovers go to stdout; warnings and errors go to stderr."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "contextual": {
                "()": "logging_config.ContextualFormatter",
                "fmt": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "style": "%",
                "extra_keys": list(_DEFAULT_EXTRA_KEYS),
            }
        },
        "filters": {
            "diagnostic_only": {
                "()": "logging_config.MaxLevelFilter",
                "max_level": "INFO",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "level": level,
                "formatter": "contextual",
                "filters": ["diagnostic_only"],
            },
            "problems": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "level": "WARNING",
                "formatter": "contextual",
            },
        },
        "root": {"handlers": ["console", "problems"], "level": level},
    }


def configure_logging(level: str | int | None = None) -> None:
    """Configure process-wide console logging once per process."""
    global _configured
    if _configured:
        return

    settings = get_settings()
    dictConfig(build_logging_config(level if level is not None else settings.log_level))
    _configured = True
