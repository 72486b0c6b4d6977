"""Process-wide logging: one stream handler, UTC timestamps, ``key=value`` context."""

from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Optional

from settings import get_settings

LOG_FORMAT = "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Attributes passed through ``extra=`` that are worth printing.
CONTEXT_KEYS = (
    "org_id",
    "sensor_id",
    "row_number",
    "reason",
    "reading_count",
    "point_count",
    "series_count",
    "interval_minutes",
    "range_hours",
    "generation",
    "error_count",
)

# Chatty client libraries only surface problems.
_QUIET_LOGGERS = ("httpx", "httpcore")

_configured = False


class ContextualFormatter(logging.Formatter):
    converter = time.gmtime

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        context_keys: Optional[Iterable[str]] = None,
    ) -> None:
        super().__init__(fmt=fmt or LOG_FORMAT, datefmt=datefmt or DATE_FORMAT)
        self.context_keys = tuple(context_keys) if context_keys is not None else CONTEXT_KEYS

    def context(self, record: logging.LogRecord) -> str:
        pairs = []
        for key in self.context_keys:
            value = record.__dict__.get(key)
            if value is not None:
                pairs.append(f"{key}={value}")
        return " ".join(pairs)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = self.context(record)
        return f"{message} | {context}" if context else message


def build_logging_config(level: str | int) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "contextual": {
                "()": ContextualFormatter,
                "context_keys": CONTEXT_KEYS,
            }
        },
        "handlers": {
            "stream": {
                "class": "logging.StreamHandler",
                "formatter": "contextual",
                "level": level,
            }
        },
        "loggers": {name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
        "root": {"level": level, "handlers": ["stream"]},
    }


def configure_logging(level: str | int | None = None) -> None:
    """Install the logging config on first call; later calls keep the first one."""
    global _configured
    if _configured:
        return
    dictConfig(build_logging_config(level if level is not None else get_settings().log_level))
    _configured = True
