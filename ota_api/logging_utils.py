"""Logging configuration shared by the ``ota_api`` loggers and uvicorn.

The server runs under uvicorn, which installs its own logging config at
startup. Building one ``dictConfig`` mapping for both keeps request logs and
service logs on the same handler and format.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"
DEFAULT_LEVEL = "INFO"


def level_from_env(default: str = DEFAULT_LEVEL) -> str:
    """Return the level name selected by ``OTA_LOG_LEVEL`` or ``OTA_DEBUG``.

    Unknown level names fall back to ``default``.
    """
    explicit = os.getenv("OTA_LOG_LEVEL", "").strip()
    if explicit:
        if explicit.isdigit():
            explicit = logging.getLevelName(int(explicit))
        name = str(explicit).upper()
        if isinstance(logging.getLevelName(name), int):
            return name
        return default
    if os.getenv("OTA_DEBUG", "").strip().lower() in {"1", "true", "yes", "on"}:
        return "DEBUG"
    return default


def build_log_config(level: str) -> Dict[str, Any]:
    """Return the ``dictConfig`` mapping passed to ``uvicorn.run(log_config=...)``."""
    handler = {"handlers": ["console"], "level": level, "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "compact": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "compact",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "ota_api": dict(handler),
            "uvicorn": dict(handler),
            "uvicorn.error": {"level": level},
            "uvicorn.access": dict(handler),
        },
    }
