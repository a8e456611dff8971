"""Process-wide logging for the API, the inventory client and the room search."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from roomadvisor.utils.config import get_settings


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Per-request lines from the HTTP stack; only shown when running at DEBUG.
HTTP_CLIENT_LOGGERS = ("httpx", "httpcore")

_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    """Install the stdout handler once, at ``level`` or the configured LOG_LEVEL."""
    global _configured
    if _configured:
        return

    resolved_level = (level or get_settings().log_level).upper()
    logging.basicConfig(level=resolved_level, format=LOG_FORMAT, stream=sys.stdout)

    if logging.getLevelName(resolved_level) != logging.DEBUG:
        for name in HTTP_CLIENT_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
