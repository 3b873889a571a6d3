# brew_cashier/logging_config.py
"""
Logging setup for the cashier service.

Call setup_logging() once from the app's lifespan hook. Modules log through
`logging.getLogger(__name__)` and never configure handlers themselves.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from .config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Client libraries that log request URLs and headers at INFO/DEBUG.
_CLIENT_LOGGERS = ("httpx", "httpcore", "openai")


def _resolve_level(name: Optional[str]) -> int:
    level = logging.getLevelName((name or settings.LOG_LEVEL).strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(level: Optional[str] = None) -> None:
    """
    Send package logs to stdout at `level` (default: LOG_LEVEL setting).

    Unknown level names fall back to INFO. Unless running at DEBUG, client
    library loggers are held at WARNING so API keys never reach the output.
    """
    numeric_level = _resolve_level(level)

    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )
    logging.getLogger("brew_cashier").setLevel(numeric_level)

    client_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in _CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(client_level)

    logging.getLogger(__name__).debug(
        "Logging configured at %s", logging.getLevelName(numeric_level)
    )
