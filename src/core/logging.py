from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from src.core.config import get_settings

_CONFIGURED = False

# SQL echo and HTTP client chatter stay at warning unless debugging
_QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "aiosqlite")


def setup_logging(level: int | str | None = None) -> None:
    """Configure structlog once; JSON lines by default, console output on request."""
    global _CONFIGURED
    if _CONFIGURED:
        return

    settings = get_settings()
    resolved = level if isinstance(level, int) else logging.getLevelName(
        (level or settings.log_level).upper()
    )
    if not isinstance(resolved, int):
        resolved = logging.INFO

    logging.basicConfig(level=resolved, format="%(message)s", stream=sys.stdout)

    renderer: Any = (
        structlog.dev.ConsoleRenderer()
        if settings.log_format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
            structlog.processors.dict_tracebacks,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(resolved),
        cache_logger_on_first_use=True,
    )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))

    _CONFIGURED = True
