"""structlog configuration shared by the API, proxy and bootstrap entrypoints."""

from __future__ import annotations

import logging
import sys

import structlog

from themehook.log_redaction import make_log_redactor
from themehook.settings import log_format, log_level

_configured = False


def configure_logging(*, force: bool = False) -> None:
    """Configure structlog and route stdlib logging through the same level.

    Safe to call more than once; only the first call takes effect unless
    ``force`` is set.
    """
    global _configured
    if _configured and not force:
        return

    level = getattr(logging, log_level(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer: structlog.types.Processor
    if log_format() == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            make_log_redactor(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True
