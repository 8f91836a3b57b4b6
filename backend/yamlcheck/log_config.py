"""Structured logging setup shared by the API server and the CLI."""

import logging
import sys
from typing import Optional, TextIO

import structlog


def configure_logging(debug: bool = False, level: str = "info", stream: Optional[TextIO] = None) -> None:
    """Configure structlog once per entry point.

    Console output in debug mode, JSON lines otherwise. The CLI passes
    sys.stderr so stdout stays clean for results.
    """
    log_level = logging.DEBUG if debug else logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )
