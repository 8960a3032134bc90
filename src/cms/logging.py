"""Structured logging configuration using structlog."""

import contextlib
import logging
import sys
from typing import Any

import structlog


def configure_logging(debug: bool = False, json_logs: bool = True) -> None:
    """Configure structlog for JSON or console output.

    Loggers are not cached on first use, so a module-level ``logger`` can be
    swapped out after configuration.

    Args:
        debug: Enable debug-level logging when True.
        json_logs: Render JSON lines when True, human-readable text otherwise.
    """
    level = logging.DEBUG if debug else logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def emit(logger: Any, level: str, event: str, **fields: Any) -> None:
    """Log one event, discarding any exception raised by the sink.

    Tree, sanitizer and gate results never depend on whether a log write
    succeeded.

    Args:
        logger: Bound structlog logger.
        level: Method name, e.g. ``"debug"`` or ``"warning"``.
        event: Snake-case event name.
        **fields: Event key-value pairs.
    """
    with contextlib.suppress(Exception):
        getattr(logger, level)(event, **fields)
