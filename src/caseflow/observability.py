"""Structured logging for caseflow using structlog.

Every module obtains its logger through get_logger(__name__) and logs
key/value pairs rather than formatted strings.
"""

import logging
import sys
from typing import Any, cast

import structlog


def setup_logging(level: str = "INFO", log_format: str = "json") -> None:
    """Configure structlog once at application startup.

    Args:
        level: Minimum log level name (DEBUG, INFO, WARNING, ERROR).
        log_format: "json" for production, anything else renders for the console.
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    level_num = logging.getLevelName(level.upper())
    if not isinstance(level_num, int):
        level_num = logging.INFO

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to the given module name.

    Args:
        name: Logger name, normally the calling module's __name__.

    Returns:
        A bound structlog logger.
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
