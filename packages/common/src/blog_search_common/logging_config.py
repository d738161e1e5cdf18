"""Structured logging for blog search (structlog over stdlib logging).

Library modules only call get_logger() and emit snake_case events with
key/value context:

    logger.warning("search_degraded", label="users-fetch", error="...")

The API lifespan and the CLI callback call configure_logging_from_settings()
once at startup. Per-request context (the API's request id) is bound with
bind_log_context() and merged into every event logged by that task.
"""

import logging
import sys
from typing import Any, Optional, TextIO

import structlog

# Applied before the renderer in both output modes
_BASE_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
]


def _renderer(json_output: bool) -> list:
    if json_output:
        return [structlog.processors.JSONRenderer()]
    return [structlog.dev.set_exc_info, structlog.dev.ConsoleRenderer(colors=True)]


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    stream: Optional[TextIO] = None,
) -> None:
    """Route structlog events through the root logger.

    Calling it again replaces the previous configuration.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: JSON lines for production, console renderer otherwise
        stream: Destination stream (default: stdout)

    Example:
        >>> configure_logging(level="DEBUG", stream=sys.stderr)
        >>> get_logger(__name__).info("search_started", query="react")
    """
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=getattr(logging, level.upper()),
        force=True,
    )

    structlog.configure(
        processors=_BASE_PROCESSORS + _renderer(json_output),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging_from_settings(stream: Optional[TextIO] = None) -> None:
    """Configure logging from LOG_LEVEL and LOG_FORMAT."""
    from blog_search_common.config import get_settings

    settings = get_settings()
    configure_logging(
        level=settings.log_level,
        json_output=settings.log_format == "json",
        stream=stream,
    )


def bind_log_context(**context: Any) -> None:
    """Attach key/values to every event logged by the current task."""
    structlog.contextvars.bind_contextvars(**context)


def clear_log_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger (typically get_logger(__name__))."""
    return structlog.get_logger(name)
