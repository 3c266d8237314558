"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from .settings import APP_VERSION, settings


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add application context to log events.

    Adds service name and version to every log entry.
    """
    event_dict["service"] = "cache-inspector"
    event_dict["version"] = APP_VERSION
    return event_dict


def configure_structlog(json_logs: bool = False, verbose: bool = False) -> None:
    """
    Configure structlog for the command-line tools.

    Args:
        json_logs: If True, output JSON logs. If False, use human-readable console format
                   when DEBUG is set, JSON otherwise.
        verbose: Lower the threshold from ERROR to INFO.

    Logs are written to stderr; stdout is reserved for the report itself.
    """
    if json_logs or settings.LOG_JSON or not settings.DEBUG:
        processors: list[Processor] = [
            structlog.contextvars.merge_contextvars,
            add_app_context,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            structlog.contextvars.merge_contextvars,
            add_app_context,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    level = logging.INFO if (verbose or settings.DEBUG) else logging.ERROR
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
        force=True,
    )

    # redis-py logs every retry at DEBUG/WARNING; keep it out of operator output
    logging.getLogger("redis").setLevel(logging.ERROR)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger

    Usage:
        logger = get_logger(__name__)
        logger.info("redis_ping_ok", host=config.host, latency_ms=latency_ms)
    """
    return structlog.get_logger(name)


__all__ = ["configure_structlog", "get_logger"]
