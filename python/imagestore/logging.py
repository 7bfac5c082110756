"""Structured logging configuration using structlog.

Provides JSON-formatted logs with consistent context including:
- request_id: Correlation ID supplied by the caller
- owner_id: Owner of the assets being stored (when available)
- timestamp: ISO8601 formatted timestamp

Usage:
    from imagestore.logging import get_logger, configure_logging

    # Configure once at startup
    configure_logging()

    # Get a logger for a module
    logger = get_logger(__name__)
    logger.info("storage.upload.finished", key=key)

Download URLs embed access tokens and must not be logged verbatim.
"""

import logging
import sys
from contextvars import ContextVar

import structlog

from imagestore.config import get_settings

# Context variables for call-scoped logging
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
owner_id_var: ContextVar[str | None] = ContextVar("owner_id", default=None)


def add_request_context(logger: logging.Logger, method_name: str, event_dict: dict) -> dict:
    """Add call context to all log entries.

    Injects all non-None ContextVar values into the log event dict.
    """
    request_id = request_id_var.get()
    owner_id = owner_id_var.get()

    if request_id:
        event_dict["request_id"] = request_id
    if owner_id:
        event_dict["owner_id"] = owner_id

    return event_dict


def configure_logging(json_format: bool | None = None) -> None:
    """Configure structlog for the application.

    Args:
        json_format: If True, output JSON logs. If False, output console-friendly logs.
            Defaults to the LOG_JSON setting.
    """
    if json_format is None:
        json_format = get_settings().log_json

    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_request_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.INFO)

    # Silence noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger for the given name.

    Args:
        name: Logger name (typically __name__).

    Returns:
        A bound structlog logger.
    """
    return structlog.get_logger(name)


def set_request_context(request_id: str | None, owner_id: str | None = None) -> None:
    """Set call context for the current async context.

    Args:
        request_id: The request correlation ID.
        owner_id: The owner whose assets are being handled (optional).
    """
    request_id_var.set(request_id)
    if owner_id is not None:
        owner_id_var.set(owner_id)


def clear_request_context() -> None:
    """Clear all call-scoped context."""
    request_id_var.set(None)
    owner_id_var.set(None)
