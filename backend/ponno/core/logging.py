"""
Structured logging configuration with JSON formatting and request correlation.

This module provides centralized structlog configuration, request ID and user
ID correlation through context variables, and a small performance timer used
by the request middleware and application lifecycle hooks.
"""

import logging
import sys
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

import structlog
from structlog.types import EventDict, Processor

from ponno.core.config import get_settings

# Context variables for request correlation
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
user_id_ctx: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

SLOW_OPERATION_MS = 500


def add_request_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Add request and user identifiers from context to the log event.

    Args:
        logger: Logger instance
        method_name: Log method name
        event_dict: Event dictionary to modify

    Returns:
        Event dictionary with request_id and user_id when set
    """
    request_id = request_id_ctx.get()
    if request_id:
        event_dict["request_id"] = request_id
    user_id = user_id_ctx.get()
    if user_id:
        event_dict["user_id"] = user_id
    return event_dict


def add_timestamp(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO format UTC timestamp to log event."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def configure_logging() -> None:
    """
    Configure structured logging.

    Development uses the colored console renderer, every other environment
    renders JSON lines. Standard library logging is routed to stdout at the
    configured level so third-party records share the stream.
    """
    settings = get_settings()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_timestamp,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_request_context,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_development:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Set request ID in context for correlation.

    Args:
        request_id: Optional request ID, generates UUID if not provided

    Returns:
        Request ID that was set
    """
    if not request_id:
        request_id = str(uuid4())
    request_id_ctx.set(request_id)
    return request_id


def get_request_id() -> str:
    """Get current request ID from context, empty string if unset."""
    return request_id_ctx.get()


def set_user_id(user_id: Optional[str]) -> None:
    user_id_ctx.set(user_id)


def clear_context() -> None:
    """
    Clear all context variables.

    Called at the end of request processing to prevent context leakage
    between requests.
    """
    request_id_ctx.set("")
    user_id_ctx.set(None)


class PerformanceLogger:
    """
    Context manager for performance logging.

    Logs execution time of code blocks with structured context.
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        operation: str,
        **context: Any,
    ):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.start_time: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self.start_time = time.perf_counter()
        self.logger.debug(
            "Operation started",
            operation=self.operation,
            **self.context,
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is None:
            return

        duration_ms = (time.perf_counter() - self.start_time) * 1000

        if exc_type is not None:
            self.logger.error(
                "Operation failed",
                operation=self.operation,
                duration_ms=round(duration_ms, 2),
                error_type=exc_type.__name__,
                **self.context,
            )
        else:
            log_method = (
                self.logger.warning
                if duration_ms > SLOW_OPERATION_MS
                else self.logger.info
            )
            log_method(
                "Operation completed",
                operation=self.operation,
                duration_ms=round(duration_ms, 2),
                **self.context,
            )


def log_performance(
    logger: structlog.stdlib.BoundLogger,
    operation: str,
    **context: Any,
) -> PerformanceLogger:
    """
    Create performance logger context manager.

    Example:
        >>> logger = get_logger(__name__)
        >>> with log_performance(logger, "application_startup"):
        ...     initialize()
    """
    return PerformanceLogger(logger, operation, **context)
