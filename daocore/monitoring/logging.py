"""
DAO Core - Structured Logging

Logging configuration using structlog.

Features:
- JSON output for production
- Pretty console output for development
- Request correlation IDs and per-request status lines
- Credential masking by key and for bearer values
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import structlog
from structlog.typing import EventDict, WrappedLogger

from daocore import __version__

SERVICE_NAME = "dao-core"
REDACTED = "[REDACTED]"

SENSITIVE_KEYS = frozenset({
    "password",
    "secret",
    "access_token",
    "api_key",
    "authorization",
    "private_key",
    "signing_key",
    "cookie",
})

_logger = structlog.get_logger("daocore.http")

# =============================================================================
# Custom Processors
# =============================================================================

def add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add ISO8601 timestamp to log entry."""
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


def add_service_info(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add service identification info."""
    event_dict["service"] = SERVICE_NAME
    event_dict["version"] = __version__
    return event_dict


def sanitize_sensitive_data(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Mask values whose key looks like a credential, and any bearer token value."""

    def _sanitize(obj: Any, depth: int = 0) -> Any:
        if depth > 10:
            return obj

        if isinstance(obj, dict):
            return {
                k: REDACTED
                if isinstance(k, str) and any(s in k.lower() for s in SENSITIVE_KEYS)
                else _sanitize(v, depth + 1)
                for k, v in obj.items()
            }
        elif isinstance(obj, list):
            return [_sanitize(item, depth + 1) for item in obj]
        elif isinstance(obj, str) and obj[:7].lower() == "bearer ":
            return REDACTED
        return obj

    result: EventDict = _sanitize(event_dict)
    return result


# =============================================================================
# Logging Configuration
# =============================================================================

def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    include_timestamps: bool = True,
    include_service_info: bool = True,
    sanitize_logs: bool = True,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Use JSON format (for production)
        include_timestamps: Add timestamps to logs
        include_service_info: Add service name/version
        sanitize_logs: Mask sensitive data
    """
    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.contextvars.merge_contextvars,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamps:
        processors.insert(0, add_timestamp)

    if include_service_info:
        processors.insert(0, add_service_info)

    if sanitize_logs:
        processors.append(sanitize_sensitive_data)

    if json_output:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

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
        level=getattr(logging, level.upper()),
    )

    # Reduce noise from third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# =============================================================================
# Context Management
# =============================================================================

def bind_context(**kwargs: Any) -> None:
    """Bind context variables that will appear in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


# =============================================================================
# Request Context Middleware
# =============================================================================

class LoggingContextMiddleware:
    """
    ASGI middleware to add request context to logs.

    Binds correlation_id, path and method for the duration of each HTTP
    request and logs its response status once it completes. The caller
    is bound later, after its token has been verified.
    """

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(self, scope: Any, receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        correlation_id = headers.get(b"x-correlation-id", b"").decode() or str(uuid4())

        bind_context(
            correlation_id=correlation_id,
            path=scope.get("path", ""),
            method=scope.get("method", ""),
        )

        status_code: int | None = None

        async def send_with_status(message: Any) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        start_time = time.monotonic()
        try:
            await self.app(scope, receive, send_with_status)
        finally:
            _logger.info(
                "http_request_completed",
                status_code=status_code,
                duration_ms=round((time.monotonic() - start_time) * 1000, 2),
            )
            clear_context()


# =============================================================================
# Performance Logging
# =============================================================================

@contextmanager
def log_duration(
    logger: Any,
    operation: str,
    level: str = "info",
    **extra_context: Any,
) -> Iterator[None]:
    """
    Context manager to log operation duration.

    Usage:
        with log_duration(logger, "snapshot_save", path=str(path)):
            repository.save(snapshot)
    """
    start_time = time.monotonic()
    log_method = getattr(logger, level)

    try:
        yield
        duration_ms = (time.monotonic() - start_time) * 1000
        log_method(
            f"{operation}_completed",
            duration_ms=round(duration_ms, 2),
            **extra_context,
        )
    except Exception as e:
        duration_ms = (time.monotonic() - start_time) * 1000
        logger.error(
            f"{operation}_failed",
            duration_ms=round(duration_ms, 2),
            error=str(e),
            **extra_context,
        )
        raise


__all__ = [
    "configure_logging",
    "bind_context",
    "clear_context",
    "LoggingContextMiddleware",
    "log_duration",
    "sanitize_sensitive_data",
]
