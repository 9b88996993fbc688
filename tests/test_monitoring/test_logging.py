"""
Tests for daocore.monitoring.logging.

Tests cover:
- Custom processors (timestamp, service info, sanitization)
- Logging configuration
- Context management (bind, clear)
- LoggingContextMiddleware
- Performance logging (log_duration)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from unittest.mock import MagicMock

import pytest
import structlog
import structlog.testing

from daocore import __version__
from daocore.monitoring.logging import (
    SERVICE_NAME,
    LoggingContextMiddleware,
    add_service_info,
    add_timestamp,
    bind_context,
    clear_context,
    configure_logging,
    log_duration,
    sanitize_sensitive_data,
)


@pytest.fixture(autouse=True)
def clean_context():
    clear_context()
    yield
    clear_context()
    structlog.reset_defaults()


# =============================================================================
# Processors
# =============================================================================


class TestProcessors:
    """Tests for custom structlog processors."""

    def test_add_timestamp(self) -> None:
        result = add_timestamp(None, "info", {"event": "test"})  # type: ignore[arg-type]

        assert "T" in result["timestamp"]
        assert result["timestamp"].endswith("+00:00")

    def test_add_service_info(self) -> None:
        result = add_service_info(None, "info", {"event": "test"})  # type: ignore[arg-type]

        assert result["service"] == SERVICE_NAME
        assert result["version"] == __version__

    def test_sanitize_redacts_sensitive_keys(self) -> None:
        event_dict: dict[str, Any] = {
            "event": "login",
            "password": "hunter2",
            "API_KEY": "abc",
            "nested": {"private_key": "k", "caller": "ST1TEST"},
            "items": [{"cookie": "c"}],
        }

        result = sanitize_sensitive_data(None, "info", event_dict)  # type: ignore[arg-type]

        assert result["password"] == "[REDACTED]"
        assert result["API_KEY"] == "[REDACTED]"
        assert result["nested"]["private_key"] == "[REDACTED]"
        assert result["nested"]["caller"] == "ST1TEST"
        assert result["items"][0]["cookie"] == "[REDACTED]"
        assert result["event"] == "login"

    def test_sanitize_redacts_caller_tokens(self) -> None:
        event_dict: dict[str, Any] = {
            "event": "request",
            "access_token": "eyJhbGciOi...",
            "jwt_secret_key": "k" * 32,
            "raw": "Bearer eyJhbGciOi...",
            "headers": ["bearer abc", "application/json"],
        }

        result = sanitize_sensitive_data(None, "info", event_dict)  # type: ignore[arg-type]

        assert result["access_token"] == "[REDACTED]"
        assert result["jwt_secret_key"] == "[REDACTED]"
        assert result["raw"] == "[REDACTED]"
        assert result["headers"] == ["[REDACTED]", "application/json"]

    def test_sanitize_keeps_governance_fields(self) -> None:
        event_dict = {"event": "vote_cast", "voter": "ST2", "weight": 500}

        assert sanitize_sensitive_data(None, "info", event_dict) == event_dict  # type: ignore[arg-type]


# =============================================================================
# Configuration
# =============================================================================


class TestConfigureLogging:
    def test_console_output(self) -> None:
        configure_logging(level="DEBUG")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
        assert processors[0] is add_service_info
        assert processors[1] is add_timestamp

    def test_json_output(self) -> None:
        configure_logging(level="INFO", json_output=True)

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_optional_processors_removed(self) -> None:
        configure_logging(
            include_timestamps=False,
            include_service_info=False,
            sanitize_logs=False,
        )

        processors = structlog.get_config()["processors"]
        assert add_timestamp not in processors
        assert add_service_info not in processors
        assert sanitize_sensitive_data not in processors

    def test_quiets_third_party_loggers(self) -> None:
        configure_logging()

        assert logging.getLogger("uvicorn.access").level == logging.WARNING


# =============================================================================
# Context
# =============================================================================


class TestContextManagement:
    def test_bind_merges(self) -> None:
        bind_context(correlation_id="abc")
        bind_context(caller="ST1TEST")

        assert structlog.contextvars.get_contextvars() == {
            "correlation_id": "abc",
            "caller": "ST1TEST",
        }

    def test_clear(self) -> None:
        bind_context(a=1)
        clear_context()

        assert structlog.contextvars.get_contextvars() == {}


class TestLoggingContextMiddleware:
    """Tests for the ASGI request context middleware."""

    def test_binds_request_context(self) -> None:
        seen: dict[str, Any] = {}

        async def app(scope, receive, send):
            seen.update(structlog.contextvars.get_contextvars())

        middleware = LoggingContextMiddleware(app)
        scope = {
            "type": "http",
            "path": "/api/v1/governance/proposals",
            "method": "POST",
            "headers": [(b"x-correlation-id", b"req-1"), (b"x-caller-id", b"ST9SPOOF")],
        }

        asyncio.run(middleware(scope, None, None))

        assert seen == {
            "correlation_id": "req-1",
            "path": "/api/v1/governance/proposals",
            "method": "POST",
        }
        assert structlog.contextvars.get_contextvars() == {}

    def test_generates_correlation_id(self) -> None:
        seen: dict[str, Any] = {}

        async def app(scope, receive, send):
            seen.update(structlog.contextvars.get_contextvars())

        scope = {"type": "http", "path": "/health", "method": "GET", "headers": []}

        asyncio.run(LoggingContextMiddleware(app)(scope, None, None))

        assert seen["correlation_id"]
        assert "caller" not in seen

    def test_logs_response_status(self) -> None:
        async def app(scope, receive, send):
            await send({"type": "http.response.start", "status": 201, "headers": []})
            await send({"type": "http.response.body", "body": b""})

        sent: list[dict[str, Any]] = []

        async def send(message):
            sent.append(message)

        scope = {"type": "http", "path": "/api/v1/governance/proposals", "method": "POST", "headers": []}

        with structlog.testing.capture_logs() as logs:
            asyncio.run(LoggingContextMiddleware(app)(scope, None, send))

        assert [m["type"] for m in sent] == ["http.response.start", "http.response.body"]
        completed = [e for e in logs if e["event"] == "http_request_completed"]
        assert len(completed) == 1
        assert completed[0]["status_code"] == 201
        assert completed[0]["duration_ms"] >= 0

    def test_passes_through_non_http(self) -> None:
        calls: list[str] = []

        async def app(scope, receive, send):
            calls.append(scope["type"])

        asyncio.run(LoggingContextMiddleware(app)({"type": "lifespan"}, None, None))

        assert calls == ["lifespan"]
        assert structlog.contextvars.get_contextvars() == {}


# =============================================================================
# log_duration
# =============================================================================


class TestLogDuration:
    def test_logs_completion(self) -> None:
        logger = MagicMock()

        with log_duration(logger, "snapshot_save", path="/tmp/x"):
            pass

        logger.info.assert_called_once()
        args, kwargs = logger.info.call_args
        assert args == ("snapshot_save_completed",)
        assert kwargs["path"] == "/tmp/x"
        assert kwargs["duration_ms"] >= 0

    def test_logs_failure_and_reraises(self) -> None:
        logger = MagicMock()

        with pytest.raises(OSError):
            with log_duration(logger, "snapshot_save"):
                raise OSError("disk full")

        logger.error.assert_called_once()
        args, kwargs = logger.error.call_args
        assert args == ("snapshot_save_failed",)
        assert kwargs["error"] == "disk full"
        logger.info.assert_not_called()

    def test_custom_level(self) -> None:
        logger = MagicMock()

        with log_duration(logger, "load", level="debug"):
            pass

        logger.debug.assert_called_once()
