"""
DAO Core monitoring: structured logging.
"""

from daocore.monitoring.logging import (
    LoggingContextMiddleware,
    bind_context,
    clear_context,
    configure_logging,
    log_duration,
)

__all__ = [
    "LoggingContextMiddleware",
    "bind_context",
    "clear_context",
    "configure_logging",
    "log_duration",
]
