"""Observability infrastructure for the RouterOS API client.

Provides structured logging with per-session context.
"""

from routeros_api.infra.observability.logging import (
    JSONFormatter,
    SessionContextFilter,
    SessionLoggerAdapter,
    new_session_id,
    setup_logging,
)

__all__ = [
    "JSONFormatter",
    "SessionContextFilter",
    "SessionLoggerAdapter",
    "new_session_id",
    "setup_logging",
]
