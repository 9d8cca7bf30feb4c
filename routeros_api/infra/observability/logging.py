"""Structured logging with per-session context.

Implements JSON-formatted logging where every record emitted by a
connection carries that connection's session ID and peer address, so
interleaved sessions in one process can be told apart.

Loggers are injected into connections (see ``SessionLoggerAdapter``);
there is no process-wide verbosity flag.
"""

import json
import logging
import sys
import uuid
from collections.abc import MutableMapping
from datetime import UTC, datetime
from typing import Any

NO_SESSION = "no-session"

# Record attributes copied into JSON output when present
EXTRA_FIELDS = ("host", "port", "tag", "command", "reply_kind", "state")


def new_session_id() -> str:
    """Generate a short random session ID."""
    return uuid.uuid4().hex[:12]


class SessionContextFilter(logging.Filter):
    """Logging filter that guarantees a session_id on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add a default session_id to records logged outside a session.

        Args:
            record: Log record to augment

        Returns:
            True to allow record to pass through
        """
        if not hasattr(record, "session_id"):
            record.session_id = NO_SESSION  # type: ignore
        return True


class SessionLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter binding one connection's session context.

    Per-call ``extra`` values are merged over the bound context instead of
    replacing it.

    Example:
        log = SessionLoggerAdapter(logger, {"session_id": "ab12", "host": "10.0.0.1"})
        log.debug("Sent sentence", extra={"tag": "3", "command": "/interface/print"})
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        merged = dict(self.extra or {})
        merged.update(kwargs.get("extra") or {})
        kwargs["extra"] = merged
        return msg, kwargs


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Formats log records as JSON with consistent fields for easy parsing
    and analysis in log aggregation systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log entry
        """
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
            "session_id": getattr(record, "session_id", NO_SESSION),
        }

        for name in EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_entry["stack_info"] = record.stack_info

        return json.dumps(log_entry, default=str)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: str | None = None,
) -> None:
    """Configure structured logging for the application.

    Logs go to stderr so that shell output on stdout stays clean.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Whether to use JSON formatting
        log_file: Optional file path for file logging
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    root_logger.handlers.clear()

    session_filter = SessionContextFilter()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.addFilter(session_filter)

    if json_format:
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(session_id)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.addFilter(session_filter)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    root_logger.debug(
        "Logging configured",
        extra={"level": level, "json_format": json_format, "log_file": log_file},
    )


__all__ = [
    "NO_SESSION",
    "JSONFormatter",
    "SessionContextFilter",
    "SessionLoggerAdapter",
    "new_session_id",
    "setup_logging",
]
