"""Tests for structured logging utilities."""

import io
import json
import logging
import sys
from pathlib import Path

import pytest

from routeros_api.infra.observability.logging import (
    NO_SESSION,
    JSONFormatter,
    SessionContextFilter,
    SessionLoggerAdapter,
    new_session_id,
    setup_logging,
)


def test_session_ids_are_short_and_unique() -> None:
    """Session IDs should be 12 hex characters and differ between calls."""
    sid1 = new_session_id()
    sid2 = new_session_id()

    assert len(sid1) == 12
    int(sid1, 16)
    assert sid1 != sid2


def test_json_formatter_includes_session_fields() -> None:
    """JSON formatter should inject session ID and wire extras."""
    formatter = JSONFormatter()
    record = logging.LogRecord(
        name="routeros_api.infra.routeros.connection",
        level=logging.DEBUG,
        pathname=__file__,
        lineno=10,
        msg="Received !re",
        args=(),
        exc_info=None,
    )
    record.session_id = "ab12cd34ef56"
    record.host = "192.0.2.1"
    record.port = 8728
    record.tag = "3"
    record.reply_kind = "!re"

    payload = json.loads(formatter.format(record))

    assert payload["message"] == "Received !re"
    assert payload["level"] == "DEBUG"
    assert payload["component"] == "routeros_api.infra.routeros.connection"
    assert payload["session_id"] == "ab12cd34ef56"
    assert payload["host"] == "192.0.2.1"
    assert payload["port"] == 8728
    assert payload["tag"] == "3"
    assert payload["reply_kind"] == "!re"
    assert "command" not in payload
    assert "timestamp" in payload


def test_json_formatter_handles_exception_fields() -> None:
    """Formatter should include exception details and stack info when provided."""
    formatter = JSONFormatter()

    try:
        raise ValueError("boom")
    except ValueError:
        exc = sys.exc_info()

    record = logging.LogRecord(
        name="routeros_api",
        level=logging.ERROR,
        pathname=__file__,
        lineno=99,
        msg="failed",
        args=(),
        exc_info=exc,
    )
    record.stack_info = "stack info"

    payload = json.loads(formatter.format(record))

    assert payload["session_id"] == NO_SESSION
    assert payload["stack_info"] == "stack info"
    assert "ValueError: boom" in payload["exception"]


def test_session_filter_injects_default_id() -> None:
    """SessionContextFilter should attach a placeholder outside a session."""
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", args=(), exc_info=None)
    filt = SessionContextFilter()

    assert filt.filter(record) is True
    assert record.session_id == NO_SESSION


def test_session_filter_keeps_existing_id() -> None:
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", args=(), exc_info=None)
    record.session_id = "abc"

    SessionContextFilter().filter(record)

    assert record.session_id == "abc"


def test_adapter_merges_per_call_extra() -> None:
    """Per-call extra should be merged over the bound session context."""
    adapter = SessionLoggerAdapter(
        logging.getLogger("adapter-test"), {"session_id": "s1", "host": "192.0.2.1"}
    )

    msg, kwargs = adapter.process("Sent", {"extra": {"tag": "1", "host": "override"}})

    assert msg == "Sent"
    assert kwargs["extra"] == {"session_id": "s1", "host": "override", "tag": "1"}


def test_adapter_without_per_call_extra() -> None:
    adapter = SessionLoggerAdapter(logging.getLogger("adapter-test"), {"session_id": "s1"})

    _, kwargs = adapter.process("Sent", {})

    assert kwargs["extra"] == {"session_id": "s1"}


def test_setup_logging_configures_handlers(monkeypatch: pytest.MonkeyPatch) -> None:
    """setup_logging should configure a JSON console handler with session IDs."""
    stream = io.StringIO()
    monkeypatch.setattr("sys.stderr", stream)

    root_logger = logging.getLogger()
    original_handlers = list(root_logger.handlers)
    original_level = root_logger.level

    try:
        setup_logging(level="INFO", json_format=True, log_file=None)
        adapter = SessionLoggerAdapter(logging.getLogger("test_setup_logging"), {"session_id": "s9"})
        adapter.info("test message", extra={"tag": "7"})
    finally:
        root_logger.handlers = original_handlers
        root_logger.setLevel(original_level)

    log_output = stream.getvalue().strip().splitlines()[-1]
    payload = json.loads(log_output)

    assert payload["message"] == "test message"
    assert payload["session_id"] == "s9"
    assert payload["tag"] == "7"


def test_setup_logging_plain_text_format(monkeypatch: pytest.MonkeyPatch) -> None:
    """Non-JSON mode should still include the session ID in output."""
    stream = io.StringIO()
    monkeypatch.setattr("sys.stderr", stream)

    root_logger = logging.getLogger()
    original_handlers = list(root_logger.handlers)
    original_level = root_logger.level

    try:
        setup_logging(level="DEBUG", json_format=False)
        logging.getLogger("plain").debug("plain message")
    finally:
        root_logger.handlers = original_handlers
        root_logger.setLevel(original_level)

    last_line = stream.getvalue().strip().splitlines()[-1]
    parts = last_line.split(" - ")
    assert parts[1] == "plain"
    assert parts[2] == "DEBUG"
    assert parts[3] == NO_SESSION
    assert parts[4] == "plain message"


def test_setup_logging_respects_level(monkeypatch: pytest.MonkeyPatch) -> None:
    stream = io.StringIO()
    monkeypatch.setattr("sys.stderr", stream)

    root_logger = logging.getLogger()
    original_handlers = list(root_logger.handlers)
    original_level = root_logger.level

    try:
        setup_logging(level="WARNING", json_format=True)
        logging.getLogger("quiet").info("hidden")
        logging.getLogger("quiet").warning("shown")
    finally:
        root_logger.handlers = original_handlers
        root_logger.setLevel(original_level)

    output = stream.getvalue()
    assert "hidden" not in output
    assert "shown" in output


def test_setup_logging_file_handler(tmp_path: Path) -> None:
    """File handler should emit JSON formatted entries."""
    log_file = tmp_path / "log.json"
    root_logger = logging.getLogger()
    original_handlers = list(root_logger.handlers)
    original_level = root_logger.level

    try:
        setup_logging(level="INFO", json_format=False, log_file=str(log_file))
        logging.getLogger("filetest").info("file message", extra={"command": "/quit"})
    finally:
        for handler in list(root_logger.handlers):
            try:
                handler.flush()
            finally:
                handler.close()
        root_logger.handlers = original_handlers
        root_logger.setLevel(original_level)

    contents = log_file.read_text().strip().splitlines()
    assert contents, "log file should contain entries"
    payload = json.loads(contents[-1])
    assert payload["message"] == "file message"
    assert payload["command"] == "/quit"
    assert payload["session_id"] == NO_SESSION
