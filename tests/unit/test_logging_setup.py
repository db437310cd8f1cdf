"""Tests for operational logging configuration."""

import json
import logging
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from preview_server.bootstrap.logging_setup import (
    CorrelationIdFilter,
    JsonFormatter,
    configure_logging,
    redact_sensitive,
)


def _record(level=logging.INFO, exc_info=None, **attributes) -> logging.LogRecord:
    record = logging.LogRecord(
        name="preview_server.resolver",
        level=level,
        pathname=__file__,
        lineno=0,
        msg="Request path is hidden",
        args=(),
        exc_info=exc_info,
    )
    for key, value in attributes.items():
        setattr(record, key, value)
    return record


@pytest.fixture(name="json_formatter")
def json_formatter_fixture():
    """Create a JSON formatter instance."""
    return JsonFormatter("%Y-%m-%d %H:%M:%S")


def test_configure_logging_stdout_handler():
    """A stdout destination installs one JSON stream handler."""
    logger = configure_logging("DEBUG", "stdout")

    assert logger.logger.name == "preview_server"
    assert logger.logger.level == logging.DEBUG
    assert len(logger.logger.handlers) == 1
    handler = logger.logger.handlers[0]
    assert isinstance(handler, logging.StreamHandler)
    assert handler.stream is sys.stdout

    formatted = handler.formatter.format(
        _record(correlation_id="abc", component="resolver", path="/.env")
    )
    data = json.loads(formatted)
    assert data["component"] == "resolver"
    assert data["path"] == "/.env"
    assert data["correlation_id"] == "abc"


def test_configure_logging_defaults_to_stderr_at_warning():
    """Operational logs stay off stdout unless asked for."""
    logger = configure_logging()

    assert logger.logger.level == logging.WARNING
    assert logger.logger.handlers[0].stream is sys.stderr


def test_configure_logging_file_destination(tmp_path: Path):
    """File destinations rotate under the given path and persist records."""
    destination = tmp_path / "logs" / "preview.log"
    logger = configure_logging("WARNING", destination.as_posix())

    handler = logger.logger.handlers[0]
    assert handler.baseFilename == destination.as_posix()

    logging.getLogger("preview_server.resolver").warning("file log test")
    handler.flush()
    assert "file log test" in destination.read_text()


def test_configure_logging_emits_event():
    """Configuration announces itself with a structured event."""
    with patch("preview_server.bootstrap.logging_setup._build_handler") as mock_build:
        mock_handler = MagicMock()
        mock_handler.level = logging.INFO
        mock_build.return_value = mock_handler

        configure_logging("INFO", "stdout")

        record = mock_handler.handle.call_args[0][0]
        assert record.msg == "Logging configured"
        assert getattr(record, "event", None) == "logging_configured"
        assert getattr(record, "destination", None) == "stdout"
        assert getattr(record, "use_json", None) is True


def test_unknown_level_falls_back_to_info():
    """Unrecognized level names do not abort startup."""
    logger = configure_logging("LOUD", "stderr")
    assert logger.logger.level == logging.INFO


def test_correlation_id_filter_inserts_placeholder():
    """Records logged outside a request get a '-' correlation id."""
    record = _record()
    assert CorrelationIdFilter().filter(record)
    assert record.correlation_id == "-"


def test_json_formatter_fields_are_sorted(json_formatter):
    """Output keys are stable and ordered."""
    record = _record(
        correlation_id="id-1",
        component="resolver",
        event="hidden_path_blocked",
        method="GET",
        status_code=403,
    )
    output = json_formatter.format(record)
    data = json.loads(output)

    assert output == json_formatter.format(record)
    assert list(data) == sorted(data)
    assert data["event"] == "hidden_path_blocked"
    assert data["method"] == "GET"
    assert data["status_code"] == 403
    assert data["level"] == "INFO"


def test_json_formatter_defaults(json_formatter):
    """Missing context fields fall back to placeholders."""
    data = json.loads(json_formatter.format(_record()))
    assert data["correlation_id"] == "-"
    assert data["component"] == "unknown"
    assert "event" not in data


def test_json_formatter_with_exception(json_formatter):
    """Exceptions are rendered into the record."""
    try:
        raise PermissionError("denied")
    except PermissionError:
        record = _record(level=logging.ERROR, exc_info=sys.exc_info())
    data = json.loads(json_formatter.format(record))
    assert "PermissionError: denied" in data["exception"]


def test_json_formatter_redacts_string_extras(json_formatter):
    """Sensitive looking values are redacted before output."""
    data = json.loads(json_formatter.format(_record(client="token=abc")))
    assert data["client"] == "[REDACTED]"


@pytest.mark.parametrize("path", ["/secret/.env", "/keyboard.html", "/api-key.txt"])
def test_json_formatter_keeps_request_paths(json_formatter, path):
    """Request paths stay readable in forbidden and not-found events."""
    data = json.loads(
        json_formatter.format(_record(event="forbidden_path", path=path, route=path))
    )
    assert data["path"] == path
    assert data["route"] == path


@pytest.mark.parametrize(
    "value",
    [
        "Authorization: Bearer token123",
        "api-key=secret",
        "password=hunter2",
        "0123456789abcdef0123456789abcdef",
        "YWJjZGVmZ2hpamtsbW5vcHFyc3R1dnd4eXo=",
    ],
)
def test_redact_sensitive_values(value):
    """Credentials and long opaque strings are hidden."""
    assert redact_sensitive(value) == "[REDACTED]"


@pytest.mark.parametrize(
    "value", ["/docs/guide.txt", "/about", "127.0.0.1:5000", ""]
)
def test_redaction_keeps_safe_values(value):
    """Ordinary paths and addresses pass through."""
    assert redact_sensitive(value) == value


def test_redact_none_value():
    """None passes through untouched."""
    assert redact_sensitive(None) is None
