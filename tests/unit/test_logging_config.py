"""Tests for logging configuration."""

import json
import logging
import re

import pytest
import structlog

from gamepanel.logging import (
    clear_context,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    setup_logging,
)


def strip_ansi(text):
    """Strip ANSI escape sequences from text."""
    ansi_escape = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")
    return ansi_escape.sub("", text)


def parse_json_lines(output):
    """Parse output containing multiple JSON lines."""
    lines = output.strip().split("\n")
    return [json.loads(line) for line in lines if line.strip()]


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test."""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


class TestLoggingSetup:
    def test_setup_logging_with_defaults(self, monkeypatch):
        monkeypatch.delenv("SERVICE_NAME", raising=False)
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        setup_logging()

        assert structlog.get_logger() is not None

    def test_json_format(self, capsys):
        setup_logging(service_name="gamepanel-test", log_format="json", log_level="INFO")

        logger = structlog.get_logger()
        logger.info("server_started", server_id="1", port=25565)

        entries = parse_json_lines(capsys.readouterr().err)
        log_entry = next((e for e in entries if e.get("event") == "server_started"), None)

        assert log_entry is not None
        assert log_entry["service"] == "gamepanel-test"
        assert log_entry["server_id"] == "1"
        assert log_entry["port"] == 25565  # noqa: PLR2004
        assert log_entry["level"] == "info"
        assert "timestamp" in log_entry
        assert log_entry["func_name"] == "test_json_format"
        assert "lineno" in log_entry

    def test_console_format(self, capsys):
        setup_logging(service_name="gamepanel-test", log_format="console", log_level="INFO")

        logger = structlog.get_logger()
        logger.info("server_started", server_id="1")

        output = strip_ansi(capsys.readouterr().err)

        assert "server_started" in output
        assert "server_id=1" in output

    def test_stdout_stays_clean(self, capsys):
        setup_logging(service_name="gamepanel-test", log_format="json", log_level="INFO")

        structlog.get_logger().warning("gateway_not_configured", fallback="mock")

        assert capsys.readouterr().out == ""

    def test_from_env(self, monkeypatch, capsys):
        monkeypatch.setenv("SERVICE_NAME", "env_service")
        monkeypatch.setenv("LOG_FORMAT", "json")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        setup_logging()

        structlog.get_logger().debug("debug_event", test=True)

        entries = parse_json_lines(capsys.readouterr().err)
        log_entry = next((e for e in entries if e.get("event") == "debug_event"), None)

        assert log_entry is not None
        assert log_entry["service"] == "env_service"
        assert log_entry["level"] == "debug"

    def test_log_level_filtering(self, capsys):
        setup_logging(service_name="gamepanel-test", log_format="console", log_level="WARNING")

        logger = structlog.get_logger()
        logger.info("info_event")
        logger.warning("warning_event")
        logger.error("error_event")

        output = strip_ansi(capsys.readouterr().err)

        assert "info_event" not in output
        assert "warning_event" in output
        assert "error_event" in output


class TestCorrelation:
    def test_set_correlation_id_generates_one(self):
        correlation_id = set_correlation_id()

        assert len(correlation_id) == 12  # noqa: PLR2004
        assert get_correlation_id() == correlation_id

    def test_correlation_id_is_logged(self, capsys):
        setup_logging(service_name="gamepanel-test", log_format="json", log_level="INFO")
        set_correlation_id("poll-1")

        structlog.get_logger().info("reconcile_complete")

        entries = parse_json_lines(capsys.readouterr().err)
        log_entry = next((e for e in entries if e.get("event") == "reconcile_complete"), None)
        assert log_entry["correlation_id"] == "poll-1"

    def test_clear_context(self):
        set_correlation_id("poll-1")

        clear_context()

        assert get_correlation_id() is None


class TestGetLogger:
    def test_get_logger_with_name(self):
        setup_logging(service_name="gamepanel-test")
        logger = get_logger("gamepanel.reconciler")

        assert hasattr(logger, "info")


def test_error_with_exception_info(capsys):
    setup_logging(service_name="gamepanel-test", log_format="json", log_level="INFO")

    logger = structlog.get_logger()
    try:
        raise ValueError("Test error 12345")
    except ValueError as e:
        logger.error("reconciler_error", error=str(e), error_type=type(e).__name__, exc_info=True)

    entries = parse_json_lines(capsys.readouterr().err)
    log_entry = next((e for e in entries if e.get("event") == "reconciler_error"), None)

    assert log_entry is not None
    assert log_entry["error_type"] == "ValueError"
    assert "exception" in log_entry
