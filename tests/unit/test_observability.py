"""
Unit tests for the observability module.

Tests the structured logging used across Warden.
"""

from __future__ import annotations

import json
import logging
import sys

import pytest

from warden.observability import (
    HumanReadableFormatter,
    StructuredFormatter,
    WardenLogger,
    configure_logging,
    get_logger,
)


def _record(msg: str = "Test message", level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="warden.test",
        level=level,
        pathname="/app/warden/module.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def test_format_basic_record(self) -> None:
        """Test formatting a basic log record."""
        data = json.loads(StructuredFormatter().format(_record()))

        assert data["message"] == "Test message"
        assert data["level"] == "info"
        assert data["logger"] == "warden.test"
        assert data["timestamp"].endswith("Z")

    def test_format_without_timestamp(self) -> None:
        """Test formatting without timestamp."""
        formatter = StructuredFormatter(include_timestamp=False)
        data = json.loads(formatter.format(_record(level=logging.WARNING)))

        assert "timestamp" not in data
        assert data["level"] == "warning"

    def test_format_with_exception(self) -> None:
        """Test exception text is included."""
        try:
            raise ValueError("bad input")
        except ValueError:
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        data = json.loads(StructuredFormatter().format(record))
        assert "ValueError: bad input" in data["exception"]

    def test_extra_fields(self) -> None:
        """Test record extras become top-level keys."""
        data = json.loads(StructuredFormatter().format(_record(analysis_id="lp-1")))

        assert data["analysis_id"] == "lp-1"
        assert "args" not in data


class TestHumanReadableFormatter:
    """Tests for HumanReadableFormatter."""

    def test_format_basic_record(self) -> None:
        """Test formatting produces readable output."""
        output = HumanReadableFormatter(use_colors=False).format(_record())

        assert "INFO" in output
        assert "warden.test:" in output
        assert "Test message" in output

    def test_without_timestamp(self) -> None:
        """Test the timestamp can be left out."""
        output = HumanReadableFormatter(use_colors=False, include_timestamp=False).format(_record())
        assert not output.startswith("[")


class TestWardenLogger:
    """Tests for WardenLogger."""

    def test_get_logger_namespace(self) -> None:
        """Test loggers live under the warden namespace."""
        assert get_logger("reducer").logger.name == "warden.reducer"
        assert get_logger("warden.reducer").logger.name == "warden.reducer"
        assert get_logger("warden").logger.name == "warden"

    def test_context_fields(self, caplog) -> None:
        """Test persistent context is attached to records."""
        logger = WardenLogger("warden.test.context")
        logger.set_context(run="r1")

        with caplog.at_level(logging.INFO, logger="warden"):
            logger.info("hello", step=2)

        record = caplog.records[-1]
        assert record.run == "r1"
        assert record.step == 2

        logger.clear_context()
        with caplog.at_level(logging.INFO, logger="warden"):
            logger.info("again")
        assert not hasattr(caplog.records[-1], "run")

    def test_analysis_events(self, caplog) -> None:
        """Test analysis lifecycle events carry their fields."""
        logger = WardenLogger("warden.test.events")

        with caplog.at_level(logging.INFO, logger="warden"):
            logger.analysis_started("lp-1", record_count=10, principal_count=2)
            logger.analysis_completed(
                "lp-1",
                principal_count=2,
                finding_count=3,
                overall_score=12.5,
                duration_seconds=0.1,
            )

        started, completed = caplog.records[-2:]
        assert started.event_type == "analysis.started"
        assert started.record_count == 10
        assert completed.event_type == "analysis.completed"
        assert completed.overall_score == 12.5

    def test_analysis_failed(self, caplog) -> None:
        """Test failures are logged at error level."""
        logger = WardenLogger("warden.test.failed")

        with caplog.at_level(logging.ERROR, logger="warden"):
            logger.analysis_failed("lp-1", "boom")

        assert caplog.records[-1].levelno == logging.ERROR
        assert caplog.records[-1].error == "boom"

    def test_record_skipped(self, caplog) -> None:
        """Test skipped records are logged as warnings."""
        logger = WardenLogger("warden.test.skipped")

        with caplog.at_level(logging.WARNING, logger="warden"):
            logger.record_skipped("file.json#3", "missing actor_id")

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.event_type == "record.skipped"
        assert "file.json#3" in record.getMessage()


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture(autouse=True)
    def restore(self):
        """Restore the default configuration afterwards."""
        yield
        configure_logging(level="INFO", format="human")

    def test_level(self) -> None:
        """Test the namespace logger level is set."""
        configure_logging(level="debug")
        assert logging.getLogger("warden").level == logging.DEBUG

    def test_json_format(self) -> None:
        """Test json format installs the structured formatter."""
        configure_logging(format="json", output="stdout")
        handlers = logging.getLogger("warden").handlers

        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, StructuredFormatter)

    def test_reconfigure_replaces_handlers(self) -> None:
        """Test repeated configuration does not stack handlers."""
        configure_logging()
        configure_logging()
        assert len(logging.getLogger("warden").handlers) == 1
