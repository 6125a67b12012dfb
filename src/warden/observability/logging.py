"""
Structured logging configuration for Warden.

Provides consistent, structured logging across all modules
with support for different output formats and log levels.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs structured JSON logs.

    One JSON object per line. Fields passed through ``extra`` (analysis id,
    counts, event type) become top-level keys.
    """

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {}

        if self.include_timestamp:
            log_data["timestamp"] = (
                datetime.fromtimestamp(record.created, tz=timezone.utc)
                .isoformat()
                .replace("+00:00", "Z")
            )
        log_data["level"] = record.levelname.lower()
        log_data["logger"] = record.name
        log_data["message"] = record.getMessage()

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Formatter for terminal output: ``[time] LEVEL logger: message``."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True, include_timestamp: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as human-readable text."""
        parts = []

        if self.include_timestamp:
            timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
            parts.append(f"[{timestamp.strftime('%Y-%m-%d %H:%M:%S')}]")

        level = record.levelname
        if self.use_colors and level in self.COLORS:
            level = f"{self.COLORS[level]}{level}{self.RESET}"
        parts.append(f"{level:>8}")
        parts.append(f"{record.name}:")
        parts.append(record.getMessage())

        output = " ".join(parts)
        if record.exc_info:
            output += "\n" + self.formatException(record.exc_info)
        return output


class WardenLogger:
    """
    Wrapper around Python logging for Warden-specific events.

    Provides convenient methods for logging with context fields.
    """

    def __init__(self, name: str, level: int | None = None):
        """
        Initialize Warden logger.

        Args:
            name: Logger name
            level: Optional log level override
        """
        self.logger = logging.getLogger(name)
        if level is not None:
            self.logger.setLevel(level)
        self._context: dict[str, Any] = {}

    def set_context(self, **kwargs: Any) -> None:
        """Set persistent context fields for all logs."""
        self._context.update(kwargs)

    def clear_context(self) -> None:
        """Clear context fields."""
        self._context.clear()

    def _log(
        self,
        level: int,
        message: str,
        exc_info: bool = False,
        **kwargs: Any,
    ) -> None:
        extra = {**self._context, **kwargs}
        self.logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, message, exc_info=exc_info, **kwargs)

    def analysis_started(
        self,
        analysis_id: str,
        record_count: int,
        principal_count: int,
    ) -> None:
        """Log analysis start event."""
        self.info(
            "Analysis started",
            event_type="analysis.started",
            analysis_id=analysis_id,
            record_count=record_count,
            principal_count=principal_count,
        )

    def analysis_completed(
        self,
        analysis_id: str,
        principal_count: int,
        finding_count: int,
        overall_score: float,
        duration_seconds: float,
    ) -> None:
        """Log analysis completion event."""
        self.info(
            "Analysis completed",
            event_type="analysis.completed",
            analysis_id=analysis_id,
            principal_count=principal_count,
            finding_count=finding_count,
            overall_score=overall_score,
            duration_seconds=duration_seconds,
        )

    def analysis_failed(self, analysis_id: str, error: str) -> None:
        """Log analysis failure event."""
        self.error(
            "Analysis failed",
            event_type="analysis.failed",
            analysis_id=analysis_id,
            error=error,
        )

    def record_skipped(self, source: str, reason: str) -> None:
        """Log a skipped malformed record."""
        self.warning(
            f"Skipped malformed record from {source}: {reason}",
            event_type="record.skipped",
            source=source,
            reason=reason,
        )


def configure_logging(
    level: str = "INFO",
    format: str = "human",
    output: str = "stderr",
) -> None:
    """
    Configure logging for Warden.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Output format (human, json)
        output: Output destination (stderr, stdout)
    """
    root_logger = logging.getLogger("warden")
    root_logger.setLevel(getattr(logging, level.upper()))

    root_logger.handlers.clear()

    if output == "stdout":
        handler = logging.StreamHandler(sys.stdout)
    else:
        handler = logging.StreamHandler(sys.stderr)

    if format == "json":
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = HumanReadableFormatter()

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def get_logger(name: str) -> WardenLogger:
    """
    Get a Warden logger instance.

    Args:
        name: Logger name (typically module name)

    Returns:
        WardenLogger instance
    """
    if name == "warden" or name.startswith("warden."):
        return WardenLogger(name)
    return WardenLogger(f"warden.{name}")


# Configure logging from environment on import
_log_level = os.getenv("WARDEN_LOG_LEVEL", "INFO")
_log_format = os.getenv("WARDEN_LOG_FORMAT", "human")
configure_logging(level=_log_level, format=_log_format)
