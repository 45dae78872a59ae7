"""Structured logging configuration for Airport Run Sync."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import MutableMapping
from datetime import UTC, datetime
from typing import Any

# Record attributes rendered as context by both formatters
CONTEXT_FIELDS = ("run_id", "flight_number", "route", "cycle")


class DiagnosticFilter(logging.Filter):
    """Filter that gates debug log messages based on diagnostic tags.

    DEBUG records carrying a ``diagnostic_tag`` attribute (set via ``extra``)
    are only emitted when their tag is enabled.  Records above DEBUG, or
    without a tag, always pass through.

    Tags used by the scheduler:

    - ``polling``: per-run fetch progress inside a poll cycle
    - ``debug_gate``: the inputs used to resolve debug mode

    Configuration::

        RUNSYNC_DIAGNOSTIC_TAGS=polling,debug_gate  # enable specific tags
        RUNSYNC_DIAGNOSTIC_TAGS=*                   # enable all tags
    """

    def __init__(self, enabled_tags: frozenset[str] | None = None) -> None:
        """Initialize the diagnostic filter.

        Args:
            enabled_tags: Tags to allow.  ``None`` or empty suppresses all
                tagged diagnostics; a set containing ``"*"`` allows all.
        """
        super().__init__()
        self.enabled_tags: frozenset[str] = enabled_tags or frozenset()
        self.allow_all: bool = "*" in self.enabled_tags

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno != logging.DEBUG:
            return True

        tag: str | None = getattr(record, "diagnostic_tag", None)
        if tag is None:
            return True

        if self.allow_all:
            return True

        return tag in self.enabled_tags

    @classmethod
    def from_config_string(cls, tags_csv: str) -> DiagnosticFilter:
        """Create a filter from a comma-separated configuration string.

        Args:
            tags_csv: Comma-separated tags, e.g. ``"polling,debug_gate"``.

        Returns:
            A configured ``DiagnosticFilter``.
        """
        if not tags_csv.strip():
            return cls(frozenset())
        tags = frozenset(t.strip() for t in tags_csv.split(",") if t.strip())
        return cls(tags)


class StructuredFormatter(logging.Formatter):
    """Formatter that outputs structured log messages.

    Includes timestamp, level, component, message, and any run context.
    """

    def format(self, record: logging.LogRecord) -> str:
        # "runsync.executor" -> "executor"
        component = record.name.split(".")[-1] if "." in record.name else record.name

        timestamp = datetime.fromtimestamp(record.created, tz=UTC).strftime("%Y-%m-%d %H:%M:%S.%f")[
            :-3
        ]

        parts = [
            f"{timestamp}",
            f"[{record.levelname:8}]",
            f"[{component:12}]",
        ]

        context_parts = []
        for key in CONTEXT_FIELDS:
            if hasattr(record, key):
                context_parts.append(f"{key}={getattr(record, key)}")

        if context_parts:
            parts.append(f"[{' '.join(context_parts)}]")

        parts.append(record.getMessage())

        if record.exc_info:
            parts.append(self.formatException(record.exc_info))

        return " ".join(parts)


class JSONFormatter(logging.Formatter):
    """Formatter that outputs JSON log messages for machine parsing."""

    def format(self, record: logging.LogRecord) -> str:
        component = record.name.split(".")[-1] if "." in record.name else record.name

        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "component": component,
            "message": record.getMessage(),
        }

        for key in (*CONTEXT_FIELDS, "context", "error_type"):
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ContextAdapter(logging.LoggerAdapter[logging.Logger]):
    """Logger adapter that adds context to all log messages.

    Usage:
        logger = get_logger(__name__)
        run_logger = logger.with_context(run_id="3f2a9c1e", flight_number="AA100")
        run_logger.info("Polling flight status")
    """

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        extra = kwargs.get("extra", {})
        if self.extra is not None:
            extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


class RunSyncLogger(logging.Logger):
    """Custom logger with context support."""

    def with_context(self, **context: Any) -> ContextAdapter:
        """Create a logger adapter with additional context.

        Args:
            **context: Context fields to add to all log messages.

        Returns:
            ContextAdapter with the specified context.
        """
        return ContextAdapter(self, context)


logging.setLoggerClass(RunSyncLogger)


def get_logger(name: str) -> RunSyncLogger:
    """Get a logger with the custom RunSyncLogger class.

    Args:
        name: Logger name (typically __name__).

    Returns:
        RunSyncLogger instance.
    """
    return logging.getLogger(name)  # type: ignore[return-value]


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    replace_handlers: bool = True,
    diagnostic_tags: str = "",
) -> None:
    """Configure logging for the application.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR).
        json_format: If True, output JSON-formatted logs.
        replace_handlers: If True, remove existing root handlers first.
        diagnostic_tags: Comma-separated diagnostic tags to enable for tagged
            DEBUG records.  ``"*"`` enables all; empty enables none.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    if replace_handlers:
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(StructuredFormatter())

    handler.addFilter(DiagnosticFilter.from_config_string(diagnostic_tags))

    root_logger.addHandler(handler)

    logging.getLogger("runsync").setLevel(numeric_level)


def short_id(run_id: str) -> str:
    """Return the 8-character prefix used to identify runs in log lines."""
    return run_id[:8]
