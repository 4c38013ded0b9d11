"""
Structured logging for migration runs

JSON formatting and a context filter so every log line of a run carries the
application and the step being executed.
"""

import json
import logging
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from pgmigrate.core.listeners import MigrationListener

# Context variables for propagating migration context
migration_context: ContextVar[dict[str, Any]] = ContextVar("migration_context", default={})


class MigrationJsonFormatter(logging.Formatter):
    """
    JSON formatter for migration logs with structured fields
    """

    # Fields to extract from log record if present
    _EXTRA_FIELDS = (
        "app",
        "step_name",
        "duration_ms",
        "attempt",
        "error_type",
    )

    def format(self, record: logging.LogRecord) -> str:
        log_entry = self._build_base_entry(record)
        self._add_migration_context(log_entry)
        self._add_record_extras(log_entry, record)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)

    def _build_base_entry(self, record: logging.LogRecord) -> dict[str, Any]:
        return {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

    def _add_migration_context(self, log_entry: dict[str, Any]) -> None:
        context = migration_context.get({})
        if context:
            log_entry.update(
                {
                    "app": context.get("app"),
                    "step_name": context.get("step_name"),
                }
            )

    def _add_record_extras(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        for field in self._EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)


class MigrationContextFilter(logging.Filter):
    """
    Logging filter that adds migration context to log records
    """

    def filter(self, record: logging.LogRecord) -> bool:
        context = migration_context.get({})

        record.app = context.get("app", "unknown")
        record.step_name = context.get("step_name", "")

        return True


def set_migration_context(app: str, step_name: str | None = None) -> None:
    migration_context.set({"app": app, "step_name": step_name})


def clear_migration_context() -> None:
    migration_context.set({})


class ContextMigrationListener(MigrationListener):
    """Keeps :data:`migration_context` in step with the executor."""

    def __init__(self, app: str):
        self.app = app

    def on_run_start(self, steps) -> None:
        set_migration_context(self.app)

    def on_step_enter(self, step) -> None:
        set_migration_context(self.app, step.label)

    def on_unwind_start(self, pending) -> None:
        set_migration_context(self.app, "rollback")

    def on_run_complete(self, result) -> None:
        clear_migration_context()

    def on_run_failed(self, result) -> None:
        clear_migration_context()


def json_handler(stream: Any = None) -> logging.Handler:
    """A stream handler emitting one JSON object per line."""
    handler = logging.StreamHandler(stream)
    handler.setFormatter(MigrationJsonFormatter())
    handler.addFilter(MigrationContextFilter())
    return handler
