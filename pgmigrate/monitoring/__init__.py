"""
Monitoring for migration runs: structured logging and metrics.
"""

from pgmigrate.monitoring.logging import (
    ContextMigrationListener,
    MigrationContextFilter,
    MigrationJsonFormatter,
    clear_migration_context,
    json_handler,
    migration_context,
    set_migration_context,
)
from pgmigrate.monitoring.metrics import MigrationMetrics

__all__ = [
    "ContextMigrationListener",
    "MigrationContextFilter",
    "MigrationJsonFormatter",
    "MigrationMetrics",
    "clear_migration_context",
    "json_handler",
    "migration_context",
    "set_migration_context",
]
