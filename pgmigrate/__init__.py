"""
pgmigrate - Saga-driven database migration for hosted applications

Moves an application from its legacy shared database to a newly provisioned
Postgres database. None of the remote operations involved are transactional,
so the migration runs as a saga:

- Steps run strictly in order, and may enqueue follow-up steps
- Steps publish forward data for the steps after them
- Steps with side effects register a rollback
- Whatever happens, registered rollbacks run last-in first-out at the end

Usage:
    >>> from pgmigrate import SagaExecutor, build_migration_plan
    >>> from pgmigrate.clients import HerokuClient
    >>>
    >>> api = HerokuClient(api_key="...")
    >>> result = SagaExecutor().engage(build_migration_plan(api, "my-app"))
    >>> result.status
    <MigrationStatus.COMPLETED: 'completed'>

Custom steps:
    >>> from pgmigrate import Step, StepKind, StepOutcome
    >>>
    >>> class Announce(Step):
    ...     kind = StepKind.CUSTOM
    ...
    ...     def perform(self, forward):
    ...         notify_team()
    ...         return StepOutcome()
"""

from pgmigrate.core import (
    AbortCleanly,
    CompensationReport,
    CompensationStack,
    ControlPlaneError,
    ForwardDataError,
    ForwardRegistry,
    LoggingMigrationListener,
    MetricsMigrationListener,
    MigrationConfig,
    MigrationError,
    MigrationListener,
    MigrationResult,
    MigrationStatus,
    NeedsCompensation,
    RollbackError,
    SagaExecutor,
    Step,
    StepKind,
    StepOutcome,
    XactEmit,
    configure,
    get_config,
)
from pgmigrate.plan import build_migration_plan

__version__ = "0.1.0"

__all__ = [
    "AbortCleanly",
    "CompensationReport",
    "CompensationStack",
    "ControlPlaneError",
    "ForwardDataError",
    "ForwardRegistry",
    "LoggingMigrationListener",
    "MetricsMigrationListener",
    "MigrationConfig",
    "MigrationError",
    "MigrationListener",
    "MigrationResult",
    "MigrationStatus",
    "NeedsCompensation",
    "RollbackError",
    "SagaExecutor",
    "Step",
    "StepKind",
    "StepOutcome",
    "XactEmit",
    "build_migration_plan",
    "configure",
    "get_config",
]
