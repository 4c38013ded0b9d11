# ============================================
# FILE: pgmigrate/core/__init__.py
# ============================================
"""
Core module for pgmigrate - contains the saga executor and its building blocks.
"""

from pgmigrate.core.cancellation import UnwindGuard
from pgmigrate.core.compensation import CompensationStack
from pgmigrate.core.config import MigrationConfig, configure, get_config
from pgmigrate.core.exceptions import (
    AbortCleanly,
    AddonAlreadyInstalled,
    ControlPlaneError,
    ForwardDataError,
    MigrationError,
    NeedsCompensation,
    RollbackError,
    TransferTimeoutError,
)
from pgmigrate.core.executor import SagaExecutor
from pgmigrate.core.forward import ForwardRegistry
from pgmigrate.core.listeners import (
    LoggingMigrationListener,
    MetricsMigrationListener,
    MigrationListener,
    default_listeners,
)
from pgmigrate.core.logger import NullLogger, get_logger, set_logger
from pgmigrate.core.step import Step, has_rollback
from pgmigrate.core.types import (
    CompensationReport,
    MigrationResult,
    MigrationStatus,
    StepKind,
    StepOutcome,
    XactEmit,
)

__all__ = [
    # Config
    "MigrationConfig",
    "configure",
    "get_config",
    # Exceptions
    "AbortCleanly",
    "AddonAlreadyInstalled",
    "ControlPlaneError",
    "ForwardDataError",
    "MigrationError",
    "NeedsCompensation",
    "RollbackError",
    "TransferTimeoutError",
    # Executor
    "CompensationStack",
    "ForwardRegistry",
    "SagaExecutor",
    "Step",
    "UnwindGuard",
    "has_rollback",
    # Listeners
    "LoggingMigrationListener",
    "MetricsMigrationListener",
    "MigrationListener",
    "default_listeners",
    # Logger
    "NullLogger",
    "get_logger",
    "set_logger",
    # Types
    "CompensationReport",
    "MigrationResult",
    "MigrationStatus",
    "StepKind",
    "StepOutcome",
    "XactEmit",
]
