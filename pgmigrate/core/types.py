# ============================================
# FILE: pgmigrate/core/types.py
# ============================================

"""
All type definitions, enums, and dataclasses shared by the executor and steps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pgmigrate.core.step import Step


class StepKind(Enum):
    """
    Identity of a step kind.

    Used as the key into the forward-data registry, so a step that needs data
    published by an earlier step asks for it by kind rather than by instance.
    """

    CHECK_SOURCE = "check_source"
    BACKUP_DISCOVERY = "backup_discovery"
    PROVISION = "provision"
    MAINTENANCE = "maintenance"
    SCALE_ZERO = "scale_zero"
    TRANSFER = "transfer"
    REBIND = "rebind"
    CUSTOM = "custom"


class MigrationStatus(Enum):
    """Overall outcome of one executor run"""

    EXECUTING = "executing"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass(frozen=True)
class StepOutcome:
    """
    Result of a successful ``perform``.

    Attributes:
        more_actions: Steps appended to the back of the pending queue, in order
        more_rollbacks: Steps pushed onto the compensation stack, in order
        forward: Optional payload recorded under the performing step's kind
    """

    more_actions: tuple[Step, ...] = ()
    more_rollbacks: tuple[Step, ...] = ()
    forward: Any = None

    def __post_init__(self) -> None:
        # Accept lists at call sites; store tuples so an outcome stays immutable.
        object.__setattr__(self, "more_actions", tuple(self.more_actions))
        object.__setattr__(self, "more_rollbacks", tuple(self.more_rollbacks))


# Alias: a step "emits" this when its transaction-like unit succeeds.
XactEmit = StepOutcome


@dataclass
class CompensationReport:
    """
    What happened while draining the compensation stack.

    Attributes:
        executed: Names of steps whose rollback succeeded, in unwind order
        failed: Names of steps whose rollback kept failing
        skipped: Names of stacked steps that declare no rollback
        errors: Last error per failed step name
        attempts: Number of rollback attempts per step name
    """

    executed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: dict[str, Exception] = field(default_factory=dict)
    attempts: dict[str, int] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed


@dataclass
class MigrationResult:
    """
    Result of ``SagaExecutor.engage``.

    A failed run is not returned: the executor re-raises the original error
    after unwinding and keeps the ``FAILED`` result on ``last_result``.
    """

    status: MigrationStatus
    executed_steps: list[str] = field(default_factory=list)
    abort_message: str | None = None
    error: BaseException | None = None
    compensation: CompensationReport = field(default_factory=CompensationReport)
    forward: dict[StepKind, Any] = field(default_factory=dict)
    duration: float = 0.0

    @property
    def is_completed(self) -> bool:
        return self.status == MigrationStatus.COMPLETED

    @property
    def is_aborted(self) -> bool:
        return self.status == MigrationStatus.ABORTED

    @property
    def exit_code(self) -> int:
        """Process exit code: a clean abort exits like a success."""
        return 0 if self.status in (MigrationStatus.COMPLETED, MigrationStatus.ABORTED) else 1
