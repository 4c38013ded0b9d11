"""
Migration lifecycle listeners.

Listeners observe the executor without being able to change its behaviour;
an exception raised by a listener is logged and swallowed.

Usage:
    >>> from pgmigrate.core.listeners import LoggingMigrationListener
    >>> executor = SagaExecutor(listeners=[LoggingMigrationListener()])
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pgmigrate.core.logger import get_logger

if TYPE_CHECKING:
    from pgmigrate.core.step import Step
    from pgmigrate.core.types import MigrationResult, StepOutcome
    from pgmigrate.monitoring.metrics import MigrationMetrics


class MigrationListener:
    """Base listener; every hook is a no-op."""

    def on_run_start(self, steps: list[Step]) -> None: ...

    def on_step_enter(self, step: Step) -> None: ...

    def on_step_success(self, step: Step, outcome: StepOutcome) -> None: ...

    def on_step_failure(self, step: Step, error: BaseException) -> None: ...

    def on_abort(self, step: Step, message: str) -> None: ...

    def on_unwind_start(self, pending: list[Step]) -> None: ...

    def on_compensate(self, step: Step) -> None: ...

    def on_compensation_failed(self, step: Step, error: Exception) -> None: ...

    def on_run_complete(self, result: MigrationResult) -> None: ...

    def on_run_failed(self, result: MigrationResult) -> None: ...


class LoggingMigrationListener(MigrationListener):
    """Logs every lifecycle event through the pgmigrate logger."""

    def __init__(self, level: str = "INFO"):
        self.level = level
        self.log = get_logger("pgmigrate.listeners")

    def on_run_start(self, steps: list[Step]) -> None:
        self.log.info(f"Migration starting with {len(steps)} queued step(s)")

    def on_step_enter(self, step: Step) -> None:
        self.log.info(f"Step started: {step.label}")

    def on_step_success(self, step: Step, outcome: StepOutcome) -> None:
        extra = ""
        if outcome.more_actions:
            extra += f", enqueued {[s.label for s in outcome.more_actions]}"
        if outcome.more_rollbacks:
            extra += f", registered rollback for {[s.label for s in outcome.more_rollbacks]}"
        self.log.info(f"Step completed: {step.label}{extra}")

    def on_step_failure(self, step: Step, error: BaseException) -> None:
        self.log.error(f"Step failed: {step.label}: {error}")

    def on_abort(self, step: Step, message: str) -> None:
        self.log.warning(f"Migration aborted at {step.label}: {message}")

    def on_unwind_start(self, pending: list[Step]) -> None:
        if pending:
            self.log.info(f"Rolling back {len(pending)} step(s)")

    def on_compensate(self, step: Step) -> None:
        self.log.info(f"Rolled back: {step.label}")

    def on_compensation_failed(self, step: Step, error: Exception) -> None:
        self.log.error(f"Rollback failed for {step.label}: {error}")

    def on_run_complete(self, result: MigrationResult) -> None:
        self.log.info(
            f"Migration finished: {result.status.value} in {result.duration:.1f}s"
        )

    def on_run_failed(self, result: MigrationResult) -> None:
        self.log.error(f"Migration failed after {result.duration:.1f}s: {result.error}")


class MetricsMigrationListener(MigrationListener):
    """Feeds a :class:`MigrationMetrics` collector."""

    def __init__(self, metrics: MigrationMetrics | None = None):
        from pgmigrate.monitoring.metrics import MigrationMetrics

        self.metrics = metrics or MigrationMetrics()

    def on_step_success(self, step: Step, outcome: Any) -> None:
        self.metrics.record_step(step.label, succeeded=True)

    def on_step_failure(self, step: Step, error: BaseException) -> None:
        self.metrics.record_step(step.label, succeeded=False)

    def on_compensate(self, step: Step) -> None:
        self.metrics.record_compensation(step.label, succeeded=True)

    def on_compensation_failed(self, step: Step, error: Exception) -> None:
        self.metrics.record_compensation(step.label, succeeded=False)

    def on_run_complete(self, result: MigrationResult) -> None:
        self.metrics.record_run(result.status, result.duration)

    def on_run_failed(self, result: MigrationResult) -> None:
        self.metrics.record_run(result.status, result.duration)


def default_listeners() -> list[MigrationListener]:
    return [LoggingMigrationListener()]
