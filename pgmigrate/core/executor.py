"""
Saga executor.

Runs a queue of steps strictly in FIFO order. Steps may enqueue follow-ups,
register steps for rollback, and publish forward data for later steps. When
the run ends, by success, clean abort or failure, the compensation stack is
drained before control returns.

Example:
    >>> executor = SagaExecutor()
    >>> executor.enqueue(CheckSource(api, "my-app"))
    >>> executor.enqueue(Maintenance(api, "my-app"))
    >>> result = executor.engage()
    >>> result.status
    <MigrationStatus.COMPLETED: 'completed'>
"""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable, Iterable
from typing import Any

from pgmigrate.core.cancellation import UnwindGuard
from pgmigrate.core.compensation import CompensationStack
from pgmigrate.core.config import get_config
from pgmigrate.core.exceptions import AbortCleanly, NeedsCompensation
from pgmigrate.core.forward import ForwardRegistry
from pgmigrate.core.listeners import MigrationListener, default_listeners
from pgmigrate.core.logger import get_logger
from pgmigrate.core.step import Step
from pgmigrate.core.types import (
    CompensationReport,
    MigrationResult,
    MigrationStatus,
    StepOutcome,
)

logger = get_logger(__name__)


class SagaExecutor:
    """
    Owns the pending queue and drives the perform/compensate protocol.

    Args:
        listeners: Lifecycle listeners (default: logging listener)
        rollback_max_retries: Extra attempts per failing rollback
            (default: from the global config)
        rollback_backoff: Base backoff in seconds between rollback attempts
            (default: from the global config)
        guard: Interrupt guard; pass ``False`` to leave signal handling alone
        sleep: Sleep function used between rollback attempts
    """

    def __init__(
        self,
        listeners: list[MigrationListener] | None = None,
        rollback_max_retries: int | None = None,
        rollback_backoff: float | None = None,
        guard: UnwindGuard | bool | None = None,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        config = get_config()
        self.listeners = default_listeners() if listeners is None else list(listeners)
        self.rollback_max_retries = (
            config.rollback_max_retries if rollback_max_retries is None else rollback_max_retries
        )
        self.rollback_backoff = (
            config.rollback_backoff if rollback_backoff is None else rollback_backoff
        )
        self._guard = guard
        self._sleep = sleep
        self._pending: deque[Step] = deque()
        self.last_result: MigrationResult | None = None

    def enqueue(self, step: Step) -> SagaExecutor:
        """Append a step to the pending queue."""
        self._pending.append(step)
        return self

    @property
    def pending(self) -> list[Step]:
        return list(self._pending)

    def engage(self, steps: Iterable[Step] = ()) -> MigrationResult:
        """
        Run every queued step, then unwind the compensation stack.

        Steps whose forward data is consumed later must come before their
        consumers in ``steps``; the executor does not reorder anything.

        Returns:
            The result of a completed or cleanly aborted run

        Raises:
            Exception: The original failure, re-raised after the unwind
        """
        for step in steps:
            self.enqueue(step)

        forward = ForwardRegistry()
        rollbacks = CompensationStack()
        result = MigrationResult(status=MigrationStatus.EXECUTING)
        guard = self._make_guard()
        started = time.monotonic()

        self._notify("on_run_start", list(self._pending))

        failure: BaseException | None = None
        if guard:
            guard.install()
        try:
            self._run(forward, rollbacks, result)
        except BaseException as e:
            failure = e
            raise
        finally:
            if guard:
                guard.begin_unwind()
            try:
                result.compensation = self._unwind(rollbacks)
            finally:
                if guard:
                    guard.restore()
            self._pending.clear()
            self._finish(result, forward, failure, started)

        return result

    def _make_guard(self) -> UnwindGuard | None:
        if self._guard is False:
            return None
        if isinstance(self._guard, UnwindGuard):
            return self._guard
        return UnwindGuard()

    def _run(
        self, forward: ForwardRegistry, rollbacks: CompensationStack, result: MigrationResult
    ) -> None:
        """Dequeue and perform steps until the queue is empty or the run aborts."""
        while self._pending:
            step = self._pending.popleft()
            self._notify("on_step_enter", step)

            try:
                outcome = step.perform(forward)
            except NeedsCompensation as e:
                # The step got far enough to change something; undo it too.
                rollbacks.push(step)
                self._notify("on_step_failure", step, e)
                raise
            except AbortCleanly as e:
                logger.warning(f"Aborting migration at {step.label}: {e.message}")
                self._notify("on_abort", step, e.message)
                result.status = MigrationStatus.ABORTED
                result.abort_message = e.message
                return
            except BaseException as e:
                self._notify("on_step_failure", step, e)
                raise

            if not isinstance(outcome, StepOutcome):
                msg = f"{step.label}.perform returned {outcome!r}, expected StepOutcome"
                raise TypeError(msg)

            self._pending.extend(outcome.more_actions)
            rollbacks.extend(outcome.more_rollbacks)
            if outcome.forward is not None:
                forward.record(step.kind, outcome.forward)

            result.executed_steps.append(step.label)
            self._notify("on_step_success", step, outcome)

        result.status = MigrationStatus.COMPLETED

    def _unwind(self, rollbacks: CompensationStack) -> CompensationReport:
        logger.debug(f"Unwinding {len(rollbacks)} compensation(s)")
        self._notify("on_unwind_start", list(reversed(rollbacks.entries())))
        return rollbacks.unwind(
            max_retries=self.rollback_max_retries,
            backoff=self.rollback_backoff,
            notify=self._notify,
            sleep=self._sleep,
        )

    def _finish(
        self,
        result: MigrationResult,
        forward: ForwardRegistry,
        failure: BaseException | None,
        started: float,
    ) -> None:
        result.forward = forward.snapshot()
        result.duration = time.monotonic() - started
        self.last_result = result

        if failure is not None:
            result.status = MigrationStatus.FAILED
            result.error = failure
            self._notify("on_run_failed", result)
        else:
            self._notify("on_run_complete", result)

    def _notify(self, event_name: str, *args: Any) -> None:
        """Notify all listeners of an event."""
        for listener in self.listeners:
            try:
                handler = getattr(listener, event_name, None)
                if handler:
                    handler(*args)
            except Exception as e:
                logger.warning(f"Listener {type(listener).__name__}.{event_name} error: {e}")
