"""
Compensation stack and the unwind algorithm.

Steps that need undoing are pushed as the run progresses. Whatever the outcome
of the run, the stack is drained last-in first-out and every rollback gets its
chance: a rollback that fails is retried a bounded number of times with
exponential backoff, then logged and recorded, and the unwind moves on.

Example:
    >>> stack = CompensationStack()
    >>> stack.push(maintenance)
    >>> stack.push(scale_zero)
    >>> report = stack.unwind(max_retries=2, backoff=0.5)
    >>> report.executed
    ['ScaleZero', 'Maintenance']
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from typing import Any

from pgmigrate.core.exceptions import RollbackError
from pgmigrate.core.logger import get_logger
from pgmigrate.core.step import Step, has_rollback
from pgmigrate.core.types import CompensationReport

logger = get_logger(__name__)

Notify = Callable[..., None]


class CompensationStack:
    """LIFO collection of steps requiring rollback."""

    def __init__(self) -> None:
        self._entries: list[Step] = []

    def push(self, step: Step) -> None:
        self._entries.append(step)

    def extend(self, steps: Iterable[Step]) -> None:
        """Push each step in order; the last one is rolled back first."""
        for step in steps:
            self.push(step)

    def pop(self) -> Step | None:
        return self._entries.pop() if self._entries else None

    def entries(self) -> list[Step]:
        """Copy of the stack, bottom first."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __repr__(self) -> str:
        return f"CompensationStack({[s.label for s in self._entries]})"

    def unwind(
        self,
        max_retries: int = 0,
        backoff: float = 0.0,
        notify: Notify | None = None,
        sleep: Callable[[float], Any] = time.sleep,
    ) -> CompensationReport:
        """
        Drain the stack, running each rollback.

        Never raises for a failing rollback: the failure is logged and
        recorded in the returned report.

        Args:
            max_retries: Extra attempts after a rollback's first failure
            backoff: Base delay; attempt ``n`` waits ``backoff * 2**n`` seconds
            notify: Callback ``notify(event_name, *args)`` for listeners
            sleep: Sleep function (injectable for tests)
        """
        report = CompensationReport()

        while True:
            step = self.pop()
            if step is None:
                break

            if not has_rollback(step):
                report.skipped.append(step.label)
                continue

            error = self._run_rollback(step, max_retries, backoff, report, sleep)
            if error is None:
                report.executed.append(step.label)
                if notify:
                    notify("on_compensate", step)
            else:
                report.failed.append(step.label)
                report.errors[step.label] = error
                logger.error(f"Compensation for {step.label} failed: {error}")
                if notify:
                    notify("on_compensation_failed", step, error)

        return report

    @staticmethod
    def _run_rollback(
        step: Step,
        max_retries: int,
        backoff: float,
        report: CompensationReport,
        sleep: Callable[[float], Any],
    ) -> RollbackError | None:
        """Run one rollback with bounded retry; return the final error, if any."""
        last_error: Exception | None = None
        attempts = 0

        for attempt in range(max_retries + 1):
            attempts += 1
            try:
                step.rollback()  # type: ignore[attr-defined]
                last_error = None
                break
            except Exception as e:
                last_error = e
                if attempt < max_retries:
                    delay = backoff * 2**attempt
                    logger.warning(
                        f"Rollback of {step.label} failed (attempt {attempts}), "
                        f"retrying in {delay:.1f}s: {e}"
                    )
                    if delay:
                        sleep(delay)

        # Accumulate: the same step may sit on the stack more than once.
        report.attempts[step.label] = report.attempts.get(step.label, 0) + attempts

        if last_error is None:
            return None
        return RollbackError(step.label, attempts, last_error)
