"""Scaling every process type to zero for the duration of the copy."""

from __future__ import annotations

from pgmigrate.clients.base import ControlPlane
from pgmigrate.core.exceptions import NeedsCompensation
from pgmigrate.core.forward import ForwardRegistry
from pgmigrate.core.logger import get_logger
from pgmigrate.core.step import Step
from pgmigrate.core.types import StepKind, StepOutcome

logger = get_logger(__name__)


class ScaleZero(Step):
    """
    Scale all processes down to zero and restore them on rollback.

    ``old_counts`` stays ``None`` until the current counts have been read;
    rollback does nothing in that state.
    """

    kind = StepKind.SCALE_ZERO
    name = "Scale processes to zero"

    def __init__(self, api: ControlPlane, app: str):
        self.api = api
        self.app = app
        self.old_counts: dict[str, int] | None = None

    def perform(self, forward: ForwardRegistry) -> StepOutcome:
        self.old_counts = None

        # Nothing has been scaled yet, so a failure here needs no rollback.
        self.old_counts = dict(self.api.get_process_counts(self.app))

        try:
            self._scale_zero(list(self.old_counts))
        except Exception as e:
            raise NeedsCompensation(e) from e

        return StepOutcome(more_rollbacks=[self])

    def rollback(self) -> None:
        if self.old_counts is None:
            return

        for process_type, count in self.old_counts.items():
            logger.info(f"Restoring process {process_type} scale to {count}")
            self.api.set_process_count(self.app, process_type, count)

    def _scale_zero(self, process_types: list[str]) -> None:
        if not process_types:
            logger.info("No active processes to scale down, skipping")
            return

        # TODO: one-off "run" processes are scaled like any other type; they should be left alone.
        for process_type in process_types:
            logger.info(f"Scaling process {process_type} to 0")
            self.api.set_process_count(self.app, process_type, 0)
