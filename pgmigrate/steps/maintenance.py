"""Maintenance mode toggle."""

from __future__ import annotations

from pgmigrate.clients.base import ControlPlane
from pgmigrate.core.exceptions import NeedsCompensation
from pgmigrate.core.forward import ForwardRegistry
from pgmigrate.core.logger import get_logger
from pgmigrate.core.step import Step
from pgmigrate.core.types import StepKind, StepOutcome

logger = get_logger(__name__)


class Maintenance(Step):
    """
    Put the application into maintenance mode for the rest of the run.

    Registers itself for rollback whether or not enabling succeeded, so
    maintenance mode is always switched off when the run ends.
    """

    kind = StepKind.MAINTENANCE
    name = "Maintenance mode"

    def __init__(self, api: ControlPlane, app: str):
        self.api = api
        self.app = app
        self.requested: bool | None = None

    def perform(self, forward: ForwardRegistry) -> StepOutcome:
        logger.info(f"Entering maintenance mode on application {self.app}")
        self.requested = True
        try:
            self.api.set_maintenance(self.app, True)
        except Exception as e:
            raise NeedsCompensation(e) from e

        return StepOutcome(more_rollbacks=[self])

    def rollback(self) -> None:
        if self.requested is None:
            return
        logger.info(f"Leaving maintenance mode on application {self.app}")
        self.api.set_maintenance(self.app, False)
