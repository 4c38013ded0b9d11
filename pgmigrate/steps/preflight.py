"""Pre-flight check that the database being migrated away from is bound."""

from __future__ import annotations

from pgmigrate.clients.base import ControlPlane
from pgmigrate.core.exceptions import AbortCleanly
from pgmigrate.core.forward import ForwardRegistry
from pgmigrate.core.step import Step
from pgmigrate.core.types import StepKind, StepOutcome


class CheckSource(Step):
    """Abort cleanly, before anything changes, if the source binding is missing."""

    kind = StepKind.CHECK_SOURCE
    name = "Check source database"

    def __init__(self, api: ControlPlane, app: str, source_var: str = "SHARED_DATABASE_URL"):
        self.api = api
        self.app = app
        self.source_var = source_var

    def perform(self, forward: ForwardRegistry) -> StepOutcome:
        config_vars = self.api.get_config_vars(self.app)
        if not config_vars.get(self.source_var):
            raise AbortCleanly(f"No {self.source_var} found: cannot migrate.")
        return StepOutcome()
