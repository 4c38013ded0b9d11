"""Pointing the application's configuration at the new database."""

from __future__ import annotations

from pgmigrate.clients.base import ControlPlane
from pgmigrate.core.exceptions import NeedsCompensation
from pgmigrate.core.forward import ForwardRegistry
from pgmigrate.core.logger import get_logger
from pgmigrate.core.step import Step
from pgmigrate.core.types import StepKind, StepOutcome

logger = get_logger(__name__)


def find_rebindings(config_vars: dict[str, str], old_url: str) -> list[str]:
    """Names of every config var whose value is ``old_url``."""
    return [name for name, value in config_vars.items() if value == old_url]


def humanize(names: list[str]) -> str:
    return ", ".join(names)


class RebindConfig(Step):
    """
    Rebind every config var pointing at the old database to the new one.

    Only registers itself for rollback when the write fails; a successful
    rebind is the point of the migration and stays in place.

    ``rebinding`` and ``old_url`` stay ``None`` until perform has decided
    what to change; rollback does nothing in that state.
    """

    kind = StepKind.REBIND
    name = "Rebind configuration"

    def __init__(self, api: ControlPlane, app: str):
        self.api = api
        self.app = app
        self.old_url: str | None = None
        self.new_url: str | None = None
        self.rebinding: list[str] | None = None

    def perform(self, forward: ForwardRegistry) -> StepOutcome:
        database = forward.get(StepKind.PROVISION)
        old_url = database.source_url
        new_url = database.target_url

        rebinding = find_rebindings(self.api.get_config_vars(self.app), old_url)
        logger.info(f"Binding new database configuration to: {humanize(rebinding)}")

        self.old_url = old_url
        self.new_url = new_url
        self.rebinding = rebinding
        try:
            self._rebind(rebinding, new_url)
        except Exception as e:
            raise NeedsCompensation(e) from e

        return StepOutcome()

    def rollback(self) -> None:
        if self.rebinding is None or self.old_url is None:
            return

        logger.info(f"Binding old database configuration to: {humanize(self.rebinding)}")
        self._rebind(self.rebinding, self.old_url)

    def _rebind(self, names: list[str], url: str) -> None:
        if not names:
            return
        self.api.put_config_vars(self.app, {name: url for name in names})
