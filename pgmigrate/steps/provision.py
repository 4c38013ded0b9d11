"""Provisioning of the destination database."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from pgmigrate.clients.base import ControlPlane
from pgmigrate.core.exceptions import AbortCleanly, MigrationError
from pgmigrate.core.forward import ForwardRegistry
from pgmigrate.core.logger import get_logger
from pgmigrate.core.step import Step
from pgmigrate.core.types import StepKind, StepOutcome
from pgmigrate.steps.rebind import RebindConfig

logger = get_logger(__name__)

ATTACHED_AS = re.compile(r"^Attached as (HEROKU_POSTGRESQL_[A-Z_]+)$", re.MULTILINE)


@dataclass(frozen=True)
class ProvisionedDatabase:
    """
    Forward payload of :class:`ProvisionDatabase`.

    Attributes:
        binding: Config var the new database was attached as
        config: Snapshot of every config var right after provisioning
        source_var: Config var bound to the old database
    """

    binding: str
    config: dict[str, str] = field(default_factory=dict)
    source_var: str = "SHARED_DATABASE_URL"

    @property
    def source_url(self) -> str:
        return self.config[self.source_var]

    @property
    def target_url(self) -> str:
        return self.config[self.binding]


def parse_binding(response: dict[str, Any]) -> str | None:
    """Extract the attached config var name from a provisioning response."""
    match = ATTACHED_AS.search(response.get("message") or "")
    return match.group(1) if match else None


class ProvisionDatabase(Step):
    """
    Provision the new database and snapshot the configuration.

    The source binding is checked again after provisioning: it may have
    disappeared since the pre-flight check. On success a :class:`RebindConfig`
    step is enqueued; it runs last and carries the compensation for the
    configuration change. The provisioned database itself is never removed
    automatically.
    """

    kind = StepKind.PROVISION
    name = "Provision database"

    def __init__(
        self,
        api: ControlPlane,
        app: str,
        addon: str = "heroku-postgresql:dev",
        source_var: str = "SHARED_DATABASE_URL",
        rebind: bool = True,
    ):
        self.api = api
        self.app = app
        self.addon = addon
        self.source_var = source_var
        self.rebind = rebind

    def perform(self, forward: ForwardRegistry) -> StepOutcome:
        response = self.api.provision_addon(self.app, self.addon)

        binding = parse_binding(response)
        if binding is None:
            msg = (
                f"Could not find the attached config var in the response to "
                f"installing {self.addon}: {response.get('message')!r}"
            )
            raise MigrationError(msg)
        logger.info(f"{self.addon} attached as {binding}")

        config = self.api.get_config_vars(self.app)
        if not config.get(self.source_var):
            raise AbortCleanly(f"No {self.source_var} found: cannot migrate.")
        if binding not in config:
            msg = f"{binding} was attached but is missing from the configuration"
            raise MigrationError(msg)

        payload = ProvisionedDatabase(binding=binding, config=dict(config), source_var=self.source_var)

        more_actions: list[Step] = []
        if self.rebind:
            more_actions.append(RebindConfig(self.api, self.app))

        return StepOutcome(more_actions=more_actions, forward=payload)
