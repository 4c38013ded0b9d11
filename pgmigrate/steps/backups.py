"""Discovery of the backup service that performs the data transfer."""

from __future__ import annotations

from pgmigrate.clients.base import ControlPlane
from pgmigrate.core.exceptions import AbortCleanly, AddonAlreadyInstalled
from pgmigrate.core.forward import ForwardRegistry
from pgmigrate.core.logger import get_logger
from pgmigrate.core.step import Step
from pgmigrate.core.types import StepKind, StepOutcome

logger = get_logger(__name__)


class EnsureBackupService(Step):
    """
    Make sure the transfer add-on is installed and publish its endpoint.

    An add-on that is already installed counts as success; any other
    provisioning error propagates. Nothing here needs undoing.

    Forward payload:
        ``{"transfer_url": <service endpoint>}``
    """

    kind = StepKind.BACKUP_DISCOVERY
    name = "Discover backup service"

    def __init__(
        self,
        api: ControlPlane,
        app: str,
        addon: str = "pgbackups:plus",
        url_var: str = "PGBACKUPS_URL",
    ):
        self.api = api
        self.app = app
        self.addon = addon
        self.url_var = url_var

    def perform(self, forward: ForwardRegistry) -> StepOutcome:
        try:
            self.api.provision_addon(self.app, self.addon)
            logger.info(f"Installed {self.addon} on {self.app}")
        except AddonAlreadyInstalled:
            logger.info(f"{self.addon} already installed on {self.app}")

        transfer_url = self.api.get_config_vars(self.app).get(self.url_var)
        if not transfer_url:
            raise AbortCleanly(
                f"No {self.url_var} found after installing {self.addon}: cannot transfer data."
            )

        return StepOutcome(forward={"transfer_url": transfer_url})
