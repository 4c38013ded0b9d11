"""
The migration plan: which steps run, in what order.

Order matters because later steps read forward data from earlier ones:
``TransferData`` needs ``ProvisionDatabase`` and ``EnsureBackupService``;
``RebindConfig`` (enqueued by ``ProvisionDatabase``) needs
``ProvisionDatabase``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pgmigrate.clients.base import ControlPlane, TransferHandle, TransferService
from pgmigrate.core.config import MigrationConfig, get_config
from pgmigrate.core.step import Step
from pgmigrate.steps import (
    CheckSource,
    EnsureBackupService,
    Maintenance,
    ProvisionDatabase,
    ScaleZero,
    TransferData,
)


def default_transfer_factory(config: MigrationConfig) -> Callable[[str], TransferService]:
    def factory(url: str) -> TransferService:
        from pgmigrate.clients.pgbackups import PgBackupsClient

        return PgBackupsClient(url, timeout=config.http_timeout)

    return factory


def build_migration_plan(
    api: ControlPlane,
    app: str,
    config: MigrationConfig | None = None,
    transfer_factory: Callable[[str], TransferService] | None = None,
    on_progress: Callable[[TransferHandle], Any] | None = None,
) -> list[Step]:
    """
    Build the initial queue for migrating ``app`` to a new database.

    The executed trace is ``CheckSource, EnsureBackupService,
    ProvisionDatabase, Maintenance, ScaleZero, TransferData, RebindConfig``;
    the last one is enqueued by ``ProvisionDatabase``.
    """
    config = config or get_config()
    factory = transfer_factory or default_transfer_factory(config)

    return [
        CheckSource(api, app, source_var=config.source_var),
        EnsureBackupService(
            api, app, addon=config.backup_addon, url_var=config.transfer_url_var
        ),
        ProvisionDatabase(
            api, app, addon=config.database_addon, source_var=config.source_var
        ),
        Maintenance(api, app),
        ScaleZero(api, app),
        TransferData(
            factory,
            poll_interval=config.poll_interval,
            timeout=config.transfer_timeout,
            on_progress=on_progress,
        ),
    ]
