"""
Remote API clients used by the migration steps.
"""

from pgmigrate.clients.base import ControlPlane, TransferHandle, TransferService
from pgmigrate.clients.heroku import HerokuClient
from pgmigrate.clients.pgbackups import PgBackupsClient

__all__ = [
    "ControlPlane",
    "HerokuClient",
    "PgBackupsClient",
    "TransferHandle",
    "TransferService",
]
