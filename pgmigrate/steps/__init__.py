"""
Concrete migration steps.
"""

from pgmigrate.steps.backups import EnsureBackupService
from pgmigrate.steps.maintenance import Maintenance
from pgmigrate.steps.preflight import CheckSource
from pgmigrate.steps.provision import ProvisionDatabase, ProvisionedDatabase, parse_binding
from pgmigrate.steps.rebind import RebindConfig, find_rebindings
from pgmigrate.steps.scale import ScaleZero
from pgmigrate.steps.transfer import TransferData, transfer_error_message

__all__ = [
    "CheckSource",
    "EnsureBackupService",
    "Maintenance",
    "ProvisionDatabase",
    "ProvisionedDatabase",
    "RebindConfig",
    "ScaleZero",
    "TransferData",
    "find_rebindings",
    "parse_binding",
    "transfer_error_message",
]
