# ============================================
# FILE: pgmigrate/core/exceptions.py
# ============================================

"""
All migration-related exceptions

The executor distinguishes three failure kinds:

- NeedsCompensation: the failing step had a side effect and must be rolled back
- AbortCleanly: the run stops with a user-facing message, not a crash
- anything else: a generic fault, re-raised after the unwind
"""

from __future__ import annotations

from typing import Any


class MigrationError(Exception):
    """Base migration error"""


class NeedsCompensation(MigrationError):
    """
    A step failed after producing an observable side effect.

    The executor pushes the failing step onto the compensation stack before
    letting the failure propagate.
    """

    def __init__(self, cause: BaseException, message: str | None = None):
        self.cause = cause
        super().__init__(message or str(cause))
        self.__cause__ = cause


class AbortCleanly(MigrationError):
    """
    The migration cannot proceed, for reasons that are not a bug.

    Raised for unmet preconditions or definitive remote failures. The run
    stops, the message is shown to the operator, and the accumulated
    compensations still execute.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class RollbackError(MigrationError):
    """A rollback kept failing after every allowed attempt"""

    def __init__(self, step_name: str, attempts: int, cause: BaseException):
        self.step_name = step_name
        self.attempts = attempts
        self.cause = cause
        super().__init__(
            f"Rollback of '{step_name}' failed after {attempts} attempt(s): {cause}"
        )
        self.__cause__ = cause


class ForwardDataError(MigrationError, KeyError):
    """Forward payload missing for a kind, or recorded twice"""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class ControlPlaneError(MigrationError):
    """Error returned by the platform API"""

    def __init__(self, message: str, status_code: int | None = None, body: Any = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class AddonAlreadyInstalled(ControlPlaneError):
    """The requested add-on is already present on the application"""


class TransferTimeoutError(MigrationError):
    """The data transfer did not reach a terminal state in time"""

    def __init__(self, transfer_id: str, waited: float):
        self.transfer_id = transfer_id
        self.waited = waited
        super().__init__(
            f"Transfer {transfer_id} did not finish within {waited:.0f} seconds"
        )
