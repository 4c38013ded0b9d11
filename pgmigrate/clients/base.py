"""
Interfaces the steps depend on.

Steps only need a handful of synchronous request/response operations; these
protocols name them so tests and alternative clients can stand in for the
HTTP implementations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ControlPlane(Protocol):
    """Platform API operations used by the migration."""

    def set_maintenance(self, app: str, enabled: bool) -> None: ...

    def get_process_counts(self, app: str) -> dict[str, int]: ...

    def set_process_count(self, app: str, process_type: str, count: int) -> None: ...

    def provision_addon(self, app: str, addon: str) -> dict[str, Any]: ...

    def get_config_vars(self, app: str) -> dict[str, str]: ...

    def put_config_vars(self, app: str, config_vars: dict[str, str]) -> None: ...


@dataclass
class TransferHandle:
    """
    State of one database-to-database transfer.

    Attributes:
        id: Transfer identifier
        log: Free-text progress log
        error_at: Set when the transfer failed
        finished_at: Set when the transfer completed
        progress: Last progress line, if reported
    """

    id: str
    log: str = ""
    error_at: str | None = None
    finished_at: str | None = None
    progress: str | None = None

    @property
    def is_failed(self) -> bool:
        return bool(self.error_at)

    @property
    def is_finished(self) -> bool:
        return bool(self.finished_at)

    @property
    def is_terminal(self) -> bool:
        return self.is_failed or self.is_finished

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransferHandle:
        return cls(
            id=str(data.get("id", "")),
            log=data.get("log") or "",
            error_at=data.get("error_at"),
            finished_at=data.get("finished_at"),
            progress=data.get("progress"),
        )


@runtime_checkable
class TransferService(Protocol):
    """Backup/transfer service operations used by the migration."""

    def create_transfer(
        self, from_url: str, from_name: str, to_url: str, to_name: str
    ) -> TransferHandle: ...

    def get_transfer(self, transfer_id: str) -> TransferHandle: ...


def close_client(client: Any) -> None:
    """Release ``client``'s connections if it holds any."""
    close = getattr(client, "close", None)
    if callable(close):
        close()
