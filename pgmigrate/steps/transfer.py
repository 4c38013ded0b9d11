"""Copying the data from the old database to the new one."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from pgmigrate.clients.base import TransferHandle, TransferService, close_client
from pgmigrate.core.exceptions import AbortCleanly, TransferTimeoutError
from pgmigrate.core.forward import ForwardRegistry
from pgmigrate.core.logger import get_logger
from pgmigrate.core.step import Step
from pgmigrate.core.types import StepKind, StepOutcome

logger = get_logger(__name__)

Endpoint = tuple[str, str]
"""A database as ``(label, url)``."""


def transfer_error_message(log: str) -> str:
    """Explain a failed transfer in operator terms."""
    message = "An error occurred and your backup did not finish."
    if "Name or service not known" in log:
        message += "\nThe database is not yet online. Please try again."
    if "psql: FATAL:" in log:
        message += "\nThe database credentials are incorrect."
    return message


class TransferData(Step):
    """
    Copy the source database into the destination database.

    Source, destination and the transfer service endpoint come from forward
    data (``PROVISION`` and ``BACKUP_DISCOVERY``) unless given explicitly.
    Polls until the transfer reports completion or an error. A reported
    error aborts the run cleanly; the destination database is left as it is
    for the operator to inspect.

    Args:
        transfer_factory: Builds a transfer client from the service endpoint
        poll_interval: Seconds between polls
        timeout: Give up after this many seconds (None = wait indefinitely)
        source: Explicit ``(label, url)`` of the database to copy from
        target: Explicit ``(label, url)`` of the database to copy into
        transfer_url: Explicit service endpoint
        on_progress: Called with every polled handle
    """

    kind = StepKind.TRANSFER
    name = "Transfer data"

    def __init__(
        self,
        transfer_factory: Callable[[str], TransferService],
        poll_interval: float = 2.0,
        timeout: float | None = None,
        source: Endpoint | None = None,
        target: Endpoint | None = None,
        transfer_url: str | None = None,
        on_progress: Callable[[TransferHandle], Any] | None = None,
        sleep: Callable[[float], Any] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.transfer_factory = transfer_factory
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.source = source
        self.target = target
        self.transfer_url = transfer_url
        self.on_progress = on_progress
        self._sleep = sleep
        self._clock = clock

    def perform(self, forward: ForwardRegistry) -> StepOutcome:
        source, target = self._endpoints(forward)
        transfer_url = self.transfer_url or forward.get(StepKind.BACKUP_DISCOVERY)["transfer_url"]

        service = self.transfer_factory(transfer_url)
        try:
            logger.info(f"Transferring {source[0]} to {target[0]}")
            handle = service.create_transfer(source[1], source[0], target[1], target[0])
            handle = self.poll(service, handle)
        finally:
            close_client(service)

        if handle.is_failed:
            logger.error(f"Transfer {handle.id} failed:\n{handle.log}")
            raise AbortCleanly(transfer_error_message(handle.log))

        logger.info(f"Transfer {handle.id} finished at {handle.finished_at}")
        return StepOutcome()

    def poll(self, service: TransferService, handle: TransferHandle) -> TransferHandle:
        """Block until ``handle`` reaches a terminal state."""
        started = self._clock()
        while True:
            if self.on_progress:
                self.on_progress(handle)
            if handle.is_terminal:
                return handle

            waited = self._clock() - started
            if self.timeout is not None and waited >= self.timeout:
                raise TransferTimeoutError(handle.id, waited)

            self._sleep(self.poll_interval)
            handle = service.get_transfer(handle.id)

    def _endpoints(self, forward: ForwardRegistry) -> tuple[Endpoint, Endpoint]:
        if self.source and self.target:
            return self.source, self.target

        database = forward.get(StepKind.PROVISION)
        source = self.source or (database.source_var, database.source_url)
        target = self.target or (database.binding, database.target_url)
        return source, target
