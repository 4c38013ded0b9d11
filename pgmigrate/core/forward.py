"""
Forward-data registry.

Steps publish data for steps that run after them; the executor records each
payload under the publishing step's kind. The registry is append-only for the
duration of a run.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from pgmigrate.core.exceptions import ForwardDataError
from pgmigrate.core.types import StepKind

_MISSING = object()


class ForwardRegistry:
    """Mapping from step kind to the payload that step published."""

    def __init__(self) -> None:
        self._payloads: dict[StepKind, Any] = {}

    def record(self, kind: StepKind, payload: Any) -> None:
        """
        Record a payload.

        Raises:
            ForwardDataError: If a payload was already recorded for ``kind``
        """
        if kind in self._payloads:
            msg = f"Forward data for '{kind.value}' was already recorded"
            raise ForwardDataError(msg)
        self._payloads[kind] = payload

    def get(self, kind: StepKind, default: Any = _MISSING) -> Any:
        """
        Return the payload recorded for ``kind``.

        Raises:
            ForwardDataError: If nothing was recorded and no default was given.
                This means a consumer was enqueued before its producer ran.
        """
        if kind in self._payloads:
            return self._payloads[kind]
        if default is not _MISSING:
            return default
        msg = f"No forward data recorded for '{kind.value}'; was that step enqueued first?"
        raise ForwardDataError(msg)

    def snapshot(self) -> dict[StepKind, Any]:
        return dict(self._payloads)

    def __getitem__(self, kind: StepKind) -> Any:
        return self.get(kind)

    def __contains__(self, kind: object) -> bool:
        return kind in self._payloads

    def __iter__(self) -> Iterator[StepKind]:
        return iter(self._payloads)

    def __len__(self) -> int:
        return len(self._payloads)

    def __repr__(self) -> str:
        kinds = ", ".join(k.value for k in self._payloads)
        return f"ForwardRegistry([{kinds}])"
