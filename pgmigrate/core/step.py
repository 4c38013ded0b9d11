"""
The step contract.

A step is one unit of migration work. ``perform`` does the work and returns a
:class:`StepOutcome`; an optional ``rollback`` undoes it. Steps that have
nothing to undo simply do not define ``rollback``.

Example:
    >>> class Announce(Step):
    ...     kind = StepKind.CUSTOM
    ...
    ...     def perform(self, forward):
    ...         print("hello")
    ...         return StepOutcome()
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from pgmigrate.core.types import StepKind, StepOutcome

if TYPE_CHECKING:
    from pgmigrate.core.forward import ForwardRegistry


class Step(ABC):
    """
    Base class for migration steps.

    Subclasses set ``kind`` and implement ``perform``. State captured during
    ``perform`` for use by ``rollback`` must start out as ``None`` so the
    rollback can tell that nothing was done and return without acting.
    """

    kind: StepKind = StepKind.CUSTOM
    name: str = ""

    @abstractmethod
    def perform(self, forward: ForwardRegistry) -> StepOutcome:
        """
        Do the work of this step.

        Raises:
            NeedsCompensation: a side effect happened before the failure
            AbortCleanly: the migration must stop without error noise
        """

    @property
    def label(self) -> str:
        return self.name or type(self).__name__

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kind={self.kind.value}>"


def has_rollback(step: Step) -> bool:
    """True if the step declares a compensation."""
    return callable(getattr(step, "rollback", None))
