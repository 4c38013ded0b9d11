"""
Interrupt handling around a migration run.

Before the unwind starts, Ctrl-C behaves as usual: ``KeyboardInterrupt`` is
raised inside whatever step is running and the executor unwinds. Once the
unwind has begun, further interrupts are logged and ignored so compensation
runs to the end.
"""

from __future__ import annotations

import signal
import threading
from types import FrameType
from typing import Any

from pgmigrate.core.logger import get_logger

logger = get_logger(__name__)


class UnwindGuard:
    """
    SIGINT handler driven by an explicit ``unwinding`` flag.

    The flag is set by the executor right before compensation begins and is
    never cleared for the lifetime of the guard.

    Example:
        >>> guard = UnwindGuard()
        >>> with guard:
        ...     run_steps()
        ...     guard.begin_unwind()
        ...     run_compensations()   # Ctrl-C is ignored here
    """

    def __init__(self, signum: int = signal.SIGINT):
        self.signum = signum
        self.unwinding = False
        self.suppressed = 0
        self._previous: Any = None
        self._installed = False

    def begin_unwind(self) -> None:
        self.unwinding = True

    def handle(self, signum: int, frame: FrameType | None) -> None:
        if self.unwinding:
            self.suppressed += 1
            logger.warning("Interrupt received during rollback; ignoring so rollback can finish")
            return
        raise KeyboardInterrupt

    def install(self) -> None:
        # signal handlers can only be set from the main thread
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread; interrupt guard not installed")
            return
        self._previous = signal.signal(self.signum, self.handle)
        self._installed = True

    def restore(self) -> None:
        if self._installed:
            previous = self._previous if self._previous is not None else signal.SIG_DFL
            signal.signal(self.signum, previous)
            self._installed = False

    def __enter__(self) -> UnwindGuard:
        self.install()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.restore()
