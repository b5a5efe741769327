from __future__ import annotations

import threading
from types import TracebackType
from typing import Optional, Type

from .logger import get_logger

LOG = get_logger(__name__)


class AlreadyRunning(Exception):
    """Raised when a worker is started while another run holds its gate."""

    def __init__(self, name: str) -> None:
        super().__init__(f"{name} already in progress")
        self.name = name


class GateHandle:
    """Release handle returned by a successful acquire."""

    def __init__(self, gate: "ExclusiveExecutionGate") -> None:
        self._gate = gate

    def release(self) -> None:
        self._gate.release()

    def __enter__(self) -> "GateHandle":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.release()


class ExclusiveExecutionGate:
    """Single-flight admission control with a cooperative cancel flag.

    At most one holder at a time: ``acquire`` fails fast with
    :class:`AlreadyRunning` instead of queuing. ``cancel`` only records a
    request; the holder decides when to check it. ``cancel`` and
    ``is_canceled`` never take the lock, so they are safe to call from a
    signal handler that interrupts the holder.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = threading.Lock()
        self._busy = False
        self._canceled = False

    def acquire(self) -> GateHandle:
        with self._lock:
            if self._busy:
                raise AlreadyRunning(self.name)
            self._busy = True
            self._canceled = False
        return GateHandle(self)

    def release(self) -> None:
        with self._lock:
            self._busy = False
            self._canceled = False

    def cancel(self) -> bool:
        if not self._busy:
            return False
        self._canceled = True
        LOG.info("%s: cancellation requested", self.name)
        return True

    def is_canceled(self) -> bool:
        return self._canceled

    def running(self) -> bool:
        with self._lock:
            return self._busy

    # Aliases matching the worker start/stop vocabulary.
    start = acquire
    stop = release
    canceled = is_canceled


BACKUP_WORKER = ExclusiveExecutionGate("backup")
