"""Time sources used by the scheduler and the replica tasks."""

from __future__ import annotations

import threading
import time
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> float:
        ...

    def sleep(self, seconds: float) -> bool:
        """Wait ``seconds``; return True if shutdown was requested meanwhile."""
        ...


class MonotonicClock:
    """Wall-clock time backed by :func:`time.monotonic`.

    Sleeping waits on a shared event so :meth:`stop` wakes every scheduler
    and replica thread at once.
    """

    def __init__(self, stop_event: Optional[threading.Event] = None) -> None:
        self._stop_event = stop_event or threading.Event()

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> bool:
        return self._stop_event.wait(max(seconds, 0.0))

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()


__all__ = ["Clock", "MonotonicClock"]
