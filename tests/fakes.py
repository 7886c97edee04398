"""Virtual-time clock and call-recording registry shared by the tests."""

from __future__ import annotations

from typing import List, Tuple

from rolling_restart_sim.registry import CounterIdentity, CounterRegistry


class FakeClock:
    """Virtual time: sleeping advances ``now`` instantly."""

    def __init__(self, start: float = 0.0) -> None:
        self.time = start
        self.sleeps: List[float] = []

    def now(self) -> float:
        return self.time

    def sleep(self, seconds: float) -> bool:
        seconds = max(seconds, 0.0)
        self.sleeps.append(seconds)
        self.time += seconds
        return False


class RecordingRegistry(CounterRegistry):
    """In-memory registry that also logs every call with the fake clock time."""

    def __init__(self, clock: FakeClock) -> None:
        super().__init__()
        self.clock = clock
        self.calls: List[Tuple[float, str, CounterIdentity]] = []
        self.visibility: List[Tuple[float, bool]] = []
        self.increments: List[float] = []

    def register(self, identity, initial_value=0):
        super().register(identity, initial_value)
        self.calls.append((self.clock.now(), "register", identity))

    def unregister(self, identity):
        super().unregister(identity)
        self.calls.append((self.clock.now(), "unregister", identity))

    def increment(self, identity, amount=1):
        super().increment(identity, amount)
        self.increments.append(self.clock.now())

    def set_visible(self, identity, visible):
        super().set_visible(identity, visible)
        self.visibility.append((self.clock.now(), visible))
