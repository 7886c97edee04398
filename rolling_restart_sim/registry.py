"""Shared counter registry written by replica tasks and read by the exporter."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Set


class RegistryError(RuntimeError):
    """Raised when a caller breaks the registry contract."""


@dataclass(frozen=True, order=True, slots=True)
class CounterIdentity:
    """A counter is identified by its restart batch and its slot within the batch."""

    batch: int
    slot: int

    def labels(self) -> Dict[str, str]:
        return {"batch": str(self.batch), "task": str(self.slot)}


@dataclass(slots=True)
class CounterState:
    """Mutable state behind one live counter."""

    value: int = 0
    visible: bool = True
    created: float = field(default_factory=time.time)


@dataclass(frozen=True, slots=True)
class CounterSample:
    identity: CounterIdentity
    value: int
    created: float


class CounterRegistry:
    """Thread-safe mapping from counter identity to counter state.

    Every replica task owns exactly one entry: it registers it on start,
    increments it and toggles its visibility while running, and unregisters
    it when its lifetime ends. Retired identities can never be registered
    again. Hidden entries keep accumulating but are left out of
    :meth:`snapshot`.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[CounterIdentity, CounterState] = {}
        self._retired: Set[CounterIdentity] = set()

    def register(self, identity: CounterIdentity, initial_value: int = 0) -> None:
        if initial_value < 0:
            raise RegistryError(f"Negative initial value {initial_value} for {identity}")
        with self._lock:
            if identity in self._entries:
                raise RegistryError(f"Counter {identity} is already registered")
            if identity in self._retired:
                raise RegistryError(f"Counter {identity} was retired and cannot be reused")
            self._entries[identity] = CounterState(value=initial_value)

    def unregister(self, identity: CounterIdentity) -> None:
        with self._lock:
            if self._entries.pop(identity, None) is None:
                raise RegistryError(f"Counter {identity} is not registered")
            self._retired.add(identity)

    def increment(self, identity: CounterIdentity, amount: int = 1) -> None:
        if amount < 0:
            raise RegistryError(f"Counters cannot decrease (amount={amount})")
        with self._lock:
            self._require(identity).value += amount

    def set_visible(self, identity: CounterIdentity, visible: bool) -> None:
        with self._lock:
            self._require(identity).visible = visible

    def is_visible(self, identity: CounterIdentity) -> bool:
        with self._lock:
            return self._require(identity).visible

    def value(self, identity: CounterIdentity) -> int:
        with self._lock:
            return self._require(identity).value

    def live_identities(self) -> List[CounterIdentity]:
        """All registered identities, hidden ones included."""

        with self._lock:
            return sorted(self._entries)

    def snapshot(self) -> List[CounterSample]:
        """Visible counters ordered by identity, read under a single lock."""

        with self._lock:
            return [
                CounterSample(identity, state.value, state.created)
                for identity, state in sorted(self._entries.items())
                if state.visible
            ]

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _require(self, identity: CounterIdentity) -> CounterState:
        state = self._entries.get(identity)
        if state is None:
            raise RegistryError(f"Counter {identity} is not registered")
        return state


__all__ = [
    "CounterIdentity",
    "CounterRegistry",
    "CounterSample",
    "CounterState",
    "RegistryError",
]
