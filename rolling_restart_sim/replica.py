"""Replica tasks: synthetic query arrivals plus simulated scrape loss."""

from __future__ import annotations

import heapq
import logging
import random
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, List, Tuple

from .clock import Clock
from .registry import CounterIdentity, CounterRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TaskParams:
    """Per-replica traffic and loss settings."""

    qps: float
    jitter: float = 0.0
    loss: float = 0.0
    visibility_period: float = 1.0


class QueryGenerator:
    """Draws jittered wait times between synthetic queries.

    Waits are normal-distributed around ``1 / qps`` with ``jitter`` as the
    relative standard deviation (sigma / mu). Negative draws are clamped to
    zero, meaning "fire immediately".
    """

    def __init__(self, qps: float, jitter: float, rng: random.Random) -> None:
        if qps <= 0:
            raise ValueError(f"qps must be positive, got {qps}")
        if jitter < 0:
            raise ValueError(f"jitter must not be negative, got {jitter}")
        self.mean_wait = 1.0 / qps
        self.jitter = jitter
        self.random = rng

    def draw_wait(self) -> float:
        if self.jitter == 0:
            return self.mean_wait
        return max(self.mean_wait * (1.0 + self.random.normalvariate(0.0, self.jitter)), 0.0)

    def first_wait(self) -> float:
        # Replicas started together must not tick in phase.
        return self.draw_wait() * self.random.random()

    def waits(self) -> Iterator[float]:
        yield self.first_wait()
        while True:
            yield self.draw_wait()


class VisibilityController:
    """Hides a counter from the registry for one period with probability ``loss``."""

    def __init__(
        self,
        identity: CounterIdentity,
        registry: CounterRegistry,
        loss: float,
        rng: random.Random,
    ) -> None:
        if not 0.0 <= loss <= 1.0:
            raise ValueError(f"loss must be within [0, 1], got {loss}")
        self.identity = identity
        self.registry = registry
        self.loss = loss
        self.random = rng
        self.visible = True

    def tick(self) -> bool:
        if not self.visible:
            self.visible = True
            self.registry.set_visible(self.identity, True)
            logger.debug("Counter for task %d of batch %d visible again.", self.identity.slot, self.identity.batch)
        elif self.random.random() < self.loss:
            self.visible = False
            self.registry.set_visible(self.identity, False)
            logger.debug("Dropping counter for task %d of batch %d.", self.identity.slot, self.identity.batch)
        return self.visible


class _Event(IntEnum):
    # Lower values win ties between timers due at the same instant.
    EXPIRE = 0
    VISIBILITY = 1
    QUERY = 2


class ReplicaTask:
    """One simulated replica serving queries for a bounded lifetime."""

    def __init__(
        self,
        identity: CounterIdentity,
        lifetime: float,
        registry: CounterRegistry,
        params: TaskParams,
        rng: random.Random,
        clock: Clock,
    ) -> None:
        if lifetime < 0:
            raise ValueError(f"lifetime must not be negative, got {lifetime}")
        self.identity = identity
        self.lifetime = lifetime
        self.registry = registry
        self.params = params
        self.clock = clock
        self.generator = QueryGenerator(params.qps, params.jitter, rng)
        self.visibility = VisibilityController(identity, registry, params.loss, rng)
        self.queries = 0

    def run(self) -> None:
        logger.info("Starting task %d of batch %d.", self.identity.slot, self.identity.batch)
        self.registry.register(self.identity)
        try:
            self._loop()
        finally:
            self.registry.unregister(self.identity)
            logger.info(
                "Stopping task %d of batch %d after %d queries.",
                self.identity.slot,
                self.identity.batch,
                self.queries,
            )

    def _loop(self) -> None:
        start = self.clock.now()
        waits = self.generator.waits()
        timers: List[Tuple[float, _Event]] = [
            (start + self.lifetime, _Event.EXPIRE),
            (start + self.params.visibility_period, _Event.VISIBILITY),
            (start + next(waits), _Event.QUERY),
        ]
        heapq.heapify(timers)
        while True:
            deadline, event = heapq.heappop(timers)
            if self.clock.sleep(deadline - self.clock.now()):
                return
            if event is _Event.EXPIRE:
                return
            if event is _Event.QUERY:
                self.registry.increment(self.identity)
                self.queries += 1
                heapq.heappush(timers, (deadline + next(waits), _Event.QUERY))
            else:
                self.visibility.tick()
                heapq.heappush(timers, (deadline + self.params.visibility_period, _Event.VISIBILITY))


__all__ = ["QueryGenerator", "ReplicaTask", "TaskParams", "VisibilityController"]
