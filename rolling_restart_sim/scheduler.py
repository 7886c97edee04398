"""Rolling restart orchestration for the simulated replica fleet."""

from __future__ import annotations

import itertools
import logging
import random
import threading
from typing import Callable, Optional

from .clock import Clock, MonotonicClock
from .config import Config
from .registry import CounterIdentity, CounterRegistry
from .replica import ReplicaTask, TaskParams

logger = logging.getLogger(__name__)

SpawnFn = Callable[[ReplicaTask], object]


def spawn_thread(task: ReplicaTask) -> threading.Thread:
    thread = threading.Thread(
        target=task.run,
        name=f"replica-b{task.identity.batch}-t{task.identity.slot}",
        daemon=True,
    )
    thread.start()
    return thread


class BatchScheduler:
    """Start replicas in staggered waves that emulate rolling restarts.

    Batch 0 models replicas that were already running before observation
    started: all slots start at once but their lifetimes are spread over one
    restart duration. Every later batch replaces the slots one by one, a
    restart duration divided by the task count apart. Old replicas are never
    stopped by the scheduler; they expire on their own timer.
    """

    def __init__(
        self,
        config: Config,
        registry: CounterRegistry,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        spawn: Optional[SpawnFn] = None,
    ) -> None:
        config.validate()
        self.config = config
        self.registry = registry
        self.clock = clock or MonotonicClock()
        self.random = rng or random.Random(config.random_seed)
        self.spawn = spawn or spawn_thread
        self.params = TaskParams(qps=config.qps, jitter=config.jitter, loss=config.loss)
        self.batch = 0

    def initial_lifetime(self, slot: int) -> float:
        return (
            self.config.run_duration_seconds
            + self.config.restart_duration_seconds * slot / self.config.task_count
        )

    def restart_lifetime(self) -> float:
        return self.config.run_duration_seconds + self.config.restart_duration_seconds

    def restart_step(self) -> float:
        return self.config.restart_duration_seconds / self.config.task_count

    def start_initial_batch(self) -> None:
        self.batch = 0
        for slot in range(self.config.task_count):
            self._start_task(slot, self.initial_lifetime(slot))

    def run_restart_batch(self, batch: int) -> bool:
        """Replace every slot with a task of ``batch``; False if interrupted."""

        self.batch = batch
        logger.info("Initiating restart batch %d.", batch)
        for slot in range(self.config.task_count):
            self._start_task(slot, self.restart_lifetime())
            if self.clock.sleep(self.restart_step()):
                logger.info("Restart batch %d interrupted after task %d.", batch, slot)
                return False
        logger.info("Restart batch %d complete.", batch)
        return True

    def run(self, batches: Optional[int] = None) -> None:
        """Run the initial batch, then ``batches`` restart batches (forever if None)."""

        self.start_initial_batch()
        loop = itertools.count(1) if batches is None else range(1, batches + 1)
        for batch in loop:
            if self.clock.sleep(self.config.run_duration_seconds):
                return
            if not self.run_restart_batch(batch):
                return

    def _start_task(self, slot: int, lifetime: float) -> None:
        task = ReplicaTask(
            identity=CounterIdentity(self.batch, slot),
            lifetime=lifetime,
            registry=self.registry,
            params=self.params,
            rng=random.Random(self.random.getrandbits(64)),
            clock=self.clock,
        )
        self.spawn(task)


__all__ = ["BatchScheduler", "spawn_thread"]
