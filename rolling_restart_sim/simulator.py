"""Wire the replica fleet, the counter registry and the metrics endpoint together."""

from __future__ import annotations

import collections
import logging
import threading
from typing import Deque, Optional
from wsgiref.simple_server import WSGIServer

from .clock import MonotonicClock
from .config import Config
from .exporter import make_metrics_app, start_exporter
from .registry import CounterRegistry
from .replica import ReplicaTask
from .scheduler import BatchScheduler, spawn_thread

logger = logging.getLogger(__name__)


class RollingRestartSimulator:
    """Run a fleet of fake replicas that restarts in rolling batches."""

    def __init__(
        self,
        config: Config,
        registry: CounterRegistry | None = None,
        clock: MonotonicClock | None = None,
    ) -> None:
        config.validate()
        self.config = config
        self.registry = registry or CounterRegistry()
        self.clock = clock or MonotonicClock()
        self._threads_lock = threading.Lock()
        # At most two batches are alive at once.
        self._threads: Deque[threading.Thread] = collections.deque(maxlen=2 * config.task_count)
        self.scheduler = BatchScheduler(config, self.registry, clock=self.clock, spawn=self._spawn)
        self.server: Optional[WSGIServer] = None

    def _spawn(self, task: ReplicaTask) -> None:
        thread = spawn_thread(task)
        with self._threads_lock:
            self._threads.append(thread)

    def run(self, batches: int | None = None, serve: bool = True) -> None:
        logger.info(
            "Starting rolling restart simulation with %s tasks per batch (port %s)",
            self.config.task_count,
            self.config.metrics_port,
        )
        if serve:
            app = make_metrics_app(
                self.registry,
                enable_openmetrics=self.config.enable_openmetrics,
                enable_created=self.config.enable_openmetrics_created,
            )
            self.server = start_exporter(app, self.config.metrics_host, self.config.metrics_port)
        try:
            self.scheduler.run(batches=batches)
            if batches is not None and not self.clock.stopped:
                logger.info("All %s restart batches started, waiting for tasks to finish", batches)
                self.wait()
        finally:
            self._shutdown_server()

    def wait(self) -> None:
        with self._threads_lock:
            threads = list(self._threads)
        for thread in threads:
            thread.join()

    def stop(self) -> None:
        self.clock.stop()
        self.wait()
        self._shutdown_server()

    def _shutdown_server(self) -> None:
        server, self.server = self.server, None
        if server is not None:
            server.shutdown()
            server.server_close()


def run_from_config(config: Config, batches: int | None = None) -> None:
    """Run the simulator with the provided configuration."""

    simulator = RollingRestartSimulator(config)
    try:
        simulator.run(batches=batches)
    except KeyboardInterrupt:
        simulator.stop()
        raise


__all__ = ["RollingRestartSimulator", "run_from_config"]
