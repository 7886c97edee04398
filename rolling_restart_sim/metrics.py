"""Prometheus collector exposing the simulated replica counters."""

from __future__ import annotations

from typing import Iterable

from prometheus_client import CollectorRegistry
from prometheus_client.core import CounterMetricFamily, Metric
from prometheus_client.registry import Collector

from .registry import CounterRegistry

QUERIES_METRIC_NAME = "queries_total"
QUERIES_METRIC_HELP = "Number of (simulated) queries the task has served."
QUERIES_LABELS = ("batch", "task")


class QueryCounterCollector(Collector):
    """Render the visible entries of a :class:`CounterRegistry` on every scrape."""

    def __init__(self, registry: CounterRegistry, include_created: bool = False) -> None:
        self.registry = registry
        self.include_created = include_created

    def collect(self) -> Iterable[Metric]:
        family = CounterMetricFamily(
            QUERIES_METRIC_NAME,
            QUERIES_METRIC_HELP,
            labels=QUERIES_LABELS,
        )
        for sample in self.registry.snapshot():
            labels = sample.identity.labels()
            family.add_metric(
                [labels[name] for name in QUERIES_LABELS],
                sample.value,
                created=sample.created if self.include_created else None,
            )
        yield family


def build_collector_registry(
    registry: CounterRegistry, include_created: bool = False
) -> CollectorRegistry:
    """Wrap ``registry`` in a dedicated CollectorRegistry (never the global default)."""

    collector_registry = CollectorRegistry()
    collector_registry.register(QueryCounterCollector(registry, include_created=include_created))
    return collector_registry


__all__ = [
    "QUERIES_LABELS",
    "QUERIES_METRIC_HELP",
    "QUERIES_METRIC_NAME",
    "QueryCounterCollector",
    "build_collector_registry",
]
