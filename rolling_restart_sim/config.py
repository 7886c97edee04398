"""Application configuration helpers."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import find_dotenv, load_dotenv

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: str) -> float:
    """Parse ``90``, ``1.5``, ``500ms``, ``1m`` or ``1h2m3s`` into seconds."""

    text = value.strip()
    try:
        return float(text)
    except ValueError:
        pass
    position = 0
    total = 0.0
    for match in _DURATION_PART_RE.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position == 0 or position != len(text):
        raise ValueError(f"Invalid duration: {value!r}")
    return total


def parse_address(value: str) -> Tuple[str, int]:
    """Split ``host:port`` (or ``:port``) into its parts; an empty host binds all interfaces."""

    host, sep, port = value.rpartition(":")
    if not sep:
        raise ValueError(f"Invalid address, expected host:port: {value!r}")
    try:
        port_number = int(port)
    except ValueError as exc:
        raise ValueError(f"Invalid port in address {value!r}") from exc
    return host.strip("[]") or "0.0.0.0", port_number


@dataclass(slots=True)
class Config:
    """Runtime configuration parsed from environment variables."""

    task_count: int = 20
    restart_duration_seconds: float = 60.0
    run_duration_seconds: float = 60.0
    qps: float = 10.0
    jitter: float = 0.0
    loss: float = 0.0
    metrics_host: str = "0.0.0.0"
    metrics_port: int = 8080
    enable_openmetrics: bool = False
    enable_openmetrics_created: bool = False
    random_seed: Optional[int] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables and defaults."""

        load_dotenv(find_dotenv(usecwd=True))

        def _get_int(name: str, default: int) -> int:
            value = os.getenv(name)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as exc:
                raise ValueError(f"Invalid integer for {name}: {value}") from exc

        def _get_float(name: str, default: float) -> float:
            value = os.getenv(name)
            if value is None:
                return default
            try:
                return float(value)
            except ValueError as exc:
                raise ValueError(f"Invalid float for {name}: {value}") from exc

        def _get_duration(name: str, default: float) -> float:
            value = os.getenv(name)
            if value is None:
                return default
            try:
                return parse_duration(value)
            except ValueError as exc:
                raise ValueError(f"Invalid duration for {name}: {value}") from exc

        def _get_bool(name: str, default: bool) -> bool:
            value = os.getenv(name)
            if value is None:
                return default
            return value.strip().lower() in {"1", "true", "yes", "on"}

        random_seed: Optional[int]
        random_seed_value = os.getenv("RANDOM_SEED")
        if random_seed_value is not None:
            try:
                random_seed = int(random_seed_value)
            except ValueError as exc:
                raise ValueError(
                    f"Invalid integer for RANDOM_SEED: {random_seed_value}"
                ) from exc
        else:
            random_seed = None

        return cls(
            task_count=_get_int("TASK_COUNT", 20),
            restart_duration_seconds=_get_duration("RESTART_DURATION", 60.0),
            run_duration_seconds=_get_duration("RUN_DURATION", 60.0),
            qps=_get_float("QPS", 10.0),
            jitter=_get_float("JITTER", 0.0),
            loss=_get_float("LOSS", 0.0),
            metrics_host=os.getenv("METRICS_HOST", "0.0.0.0"),
            metrics_port=_get_int("METRICS_PORT", 8080),
            enable_openmetrics=_get_bool("ENABLE_OPENMETRICS", False),
            enable_openmetrics_created=_get_bool("ENABLE_OPENMETRICS_CREATED", False),
            random_seed=random_seed,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """Reject settings the simulation cannot run with."""

        if self.task_count <= 0:
            raise ValueError(f"task_count must be positive, got {self.task_count}")
        if self.restart_duration_seconds <= 0:
            raise ValueError(
                f"restart_duration_seconds must be positive, got {self.restart_duration_seconds}"
            )
        if self.run_duration_seconds <= 0:
            raise ValueError(f"run_duration_seconds must be positive, got {self.run_duration_seconds}")
        if self.qps <= 0:
            raise ValueError(f"qps must be positive, got {self.qps}")
        if self.jitter < 0:
            raise ValueError(f"jitter must not be negative, got {self.jitter}")
        if not 0.0 <= self.loss <= 1.0:
            raise ValueError(f"loss must be within [0, 1], got {self.loss}")
        if not 0 <= self.metrics_port <= 65535:
            raise ValueError(f"metrics_port out of range: {self.metrics_port}")


__all__ = ["Config", "parse_address", "parse_duration"]
