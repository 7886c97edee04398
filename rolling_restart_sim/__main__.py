"""Command line entrypoint for the rolling restart simulator."""

from __future__ import annotations

import argparse
import logging
from typing import Optional

from .config import Config, parse_address, parse_duration
from .simulator import run_from_config


def _duration(value: str) -> float:
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rolling-restart-sim",
        description=(
            "Start a Prometheus endpoint exposing query counters of a simulated "
            "fleet of tasks that goes through rolling restarts."
        ),
    )
    parser.add_argument(
        "-n",
        "--tasks",
        type=int,
        default=None,
        help="Number of tasks per batch (default from TASK_COUNT env, 20).",
    )
    parser.add_argument(
        "--restart-duration",
        type=_duration,
        default=None,
        help="Duration of a rolling restart, e.g. 60, 1m or 1m30s.",
    )
    parser.add_argument(
        "--run-duration",
        type=_duration,
        default=None,
        help="Duration between restarts (and initial time before the first restart).",
    )
    parser.add_argument(
        "--qps",
        type=float,
        default=None,
        help="Average queries per second per task.",
    )
    parser.add_argument(
        "--jitter",
        type=float,
        default=None,
        help=(
            "How much the wait time between queries is randomly changed. The wait "
            "time is normal-distributed with the given jitter value equaling sigma/mu."
        ),
    )
    parser.add_argument(
        "--loss",
        type=float,
        default=None,
        help=(
            "Relative amount of lost scrapes, simulated by removing a counter from "
            "the exposed metrics for 1s now and then."
        ),
    )
    parser.add_argument(
        "--addr",
        type=str,
        default=None,
        help="Address to bind the /metrics endpoint to, e.g. :8080 or 127.0.0.1:9100.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Override the metrics HTTP port (default from METRICS_PORT env).",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Override the metrics HTTP host (default from METRICS_HOST env).",
    )
    parser.add_argument(
        "--enable-openmetrics",
        action="store_true",
        default=None,
        help="Enable OpenMetrics encoding in the /metrics endpoint.",
    )
    parser.add_argument(
        "--enable-openmetrics-created",
        action="store_true",
        default=None,
        help="Enable _created timestamps in OpenMetrics output.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible runs (default from RANDOM_SEED env).",
    )
    parser.add_argument(
        "--batches",
        type=int,
        default=None,
        help="Number of restart batches to run before exiting (default: run forever).",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Set an explicit log level (default from LOG_LEVEL env).",
    )
    return parser


def _configure_logging(level: str) -> None:
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_config(args: argparse.Namespace) -> Config:
    """Environment configuration with command line overrides applied."""

    config = Config.from_env()

    if args.tasks is not None:
        config.task_count = args.tasks
    if args.restart_duration is not None:
        config.restart_duration_seconds = args.restart_duration
    if args.run_duration is not None:
        config.run_duration_seconds = args.run_duration
    if args.qps is not None:
        config.qps = args.qps
    if args.jitter is not None:
        config.jitter = args.jitter
    if args.loss is not None:
        config.loss = args.loss
    if args.addr is not None:
        config.metrics_host, config.metrics_port = parse_address(args.addr)
    if args.host is not None:
        config.metrics_host = args.host
    if args.port is not None:
        config.metrics_port = args.port
    if args.enable_openmetrics is not None:
        config.enable_openmetrics = args.enable_openmetrics
    if args.enable_openmetrics_created is not None:
        config.enable_openmetrics_created = args.enable_openmetrics_created
    if args.seed is not None:
        config.random_seed = args.seed
    if args.log_level is not None:
        config.log_level = args.log_level

    config.validate()
    return config


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.batches is not None and args.batches < 0:
        parser.error("--batches must not be negative")
    try:
        config = build_config(args)
    except ValueError as exc:
        parser.error(str(exc))

    _configure_logging(config.log_level)

    try:
        run_from_config(config, batches=args.batches)
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Received interrupt, shutting down.")


if __name__ == "__main__":  # pragma: no cover - module entrypoint
    main()
