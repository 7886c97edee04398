"""HTTP exposition of the simulated counters."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, List, Tuple
from wsgiref.simple_server import WSGIServer

from prometheus_client import make_wsgi_app
from prometheus_client.exposition import ThreadingWSGIServer, _SilentHandler, make_server

from .metrics import build_collector_registry
from .registry import CounterRegistry

logger = logging.getLogger(__name__)

METRICS_PATH = "/metrics"
OPENMETRICS_MEDIA_TYPE = "application/openmetrics-text"

StartResponse = Callable[[str, List[Tuple[str, str]]], object]
WSGIApp = Callable[[dict, StartResponse], Iterable[bytes]]


def accepts_openmetrics(accept_header: str) -> bool:
    return any(
        accepted.split(";")[0].strip() == OPENMETRICS_MEDIA_TYPE
        for accepted in accept_header.split(",")
    )


def make_metrics_app(
    registry: CounterRegistry,
    enable_openmetrics: bool = False,
    enable_created: bool = False,
) -> WSGIApp:
    """Build a WSGI app serving ``registry`` on ``/metrics``.

    Scrapers get the classic text format unless ``enable_openmetrics`` is set
    and their ``Accept`` header asks for OpenMetrics. ``_created`` samples are
    only ever part of OpenMetrics output.
    """

    text_app = make_wsgi_app(build_collector_registry(registry))
    openmetrics_app = None
    if enable_openmetrics:
        openmetrics_app = make_wsgi_app(build_collector_registry(registry, include_created=enable_created))

    def app(environ: dict, start_response: StartResponse) -> Iterable[bytes]:
        if environ.get("PATH_INFO", "/") != METRICS_PATH:
            start_response("404 Not Found", [("Content-Type", "text/plain; charset=utf-8")])
            return [b"Not Found\n"]
        if openmetrics_app is not None and accepts_openmetrics(environ.get("HTTP_ACCEPT", "")):
            return openmetrics_app(environ, start_response)
        return text_app(dict(environ, HTTP_ACCEPT="text/plain"), start_response)

    return app


def start_exporter(app: WSGIApp, host: str, port: int) -> WSGIServer:
    """Serve ``app`` from a daemon thread and return the running server."""

    server = make_server(host, port, app, ThreadingWSGIServer, handler_class=_SilentHandler)
    thread = threading.Thread(target=server.serve_forever, name="metrics-exporter", daemon=True)
    thread.start()
    logger.info("Serving metrics on http://%s:%s%s", host, server.server_port, METRICS_PATH)
    return server


__all__ = ["METRICS_PATH", "accepts_openmetrics", "make_metrics_app", "start_exporter"]
