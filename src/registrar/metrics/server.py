"""HTTP server for Prometheus metrics endpoint."""

from __future__ import annotations

import logging

from prometheus_client import start_http_server

logger = logging.getLogger(__name__)


def start_metrics_server(port: int = 9090) -> None:
    """Serve ``/metrics`` on *port* from a background thread."""
    start_http_server(port)
    logger.info("Prometheus metrics server started on port %d", port)
