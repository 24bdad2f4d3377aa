"""
Metrics publishing for Prometheus.

A reconciliation run is a batch job: metrics are either served on /metrics
while it runs or pushed to a Pushgateway when it finishes.
"""

import logging
from typing import Optional

from prometheus_client import (
    start_http_server,
    push_to_gateway,
    CollectorRegistry,
    REGISTRY,
)

logger = logging.getLogger(__name__)


class MetricsPublisher:
    """
    Publishes metrics from a registry

    Either starts an HTTP server exposing /metrics or pushes the registry
    to a Pushgateway.
    """

    def __init__(
        self,
        port: int = 9091,
        registry: Optional[CollectorRegistry] = None,
        pushgateway: Optional[str] = None,
        job: str = "operate-parent-reconciliation",
    ):
        """
        Initialize metrics publisher

        Args:
            port: Port to expose metrics on (default: 9091)
            registry: Custom Prometheus registry (default: global REGISTRY)
            pushgateway: Pushgateway address, e.g. "localhost:9091"
            job: Job label used when pushing
        """
        self.port = port
        self.registry = registry or REGISTRY
        self.pushgateway = pushgateway
        self.job = job
        self._server_started = False

    def start(self) -> None:
        """Start the metrics HTTP server"""
        if self._server_started:
            logger.warning(f"Metrics server already running on port {self.port}")
            return

        try:
            start_http_server(self.port, registry=self.registry)
        except OSError as e:
            raise RuntimeError(
                f"Metrics server port {self.port} is already in use or unavailable: {e}"
            ) from e

        self._server_started = True
        logger.info(f"Metrics server started on port {self.port}")

    def is_started(self) -> bool:
        """Check if metrics server is running"""
        return self._server_started

    def push(self) -> bool:
        """
        Push the registry to the configured Pushgateway

        Push failures are logged and reported through the return value;
        they never fail the reconciliation run.

        Returns:
            True if metrics were pushed
        """
        if not self.pushgateway:
            return False

        try:
            push_to_gateway(self.pushgateway, job=self.job, registry=self.registry)
        except Exception as e:
            logger.error(f"Failed to push metrics to {self.pushgateway}: {e}")
            return False

        logger.info(f"Pushed metrics to {self.pushgateway} (job={self.job})")
        return True
