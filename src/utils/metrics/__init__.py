"""
Prometheus metrics for reconciliation runs

Usage:
    from utils.metrics import MetricsPublisher, ReconciliationMetrics

    registry = CollectorRegistry()
    metrics = ReconciliationMetrics(registry=registry)
    ...
    MetricsPublisher(registry=registry, pushgateway="localhost:9091").push()
"""

from .publisher import MetricsPublisher
from .reconciliation import ReconciliationMetrics

__all__ = [
    "MetricsPublisher",
    "ReconciliationMetrics",
]
