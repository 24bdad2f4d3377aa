"""
Metrics for missing-parent reconciliation runs.

Tracks runs, scanned pages and records, skipped records, existence checks
and the size of the orphan set.
"""

import logging
import time
from typing import Optional

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    REGISTRY,
)

logger = logging.getLogger(__name__)


class ReconciliationMetrics:
    """
    Metrics for missing-parent reconciliation

    All series are labelled with the partition id that was scanned.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize reconciliation metrics

        Args:
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.registry = registry or REGISTRY

        self.reconciliation_runs_total = Counter(
            "reconciliation_runs_total",
            "Total number of reconciliation runs",
            ["partition", "status"],
            registry=self.registry,
        )

        self.reconciliation_duration_seconds = Histogram(
            "reconciliation_duration_seconds",
            "Duration of reconciliation runs in seconds",
            ["partition"],
            buckets=(1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600),
            registry=self.registry,
        )

        self.reconciliation_last_run_timestamp = Gauge(
            "reconciliation_last_run_timestamp",
            "Timestamp of last reconciliation run",
            ["partition"],
            registry=self.registry,
        )

        self.pages_scanned_total = Counter(
            "reconciliation_pages_scanned_total",
            "Pages of candidate records processed",
            ["partition"],
            registry=self.registry,
        )

        self.records_scanned_total = Counter(
            "reconciliation_records_scanned_total",
            "Candidate records processed",
            ["partition"],
            registry=self.registry,
        )

        self.records_skipped_total = Counter(
            "reconciliation_records_skipped_total",
            "Records skipped because their reference field was missing or malformed",
            ["partition"],
            registry=self.registry,
        )

        self.existence_checks_total = Counter(
            "reconciliation_existence_checks_total",
            "Batched parent existence checks issued",
            ["partition"],
            registry=self.registry,
        )

        self.orphan_keys = Gauge(
            "reconciliation_orphan_keys",
            "Parent keys referenced but not found in the last run",
            ["partition"],
            registry=self.registry,
        )

    def record_page(
        self,
        partition: int,
        records: int,
        skipped: int,
        checked: bool,
        orphans: int,
    ) -> None:
        """
        Record one processed page

        Args:
            partition: Partition id
            records: Records on the page
            skipped: Records skipped as anomalies
            checked: Whether an existence check was issued
            orphans: Size of the orphan set after the page
        """
        labels = {"partition": str(partition)}
        self.pages_scanned_total.labels(**labels).inc()
        self.records_scanned_total.labels(**labels).inc(records)
        if skipped:
            self.records_skipped_total.labels(**labels).inc(skipped)
        if checked:
            self.existence_checks_total.labels(**labels).inc()
        self.orphan_keys.labels(**labels).set(orphans)

    def record_reconciliation_run(
        self,
        partition: int,
        success: bool,
        duration: float,
    ) -> None:
        """
        Record the end of a run

        Args:
            partition: Partition id
            success: Whether the run completed
            duration: Duration in seconds
        """
        status = "success" if success else "failed"
        labels = {"partition": str(partition)}

        self.reconciliation_runs_total.labels(status=status, **labels).inc()
        self.reconciliation_duration_seconds.labels(**labels).observe(duration)
        self.reconciliation_last_run_timestamp.labels(**labels).set(time.time())

        logger.debug(
            f"Recorded reconciliation run: partition={partition}, "
            f"status={status}, duration={duration:.2f}s"
        )
