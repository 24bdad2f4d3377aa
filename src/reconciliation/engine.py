"""
Missing-parent reconciliation.

Scans process-instance records of one partition that are newer than an
import position and reference a parent, and checks page by page whether the
referenced parent element instances exist in the secondary indices. Keys
that are not found accumulate in the orphan set.

Each page is checked before the next page is fetched, so at most one page
of keys is in flight at any time.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from opentelemetry import trace

from utils.logging import ContextLogger
from utils.metrics import ReconciliationMetrics
from utils.search import (
    SCROLL_KEEP_ALIVE_MS,
    Query,
    QueryClient,
    exists_query,
    get_field,
    join_with_and,
    must_not,
    range_query,
    scroll_field_values,
    scroll_with,
    sort_ascending,
    term_query,
    terms_query,
)
from utils.tracing import add_span_attributes, add_span_event, trace_operation

logger = logging.getLogger(__name__)

DEFAULT_RECORD_INDICES = "zeebe-record_process-instance_*"
DEFAULT_PARENT_INDICES = "operate*"
DEFAULT_PAGE_SIZE = 3000
DEFAULT_CHECK_PAGE_SIZE = 1000
UNSET_KEY = -1


class ReconciliationState(Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    CHECKING = "checking"
    ACCUMULATING = "accumulating"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ScanSettings:
    """
    What to scan and how

    Attributes:
        partition_id: Partition whose records are scanned
        import_position: Only records with a position above this are scanned
        record_indices: Index pattern of the candidate records
        parent_indices: Index pattern searched for the parents
        page_size: Page size of the candidate scan
        check_page_size: Page size of each existence check
        keep_alive_ms: Scroll keep-alive for both scans
        sort_field: Candidate records are sorted ascending by this field
        parent_filter_field: Field that must be set (and not the sentinel) on candidates
        reference_field: Field holding the parent key to look up
        key_field: Key field of records and parents
        unset_value: Sentinel meaning "no parent"
        count_first: Count candidates before scanning, for operator visibility
    """

    partition_id: int
    import_position: int
    record_indices: str = DEFAULT_RECORD_INDICES
    parent_indices: str = DEFAULT_PARENT_INDICES
    page_size: int = DEFAULT_PAGE_SIZE
    check_page_size: int = DEFAULT_CHECK_PAGE_SIZE
    keep_alive_ms: int = SCROLL_KEEP_ALIVE_MS
    sort_field: str = "sequence"
    parent_filter_field: str = "value.parentProcessInstanceKey"
    reference_field: str = "value.parentElementInstanceKey"
    key_field: str = "key"
    unset_value: int = UNSET_KEY
    count_first: bool = True

    def __post_init__(self):
        for name in ("page_size", "check_page_size", "keep_alive_ms"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome of a completed run.

    keys_looked_up counts keys sent to existence checks per page; a key
    referenced on several pages is counted once per page.
    """

    orphans: frozenset[int]
    candidate_count: int | None = None
    pages_scanned: int = 0
    records_scanned: int = 0
    keys_looked_up: int = 0
    existence_checks: int = 0
    skipped_records: int = 0
    duration_seconds: float = 0.0

    @property
    def has_orphans(self) -> bool:
        return bool(self.orphans)


@dataclass
class _RunStats:
    pages: int = 0
    records: int = 0
    keys_looked_up: int = 0
    checks: int = 0
    skipped: int = 0
    orphans: set[int] = field(default_factory=set)


def _as_key(value: Any) -> int | None:
    # bool is an int subclass but never a valid key
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


class MissingParentReconciler:
    """
    Finds records whose parent element instance does not exist

    Usage:
        reconciler = MissingParentReconciler(client, ScanSettings(partition_id=1, import_position=0))
        result = reconciler.run()
        print(sorted(result.orphans))
    """

    def __init__(
        self,
        client: QueryClient,
        settings: ScanSettings,
        metrics: ReconciliationMetrics | None = None,
    ):
        """
        Initialize reconciler

        Args:
            client: Query client for both collections
            settings: Scan settings
            metrics: Optional Prometheus metrics sink
        """
        self.client = client
        self.settings = settings
        self.metrics = metrics
        self.state = ReconciliationState.IDLE
        self.log = ContextLogger(
            __name__,
            partition_id=settings.partition_id,
            import_position=settings.import_position,
        )

    def build_record_filter(self) -> dict[str, Any]:
        """Filter selecting candidate records of the partition above the watermark."""
        s = self.settings
        return join_with_and(
            term_query("partitionId", s.partition_id),
            range_query("position", gt=s.import_position),
            exists_query(s.parent_filter_field),
            must_not(term_query(s.parent_filter_field, s.unset_value)),
        )

    def build_record_query(self) -> Query:
        s = self.settings
        return Query(
            indices=s.record_indices,
            filter=self.build_record_filter(),
            sort=(sort_ascending(s.sort_field),),
            source=(s.key_field, "value.processInstanceKey", s.reference_field),
            size=s.page_size,
        )

    def build_parent_query(self, keys: Iterable[int]) -> Query:
        s = self.settings
        return Query(
            indices=s.parent_indices,
            filter=terms_query(s.key_field, keys),
            source=(s.key_field,),
            size=s.check_page_size,
        )

    def extract_reference_keys(self, hits: list[dict[str, Any]]) -> tuple[set[int], int]:
        """
        Collect the distinct parent keys referenced by a page

        Records without the reference field, with a non-integer value or with
        the sentinel are skipped.

        Returns:
            Tuple of (keys, number of skipped records)
        """
        keys: set[int] = set()
        skipped = 0

        for hit in hits:
            raw = get_field(hit.get("_source"), self.settings.reference_field)
            key = _as_key(raw)
            if key is None or key == self.settings.unset_value:
                skipped += 1
                logger.debug(
                    f"Skipping record {hit.get('_id', '?')}: "
                    f"{self.settings.reference_field}={raw!r}"
                )
                continue
            keys.add(key)

        return keys, skipped

    def find_missing_parents(self, keys: set[int]) -> set[int]:
        """
        Return the keys that have no record in the parent indices

        Runs its own scroll over the parent indices; the scroll is released
        before this returns.
        """
        if not keys:
            return set()

        existing_values = scroll_field_values(
            self.client,
            self.build_parent_query(keys),
            self.settings.key_field,
            keep_alive_ms=self.settings.keep_alive_ms,
        )
        existing = {k for k in map(_as_key, existing_values) if k is not None}
        return keys - existing

    def count_candidates(self) -> int:
        s = self.settings
        count = self.client.count(s.record_indices, self.build_record_filter())
        self.log.info(
            f"Amount of records with parent on partition {s.partition_id}: {count}",
            candidates=count,
        )
        return count

    def _process_page(self, hits: list[dict[str, Any]], stats: _RunStats) -> None:
        stats.pages += 1
        stats.records += len(hits)

        with trace_operation("reconciliation.page", page=stats.pages, records=len(hits)):
            keys, skipped = self.extract_reference_keys(hits)
            stats.skipped += skipped

            checked = False
            if keys:
                self.state = ReconciliationState.CHECKING
                missing = self.find_missing_parents(keys)
                checked = True
                stats.checks += 1
                stats.keys_looked_up += len(keys)

                self.state = ReconciliationState.ACCUMULATING
                stats.orphans |= missing
                add_span_attributes(keys=len(keys), missing=len(missing))

                self.log.info(
                    f"Non existing parents after page {stats.pages}: {sorted(stats.orphans)}",
                    page=stats.pages,
                    keys=len(keys),
                    missing=len(missing),
                )
            else:
                self.log.debug(
                    f"Page {stats.pages} has no parent references, no check issued",
                    page=stats.pages,
                )

        if self.metrics is not None:
            self.metrics.record_page(
                self.settings.partition_id,
                records=len(hits),
                skipped=skipped,
                checked=checked,
                orphans=len(stats.orphans),
            )

        self.state = ReconciliationState.SCANNING

    def run(self) -> ReconciliationResult:
        """
        Run the reconciliation once

        Returns:
            ReconciliationResult with the final orphan set

        Raises:
            SearchError: If any count, scan or existence check fails; no
                result is produced in that case
        """
        s = self.settings
        stats = _RunStats()
        start = time.monotonic()
        candidate_count = None

        self.log.info(
            f"Starting missing parent reconciliation on {s.record_indices} "
            f"against {s.parent_indices}"
        )

        try:
            with trace_operation(
                "reconciliation.run",
                kind=trace.SpanKind.INTERNAL,
                partition_id=s.partition_id,
                import_position=s.import_position,
            ):
                self.state = ReconciliationState.SCANNING
                if s.count_first:
                    candidate_count = self.count_candidates()

                scroll_with(
                    self.client,
                    self.build_record_query(),
                    lambda hits: self._process_page(hits, stats),
                    keep_alive_ms=s.keep_alive_ms,
                )
                add_span_event("reconciliation_completed", orphans=len(stats.orphans))
        except Exception as e:
            self.state = ReconciliationState.FAILED
            duration = time.monotonic() - start
            self.log.error(
                f"Reconciliation aborted after {stats.pages} page(s): "
                f"{type(e).__name__}: {e}"
            )
            if self.metrics is not None:
                self.metrics.record_reconciliation_run(s.partition_id, success=False, duration=duration)
            raise

        duration = time.monotonic() - start
        self.state = ReconciliationState.DONE

        if stats.skipped:
            self.log.warning(
                f"Skipped {stats.skipped} record(s) without a usable {s.reference_field}",
                skipped=stats.skipped,
            )
        self.log.info(
            f"Non existing parents: {sorted(stats.orphans)}",
            pages=stats.pages,
            records=stats.records,
            orphans=len(stats.orphans),
        )

        if self.metrics is not None:
            self.metrics.record_reconciliation_run(s.partition_id, success=True, duration=duration)

        return ReconciliationResult(
            orphans=frozenset(stats.orphans),
            candidate_count=candidate_count,
            pages_scanned=stats.pages,
            records_scanned=stats.records,
            keys_looked_up=stats.keys_looked_up,
            existence_checks=stats.checks,
            skipped_records=stats.skipped,
            duration_seconds=duration,
        )
