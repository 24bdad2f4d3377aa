"""
Report generation for missing-parent reconciliation runs.

Turns a ReconciliationResult into a plain dictionary that can be printed,
saved as JSON and loaded again by the ``report`` command.
"""

from datetime import UTC, datetime
from typing import Any

from reconciliation.engine import ReconciliationResult, ScanSettings


class ReportStatus:
    """Constants for report status values."""

    PASS = "PASS"
    ORPHANS_FOUND = "ORPHANS_FOUND"


def format_timestamp(timestamp: datetime) -> str:
    """ISO 8601 timestamp for reports."""
    return timestamp.isoformat()


def _generate_summary(result: ReconciliationResult, settings: ScanSettings) -> str:
    scope = (
        f"partition {settings.partition_id} above position {settings.import_position}"
    )
    lookups = (
        f"{result.keys_looked_up} key lookup(s) in {result.existence_checks} "
        f"existence check(s) over {result.records_scanned} record(s)"
    )
    if not result.orphans:
        return f"No referenced parent is missing for {scope} ({lookups})."
    return (
        f"{len(result.orphans)} referenced parent(s) are missing from "
        f"{settings.parent_indices} for {scope} ({lookups})."
    )


def generate_report(
    result: ReconciliationResult,
    settings: ScanSettings,
    generated_at: datetime | None = None,
) -> dict[str, Any]:
    """
    Generate a report dictionary

    Args:
        result: Completed run
        settings: Settings the run used
        generated_at: Report timestamp (default: now, UTC)

    Returns:
        Dictionary containing status, scope, counters, sorted orphan_keys,
        summary and timestamp
    """
    status = ReportStatus.ORPHANS_FOUND if result.orphans else ReportStatus.PASS

    return {
        "status": status,
        "partition_id": settings.partition_id,
        "import_position": settings.import_position,
        "record_indices": settings.record_indices,
        "parent_indices": settings.parent_indices,
        "candidate_count": result.candidate_count,
        "pages_scanned": result.pages_scanned,
        "records_scanned": result.records_scanned,
        "keys_looked_up": result.keys_looked_up,
        "existence_checks": result.existence_checks,
        "skipped_records": result.skipped_records,
        "orphan_count": len(result.orphans),
        "orphan_keys": sorted(result.orphans),
        "duration_seconds": round(result.duration_seconds, 3),
        "summary": _generate_summary(result, settings),
        "timestamp": format_timestamp(generated_at or datetime.now(UTC)),
    }
