"""
Report formatting and export utilities.

Exports reconciliation reports as JSON, CSV (one row per orphan key) or a
console summary.
"""

import csv
import json
from typing import Any

REQUIRED_FIELDS = ("status", "partition_id", "import_position", "orphan_keys", "timestamp")


def validate_report(report: dict[str, Any]) -> None:
    """
    Check that a loaded report has the fields the formatters need

    Raises:
        ValueError: If fields are missing
    """
    if not isinstance(report, dict):
        raise ValueError("Report must be a JSON object")
    missing = [name for name in REQUIRED_FIELDS if name not in report]
    if missing:
        raise ValueError(f"Report is missing fields: {', '.join(missing)}")


def export_report_json(report: dict[str, Any], output_path: str) -> None:
    """Export report to a JSON file"""
    with open(output_path, 'w') as f:
        json.dump(report, f, indent=2)


def export_report_csv(report: dict[str, Any], output_path: str) -> None:
    """
    Export orphan keys to a CSV file

    Each row names the partition, the import position and one missing
    parent key.
    """
    with open(output_path, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(["Partition", "Import Position", "Parent Indices", "Missing Parent Key"])
        for key in report.get("orphan_keys", []):
            writer.writerow([
                report.get("partition_id", ""),
                report.get("import_position", ""),
                report.get("parent_indices", ""),
                key,
            ])


def format_report_console(report: dict[str, Any]) -> str:
    """Format report for console output"""
    lines = []

    lines.append("=" * 80)
    lines.append("MISSING PARENT RECONCILIATION REPORT")
    lines.append("=" * 80)
    lines.append(f"Status: {report['status']}")
    lines.append(f"Timestamp: {report['timestamp']}")
    lines.append(f"Partition: {report['partition_id']}")
    lines.append(f"Import Position: {report['import_position']}")
    if report.get("record_indices"):
        lines.append(f"Records: {report['record_indices']}")
    if report.get("parent_indices"):
        lines.append(f"Parents: {report['parent_indices']}")
    if report.get("candidate_count") is not None:
        lines.append(f"Records With Parent: {report['candidate_count']:,}")
    lines.append(f"Records Scanned: {report.get('records_scanned', 0):,}")
    lines.append(f"Pages Scanned: {report.get('pages_scanned', 0):,}")
    lines.append(f"Parent Key Lookups: {report.get('keys_looked_up', 0):,}")
    lines.append(f"Skipped Records: {report.get('skipped_records', 0):,}")
    lines.append("")

    if report.get("summary"):
        lines.append("SUMMARY")
        lines.append("-" * 80)
        lines.append(report["summary"])
        lines.append("")

    if report["orphan_keys"]:
        lines.append(f"NON EXISTING PARENTS ({len(report['orphan_keys'])})")
        lines.append("-" * 80)
        for key in report["orphan_keys"]:
            lines.append(f"  {key}")
        lines.append("")

    lines.append("=" * 80)

    return "\n".join(lines)
