"""
Reconciliation report generation and formatting.
"""

from .formatters import (
    export_report_csv,
    export_report_json,
    format_report_console,
    validate_report,
)
from .generator import ReportStatus, format_timestamp, generate_report

__all__ = [
    'generate_report',
    'format_timestamp',
    'ReportStatus',
    'export_report_json',
    'export_report_csv',
    'format_report_console',
    'validate_report',
]
