"""
Missing-parent reconciliation for Operate process instance records

This module checks that every parent element instance referenced by the
process instance records of a partition exists in the Operate indices.

Components:
- engine: Paged scan of candidate records and batched existence checks
- report: Reconciliation report generation
- cli: The reconcile-parents command

Usage:
    from reconciliation.engine import MissingParentReconciler, ScanSettings
    from reconciliation.report import generate_report
"""

__version__ = "1.0.0"
__all__ = ["engine", "report", "cli"]
