#!/usr/bin/env python3
"""
Missing-parent reconciliation for Operate process instance records

Checks that every parent element instance referenced by the process
instance records of a partition exists in the Operate indices.

Usage:
    # One run, console report
    python reconcile.py run --partition-id 1 --import-position 123456

    # JSON report for later inspection
    python reconcile.py run --partition-id 1 --import-position 0 --format json --output report.json

    # Using Vault for cluster credentials
    python reconcile.py run --partition-id 1 --import-position 0 --use-vault

    # Print a saved report
    python reconcile.py report --input report.json
"""

import sys
from pathlib import Path

# Add the source tree to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from reconciliation.cli import main

if __name__ == "__main__":
    main()
