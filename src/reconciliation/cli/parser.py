"""
Command-line argument parser configuration.

Defines the ``run`` and ``report`` commands of the reconcile-parents tool.
"""

import argparse

from reconciliation.engine import (
    DEFAULT_CHECK_PAGE_SIZE,
    DEFAULT_PAGE_SIZE,
    DEFAULT_PARENT_INDICES,
    DEFAULT_RECORD_INDICES,
)
from utils.search import SCROLL_KEEP_ALIVE_MS


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="reconcile-parents",
        description="Find process instance records whose parent element instance is missing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scan partition 1 above position 123456 and print the report
  reconcile-parents run --partition-id 1 --import-position 123456

  # Secured cluster with a custom server certificate, JSON report
  reconcile-parents run --partition-id 2 --import-position 0 \\
      --es-url https://es:9200 --es-username elastic --es-certificate ca.pem \\
      --format json --output report.json

  # Credentials from Vault, metrics pushed to a Pushgateway
  reconcile-parents run --partition-id 1 --import-position 0 --use-vault \\
      --pushgateway localhost:9091

  # Print a saved report
  reconcile-parents report --input report.json
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )
    parser.add_argument('--log-file', help='Also log to this file (rotated)')
    parser.add_argument('--json-logs', action='store_true', help='Use JSON format for logs')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Run command ==========
    run_parser = subparsers.add_parser('run', help='Run one reconciliation')
    run_parser.add_argument(
        '--partition-id',
        type=int,
        help='Partition to scan (default: $OPERATE_PARTITION_ID)'
    )
    run_parser.add_argument(
        '--import-position',
        type=int,
        help='Only records above this position are scanned (default: $OPERATE_IMPORT_POSITION)'
    )
    run_parser.add_argument(
        '--record-indices',
        default=DEFAULT_RECORD_INDICES,
        help=f'Index pattern of the records (default: {DEFAULT_RECORD_INDICES})'
    )
    run_parser.add_argument(
        '--parent-indices',
        default=DEFAULT_PARENT_INDICES,
        help=f'Index pattern searched for parents (default: {DEFAULT_PARENT_INDICES})'
    )
    run_parser.add_argument(
        '--page-size',
        type=_positive_int,
        default=DEFAULT_PAGE_SIZE,
        help=f'Records per page (default: {DEFAULT_PAGE_SIZE})'
    )
    run_parser.add_argument(
        '--check-page-size',
        type=_positive_int,
        default=DEFAULT_CHECK_PAGE_SIZE,
        help=f'Page size of parent existence checks (default: {DEFAULT_CHECK_PAGE_SIZE})'
    )
    run_parser.add_argument(
        '--keep-alive-ms',
        type=_positive_int,
        default=SCROLL_KEEP_ALIVE_MS,
        help=f'Scroll keep-alive in milliseconds (default: {SCROLL_KEEP_ALIVE_MS})'
    )
    run_parser.add_argument(
        '--no-count',
        action='store_true',
        help='Skip counting the candidate records before scanning'
    )

    # Connection options
    run_parser.add_argument('--es-url', help='Cluster URL (default: $ELASTICSEARCH_URL)')
    run_parser.add_argument('--es-username', help='Basic auth username')
    run_parser.add_argument('--es-password', help='Basic auth password')
    run_parser.add_argument('--es-certificate', help='PEM file of the server certificate')
    run_parser.add_argument(
        '--es-self-signed',
        action='store_true',
        help='Server uses a self-signed certificate (pass it with --es-certificate to trust it)'
    )
    run_parser.add_argument(
        '--es-no-verify-hostname',
        action='store_true',
        help='Do not verify the server hostname'
    )
    run_parser.add_argument(
        '--use-vault',
        action='store_true',
        help='Fetch cluster credentials from HashiCorp Vault'
    )
    run_parser.add_argument(
        '--vault-path',
        default='secret/elasticsearch',
        help='Vault KV v2 path of the credentials (default: secret/elasticsearch)'
    )

    # Output options
    run_parser.add_argument('--output', help='Output file path for the report')
    run_parser.add_argument(
        '--format',
        choices=['console', 'json', 'csv'],
        default='console',
        help='Output format (default: console)'
    )

    # Observability
    run_parser.add_argument(
        '--enable-metrics',
        action='store_true',
        help='Expose Prometheus metrics while the run is in progress'
    )
    run_parser.add_argument(
        '--metrics-port',
        type=int,
        default=9091,
        help='Prometheus metrics port (default: 9091)'
    )
    run_parser.add_argument('--pushgateway', help='Push metrics to this Pushgateway when done')
    run_parser.add_argument('--otlp-endpoint', help='Export traces to this OTLP collector')

    # ========== Report command ==========
    report_parser = subparsers.add_parser('report', help='Print a report from a previous run')
    report_parser.add_argument(
        '--input',
        required=True,
        help='Input JSON report file'
    )
    report_parser.add_argument(
        '--format',
        choices=['console', 'json', 'csv'],
        default='console',
        help='Output format (default: console)'
    )
    report_parser.add_argument(
        '--output',
        help='Output file path (required for json and csv formats)'
    )

    return parser
