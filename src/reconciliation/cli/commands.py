"""
CLI command implementations.

- run: one reconciliation against the cluster, then exit
- report: re-render a report saved by a previous run
"""

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from prometheus_client import CollectorRegistry

from reconciliation.engine import MissingParentReconciler
from reconciliation.report import (
    export_report_csv,
    export_report_json,
    format_report_console,
    generate_report,
    validate_report,
)
from utils.metrics import MetricsPublisher, ReconciliationMetrics
from utils.search import ElasticsearchConnector, SearchError
from utils.tracing import initialize_tracing, instrument_requests, shutdown_tracing

from .settings import build_scan_settings, build_search_settings

logger = logging.getLogger(__name__)


def write_report(report: dict[str, Any], output_format: str, output: str | None) -> None:
    """
    Print or save a report

    Console output goes to stdout unless an output file is given; JSON and
    CSV need an output file.

    Raises:
        ValueError: If json/csv is requested without an output file
    """
    if output_format == "console":
        text = format_report_console(report)
        if output:
            Path(output).parent.mkdir(parents=True, exist_ok=True)
            Path(output).write_text(text + "\n")
            logger.info(f"Report saved to {output}")
        else:
            print(text)
        return

    if not output:
        raise ValueError(f"Output file required for {output_format.upper()} format")

    Path(output).parent.mkdir(parents=True, exist_ok=True)
    if output_format == "json":
        export_report_json(report, output)
    else:
        export_report_csv(report, output)
    logger.info(f"Report saved to {output}")


def cmd_run(args: argparse.Namespace) -> int:
    """
    Run one reconciliation

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code: 0 when the run completed (orphans are informational),
        1 on configuration or search failures
    """
    try:
        scan_settings = build_scan_settings(args)
        search_settings = build_search_settings(args)
    except Exception as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    if args.otlp_endpoint:
        initialize_tracing(otlp_endpoint=args.otlp_endpoint)
        instrument_requests()

    registry = CollectorRegistry()
    metrics = ReconciliationMetrics(registry=registry)
    publisher = MetricsPublisher(
        port=args.metrics_port,
        registry=registry,
        pushgateway=args.pushgateway,
    )
    if args.enable_metrics:
        try:
            publisher.start()
        except RuntimeError as e:
            logger.error(str(e))
            return 1

    connector = ElasticsearchConnector(search_settings)
    exit_code = 0
    try:
        client = connector.create_client()
        reconciler = MissingParentReconciler(client, scan_settings, metrics=metrics)
        result = reconciler.run()

        report = generate_report(result, scan_settings)
        write_report(report, args.format, args.output)

        if result.has_orphans:
            logger.warning(f"Found {len(result.orphans)} non existing parent(s)")
        else:
            logger.info("Reconciliation completed, all parents exist")
    except SearchError as e:
        logger.error(f"Reconciliation failed: {e}")
        exit_code = 1
    except (ValueError, OSError) as e:
        logger.error(f"Reconciliation failed: {e}")
        exit_code = 1
    finally:
        connector.shutdown()
        publisher.push()
        shutdown_tracing()

    return exit_code


def cmd_report(args: argparse.Namespace) -> int:
    """
    Render a report from a previous run's JSON file

    Returns:
        Exit code
    """
    logger.info(f"Loading reconciliation report from {args.input}")

    try:
        with open(args.input) as f:
            report = json.load(f)
        validate_report(report)
        write_report(report, args.format, args.output)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to process report: {e}")
        return 1

    return 0
