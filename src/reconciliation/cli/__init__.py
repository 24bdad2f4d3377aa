"""
Command-line interface for missing-parent reconciliation.

Available commands:
- run: scan once and report parents that do not exist
- report: print a report saved by a previous run
"""

import sys

from utils.logging import setup_logging, shutdown_logging

from .commands import cmd_report, cmd_run, write_report
from .parser import create_parser
from .settings import build_scan_settings, build_search_settings


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the reconcile-parents CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(
        level=args.log_level,
        log_file=args.log_file,
        json_format=args.json_logs,
    )

    try:
        if args.command == 'run':
            exit_code = cmd_run(args)
        elif args.command == 'report':
            exit_code = cmd_report(args)
        else:
            parser.print_help()
            exit_code = 1
    finally:
        shutdown_logging()

    sys.exit(exit_code)


__all__ = [
    'main',
    'cmd_run',
    'cmd_report',
    'write_report',
    'create_parser',
    'build_scan_settings',
    'build_search_settings',
]


if __name__ == '__main__':
    main()
