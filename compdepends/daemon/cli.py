"""Command-line entry point for the computation dependency updater.

Usage::

    compdepends                                  # app "compdepends", settings from .env
    compdepends -a depupdater -F                 # full evaluation on startup
    compdepends -T --database-url sqlite:///t.db # regression-test mode
    compdepends -G /tmp/groupdump --log-level DEBUG
"""

from __future__ import annotations

import argparse

from compdepends.core.config import settings
from compdepends.core.utils.logging_config import configure_logging
from compdepends.daemon.updater import CompDependsUpdater
from compdepends.store.base import TsdbStore


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments.

    Args:
        argv: Argument list (defaults to sys.argv[1:]).

    Returns:
        Parsed namespace.
    """
    parser = argparse.ArgumentParser(
        description="Maintain the computation dependency table from change notifications.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  compdepends\n"
            "  compdepends -a depupdater -F\n"
            "  compdepends -T --database-url sqlite:///test.db\n"
        ),
    )
    parser.add_argument(
        "-a",
        "--app-name",
        default=settings.app_name,
        help=f"Loading application name (default: {settings.app_name})",
    )
    parser.add_argument(
        "-O",
        "--office-id",
        default=settings.office_id,
        help="Office identifier added to log context",
    )
    parser.add_argument(
        "-F",
        "--full-eval",
        action="store_true",
        default=False,
        help="Do a full evaluation of all dependencies on startup",
    )
    parser.add_argument(
        "-T",
        "--regression-test",
        action="store_true",
        default=False,
        help="Exit after the notification queue has been idle for a while",
    )
    parser.add_argument(
        "-G",
        "--group-dump-dir",
        default=settings.group_dump_dir,
        help="Directory to dump TSID and group expansions into",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL of the time-series store (default: from settings)",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help=f"Minimum log level (default: {settings.log_level})",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        default=settings.log_json,
        help="Write one JSON object per log line",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entry point for the updater daemon.

    Args:
        argv: Argument list (defaults to sys.argv[1:]).

    Returns:
        Exit code: 0 on clean shutdown, 1 on a fatal error.
    """
    args = parse_args(argv)
    configure_logging(args.log_level, json_output=args.log_json)

    updater = CompDependsUpdater(
        store=TsdbStore(args.database_url),
        app_name=args.app_name,
        office_id=args.office_id,
        full_eval_on_startup=args.full_eval,
        regression_test=args.regression_test,
        group_dump_dir=args.group_dump_dir,
    )
    return updater.run()
