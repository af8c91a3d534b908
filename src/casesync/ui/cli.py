from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from casesync.app import initialise_database, sync_code_enforcement_csv
from casesync.config import configure_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile code-enforcement cases with tickets")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync = subparsers.add_parser("sync", help="Sync a TrakIT case extract")
    sync.add_argument("path", type=Path, help="CSV file exported from TrakIT")
    mode = sync.add_mutually_exclusive_group()
    mode.add_argument(
        "--dry-run",
        dest="updates_enabled",
        action="store_false",
        default=None,
        help="Detect and store changes without touching tickets",
    )
    mode.add_argument(
        "--apply",
        dest="updates_enabled",
        action="store_true",
        default=None,
        help="Write field updates to tickets (overrides CASE_UPDATES_ENABLED)",
    )
    sync.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Case state rows per transaction (defaults to config)",
    )

    subparsers.add_parser("init-db", help="Create or migrate the state database")

    return parser.parse_args(list(argv))


def _validate(args: argparse.Namespace) -> None:
    if args.command == "sync":
        if args.chunk_size is not None and args.chunk_size < 1:
            raise ValueError("Chunk size must be positive")
        if not args.path.is_file():
            raise ValueError(f"Case extract not found: {args.path}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
    try:
        _validate(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "sync":
            summary = sync_code_enforcement_csv(
                parsed_args.path,
                updates_enabled=parsed_args.updates_enabled,
                chunk_size=parsed_args.chunk_size,
            )
            log.info(
                "Case sync finished: processed=%s, updated=%s, errors=%s",
                summary.processed,
                summary.updated,
                summary.errors,
            )
        elif parsed_args.command == "init-db":
            initialise_database()
            log.info("Database is up to date")
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during sync")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
