"""CLI entry point for boardstore."""

import argparse
import asyncio
from pathlib import Path

from . import __version__
from .config import Settings
from .logging import setup_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="boardstore",
        description="Inspect and maintain a local board/column/card store",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding the stored data (default: .boardstore)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (-v for INFO, -vv for DEBUG)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Path to write logs to file",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    action = parser.add_mutually_exclusive_group()
    action.add_argument(
        "--list",
        action="store_true",
        help="Print all boards with their columns and cards (default)",
    )
    action.add_argument(
        "--migrate",
        action="store_true",
        help="Migrate stored data to the current schema version and exit",
    )
    action.add_argument(
        "--reset",
        action="store_true",
        help="Delete all boards, columns and cards",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)

    # Build settings from CLI args
    settings_kwargs: dict = {}
    if args.data_dir:
        settings_kwargs["data_dir"] = args.data_dir
    if args.verbose:
        settings_kwargs["verbose"] = args.verbose
    if args.log_file:
        settings_kwargs["log_file"] = args.log_file

    settings = Settings(**settings_kwargs)
    setup_logging(settings.verbose, settings.log_file)

    # Import here so --help and --version stay fast
    from .cli import run_list, run_migrate, run_reset
    from .services import BoardStore

    store = BoardStore.from_settings(settings)
    if args.migrate:
        command = run_migrate
    elif args.reset:
        command = run_reset
    else:
        command = run_list

    raise SystemExit(asyncio.run(command(store)))


if __name__ == "__main__":
    main()
