"""Command-line interface argument parsing for the run sync service.

This module provides the CLI argument parser that handles:
- Runs file location
- Single-cycle mode (--once)
- Poll interval override
- Debug mode override
- Log level override
- Environment file specification
"""

from __future__ import annotations

import argparse
from pathlib import Path


def positive_int(value: str) -> int:
    """Argparse type for millisecond values that must be greater than zero."""
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not a valid integer") from None
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"{parsed} is not positive")
    return parsed


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        args: Optional list of arguments to parse. If None, uses sys.argv.

    Returns:
        Parsed arguments namespace with the following attributes:
        - runs_file: Path to the JSON runs file
        - once: Whether to run a single cycle and exit
        - interval_ms: Poll interval in milliseconds
        - debug: True/False to force debug mode, None to detect it
        - log_level: Logging level
        - env_file: Path to .env file
    """
    parser = argparse.ArgumentParser(
        prog="runsync",
        description="Airport run sync - background flight and traffic refresh for active runs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--runs-file",
        type=Path,
        default=None,
        help="Path to the JSON runs file (overrides RUNSYNC_RUNS_FILE)",
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single poll cycle and exit",
    )

    parser.add_argument(
        "--interval-ms",
        type=positive_int,
        default=None,
        help="Poll interval in milliseconds (overrides RUNSYNC_POLL_INTERVAL_MS)",
    )

    debug_group = parser.add_mutually_exclusive_group()
    debug_group.add_argument(
        "--debug",
        dest="debug",
        action="store_true",
        default=None,
        help="Force debug mode: count API calls instead of making them",
    )
    debug_group.add_argument(
        "--no-debug",
        dest="debug",
        action="store_false",
        help="Force live API calls even in a development environment",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level (overrides RUNSYNC_LOG_LEVEL)",
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to .env file (default: ./.env)",
    )

    return parser.parse_args(args)


__all__ = ["parse_args", "positive_int"]
