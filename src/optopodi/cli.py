"""Command-line argument parsing for optopodi."""

from __future__ import annotations

import argparse
from datetime import date
from pathlib import Path
from typing import Optional, Sequence


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def _iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` CLI value."""
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be a date formatted YYYY-MM-DD") from exc


def _add_window_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--days",
        type=_positive_int,
        default=30,
        help="Number of days of history to analyze (default: 30).",
    )
    parser.add_argument(
        "--sheet-id",
        default=None,
        help="Export to this Google Sheet instead of printing CSV to stdout.",
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed CLI arguments; ``command`` names the selected sub-command.
    """
    parser = argparse.ArgumentParser(
        prog="optopodi",
        description="Gather pull request and issue metrics for a GitHub organization.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v for info, -vv for debug).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser(
        "list",
        help="List repositories with their pull request and issue counts.",
    )
    list_parser.add_argument("--org", required=True, help="GitHub organization name.")
    _add_window_args(list_parser)

    participants_parser = subparsers.add_parser(
        "participants",
        help="List pull request participants of a repository.",
    )
    participants_parser.add_argument("--org", required=True, help="GitHub organization name.")
    participants_parser.add_argument("--repo", required=True, help="Repository name.")
    _add_window_args(participants_parser)

    closures_parser = subparsers.add_parser(
        "issue-closures",
        help="Count issues opened and closed per repository.",
    )
    closures_parser.add_argument("--org", required=True, help="GitHub organization name.")
    closures_parser.add_argument(
        "--repo",
        action="append",
        default=[],
        help="Repository name (repeatable); omit to process all repositories.",
    )
    closures_parser.add_argument("--start-date", type=_iso_date, required=True)
    closures_parser.add_argument("--end-date", type=_iso_date, required=True)

    report_parser = subparsers.add_parser(
        "report",
        help="Generate the full report for a data directory containing report.toml.",
    )
    report_parser.add_argument("data_dir", type=Path, help="Report data directory.")
    report_parser.add_argument(
        "--replay-graphql",
        action="store_true",
        help="Load previously recorded GraphQL responses instead of querying GitHub.",
    )

    return parser.parse_args(argv)
