"""Entry point for the optopodi command-line tool."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, timedelta
from typing import Optional, Sequence

from .cli import parse_args
from .config import github_token, list_repos_arg, sheets_token
from .consumers import ExportToSheets, Print
from .errors import (
    ApiError,
    AuthenticationError,
    ConfigurationError,
    MetricsError,
    MissingDataError,
    PaginationUnsupportedError,
    SinkError,
)
from .github_client import GithubClient
from .pipeline import Consumer, Producer, run_producer
from .producers import IssueClosures, ListRepos, RepoParticipants
from .report import Report
from .sheets import SheetsClient

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIGURATION = 2
EXIT_AUTHENTICATION = 3
EXIT_API = 4
EXIT_SINK = 5

_EXIT_CODES = (
    (AuthenticationError, EXIT_AUTHENTICATION),
    (ConfigurationError, EXIT_CONFIGURATION),
    ((ApiError, MissingDataError, PaginationUnsupportedError), EXIT_API),
    (SinkError, EXIT_SINK),
)


def exit_code_for(error: BaseException) -> int:
    """Map an error, or the first classified error in its cause chain, to an exit code."""
    current: Optional[BaseException] = error
    while current is not None:
        for error_types, code in _EXIT_CODES:
            if isinstance(current, error_types):
                return code
        current = current.__cause__
    return EXIT_UNEXPECTED


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_pipeline(producer: Producer, consumer: Consumer) -> None:
    """Drive ``consumer`` against ``producer`` and surface the producer's error."""
    column_names, receiver = run_producer(producer)
    consumer.consume(receiver, column_names)
    receiver.wait()


def _consumer(args: argparse.Namespace) -> Consumer:
    if getattr(args, "sheet_id", None):
        return ExportToSheets(SheetsClient(args.sheet_id, sheets_token()))
    return Print(sys.stdout)


def _window(days: int) -> date:
    return date.today() - timedelta(days=days)


def orchestrate(argv: Optional[Sequence[str]] = None) -> int:
    """Run the selected command and return a process exit code.

    Exit codes:
    - 0 success
    - 1 unexpected error
    - 2 configuration error
    - 3 authentication error
    - 4 GitHub API or response data error
    - 5 output sink error
    """
    try:
        args = parse_args(argv)
        configure_logging(args.verbose)

        if args.command == "report":
            token = None if args.replay_graphql else github_token()
            output_dir = Report(args.data_dir, token, replay_graphql=args.replay_graphql).run()
            print(f"Report written to {output_dir}")
            return EXIT_OK

        client = GithubClient(token=github_token())

        if args.command == "list":
            producer: Producer = ListRepos(client, args.org, [], _window(args.days), date.today())
        elif args.command == "participants":
            producer = RepoParticipants(client, args.org, [args.repo], _window(args.days))
        else:
            if args.start_date > args.end_date:
                raise ConfigurationError("--start-date must not be after --end-date.")
            producer = IssueClosures(
                client, args.org, list_repos_arg(args.repo), args.start_date, args.end_date
            )

        run_pipeline(producer, _consumer(args))
        return EXIT_OK
    except MetricsError as exc:
        code = exit_code_for(exc)
        logger.debug("Command failed", exc_info=True)
        print(f"ERROR: {exc}", file=sys.stderr)
        return code
    except Exception as exc:
        print(f"ERROR: Unexpected failure: {exc}", file=sys.stderr)
        return EXIT_UNEXPECTED


def main() -> None:
    raise SystemExit(orchestrate())


if __name__ == "__main__":
    main()
