"""Report generation over a data directory.

Layout of ``$DATA_DIR``::

    report.toml     report configuration
    graphql/        recorded GraphQL responses, one sub-directory per pipeline
    inputs/         CSV files produced by the pipelines
    output/         derived metrics

Input CSVs are written first and then parsed back, so they can be inspected or
edited by hand and the outputs regenerated with ``--replay-graphql``.
"""

from __future__ import annotations

import csv
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .aggregate import is_robot
from .classify import classify_repository
from .config import ReportConfig, load_report_config
from .consumers import Print
from .errors import MetricsError, MissingDataError
from .github_client import GithubClient
from .models import IssueClosure, ParticipantCount, RepoInfo
from .pipeline import Producer, run_producer
from .producers import IssueClosures, ListRepos, RepoParticipants

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., GithubClient]

HIGH_CONTRIBUTOR_COLUMNS = [
    "repo",
    "number_of_prs",
    "total_participants",
    "total_authors",
    "total_reviewers",
    "top_author",
    "top_author_percentage",
    "top_reviewer",
    "top_reviewer_percentage",
    "top_participant",
    "top_participant_percentage",
    "saturation_authors",
    "saturation_author_names",
    "saturation_reviewers",
    "saturation_reviewer_names",
    "high_contributors",
    "high_contributor_names",
]

ISSUE_CLOSURE_COLUMNS = ["Organization", "Repo", "Opened", "Closed", "Delta", "Time Period"]


class Report:
    """Generate input and output CSV files for one report data directory."""

    def __init__(
        self,
        data_dir: Path,
        token: Optional[str],
        replay_graphql: bool = False,
        client_factory: ClientFactory = GithubClient,
    ) -> None:
        self._data_dir = Path(data_dir)
        self._token = token
        self._replay_graphql = replay_graphql
        self._client_factory = client_factory

    @property
    def graphql_dir(self) -> Path:
        return self._data_dir / "graphql"

    @property
    def input_dir(self) -> Path:
        return self._data_dir / "inputs"

    @property
    def output_dir(self) -> Path:
        return self._data_dir / "output"

    def graphql(self, name: str) -> GithubClient:
        """Return a client recording to (or replaying from) ``graphql/<name>``."""
        return self._client_factory(
            token=self._token,
            record_dir=self.graphql_dir / name,
            replay=self._replay_graphql,
        )

    def run(self) -> Path:
        """Run every pipeline, then write the derived metrics.

        Returns:
            The output directory.

        Raises:
            MetricsError: Naming the stage that failed, chained to the cause.
        """
        config = load_report_config(self._data_dir)

        for directory in (self.graphql_dir, self.input_dir, self.output_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise MetricsError(f"Failed to create directory {directory}") from exc

        repos: Sequence[str] = config.github.repos
        if not repos:
            try:
                repos = self.graphql("all-repos").list_org_repos(config.github.org)
            except MetricsError as exc:
                raise MetricsError("Failed to gather all repos") from exc

        repo_infos, participants, issue_closures = self.gather_inputs(config, repos)

        self._stage(
            "Failed to write High Contributors",
            self.write_high_contributors,
            config,
            repos,
            repo_infos,
            participants,
        )
        self._stage("Failed to write issue closures", self.write_issue_closures, issue_closures)

        logger.info("Report complete", extra={"output_dir": str(self.output_dir), "repos": len(repos)})
        return self.output_dir

    @staticmethod
    def _stage(message: str, fn: Callable[..., object], *args: object) -> object:
        try:
            return fn(*args)
        except (MetricsError, OSError, csv.Error) as exc:
            raise MetricsError(f"{message}: {exc}") from exc

    def gather_inputs(
        self,
        config: ReportConfig,
        repos: Sequence[str],
    ) -> Tuple[Dict[str, RepoInfo], List[ParticipantCount], List[IssueClosure]]:
        """Run the input pipelines concurrently and parse their CSV files."""
        org = config.github.org
        start = config.data_source.start_date
        end = config.data_source.end_date

        repo_infos_path = self.input_dir / "repo-infos.csv"
        participants_path = self.input_dir / "repo-participants.csv"
        issue_closures_path = self.input_dir / "issue-closures.csv"

        stages: List[Tuple[str, Path, Producer]] = [
            (
                "Failed to gather Repo Infos",
                repo_infos_path,
                ListRepos(self.graphql("repo-infos"), org, repos, start, end),
            ),
            (
                "Failed to gather Repo Participants",
                participants_path,
                RepoParticipants(self.graphql("repo-participants"), org, repos, start, end),
            ),
            (
                "Failed to gather issue closure info",
                issue_closures_path,
                IssueClosures(self.graphql("issue-closures"), org, repos, start, end),
            ),
        ]

        with ThreadPoolExecutor(max_workers=len(stages), thread_name_prefix="report") as executor:
            futures = [
                (message, executor.submit(self.produce_input, path, producer))
                for message, path, producer in stages
            ]
            # Wait for every pipeline so sibling failures do not cut others short.
            errors = []
            for message, future in futures:
                exc = future.exception()
                if exc is not None:
                    logger.error("%s: %s", message, exc)
                    errors.append((message, exc))

        if errors:
            message, exc = errors[0]
            raise MetricsError(f"{message}: {exc}") from exc

        repo_infos = self._stage("Failed to parse Repo Infos", parse_repo_infos, repo_infos_path)
        participants = self._stage(
            "Failed to parse Repo Participants", parse_participants, participants_path
        )
        issue_closures = self._stage(
            "Failed to parse issue closures", parse_issue_closures, issue_closures_path
        )
        return repo_infos, participants, issue_closures  # type: ignore[return-value]

    def produce_input(self, path: Path, producer: Producer) -> None:
        """Stream ``producer`` into a CSV file at ``path``."""
        column_names, receiver = run_producer(producer)
        with path.open("w", newline="", encoding="utf-8") as handle:
            Print(handle).consume(receiver, column_names)
        receiver.wait()
        logger.info("Wrote input file", extra={"path": str(path)})

    def write_high_contributors(
        self,
        config: ReportConfig,
        repos: Sequence[str],
        repo_infos: Dict[str, RepoInfo],
        participants: List[ParticipantCount],
    ) -> Path:
        path = self.output_dir / "high-contributors.csv"
        with path.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.DictWriter(handle, fieldnames=HIGH_CONTRIBUTOR_COLUMNS, lineterminator="\n")
            writer.writeheader()
            for repo in repos:
                repo_info = repo_infos.get(repo)
                if repo_info is None:
                    raise MissingDataError(f"No repository info for '{repo}'")
                result = classify_repository(config.thresholds, repo_info, participants)
                writer.writerow(
                    {
                        "repo": result.repository,
                        "number_of_prs": result.num_prs,
                        "total_participants": result.total_participants,
                        "total_authors": result.total_authors,
                        "total_reviewers": result.total_reviewers,
                        "top_author": result.top_author,
                        "top_author_percentage": result.top_author_pct,
                        "top_reviewer": result.top_reviewer,
                        "top_reviewer_percentage": result.top_reviewer_pct,
                        "top_participant": result.top_participant,
                        "top_participant_percentage": result.top_participant_pct,
                        "saturation_authors": result.author_saturation[1],
                        "saturation_author_names": result.author_saturation[0],
                        "saturation_reviewers": result.reviewer_saturation[1],
                        "saturation_reviewer_names": result.reviewer_saturation[0],
                        "high_contributors": len(result.high_contributors),
                        "high_contributor_names": ",".join(result.high_contributors),
                    }
                )
        return path

    def write_issue_closures(self, issue_closures: List[IssueClosure]) -> Path:
        path = self.output_dir / "issue-closures.csv"
        with path.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.writer(handle, lineterminator="\n")
            writer.writerow(ISSUE_CLOSURE_COLUMNS)
            for closure in issue_closures:
                writer.writerow(
                    [
                        closure.organization,
                        closure.repository,
                        closure.opened,
                        closure.closed,
                        closure.delta,
                        f"{closure.window_start}<>{closure.window_end}",
                    ]
                )
        return path


def _read_rows(path: Path) -> List[Dict[str, str]]:
    with path.open(newline="", encoding="utf-8") as handle:
        return list(csv.DictReader(handle))


def _parse(path: Path, row: Dict[str, str], build: Callable[[Dict[str, str]], object]) -> object:
    try:
        return build(row)
    except (KeyError, TypeError, ValueError) as exc:
        raise MissingDataError(f"Malformed row {row.get('#', '?')} in {path}: {exc}") from exc


def parse_repo_infos(path: Path) -> Dict[str, RepoInfo]:
    """Parse ``repo-infos.csv`` into ``RepoInfo`` keyed by repository name."""

    def build(row: Dict[str, str]) -> RepoInfo:
        return RepoInfo(
            organization=row["Organization"],
            repository=row["Repository Name"],
            num_prs=int(row["# of PRs"]),
            num_issues_opened=int(row["Issues Opened"]),
            num_issues_closed=int(row["Issues Closed"]),
            window_start=date.fromisoformat(row["Start Date"]),
            window_end=date.fromisoformat(row["End Date"]),
        )

    infos = [_parse(path, row, build) for row in _read_rows(path)]
    return {info.repository: info for info in infos}  # type: ignore[attr-defined]


def parse_participants(path: Path) -> List[ParticipantCount]:
    """Parse ``repo-participants.csv``, dropping robot accounts."""

    def build(row: Dict[str, str]) -> ParticipantCount:
        return ParticipantCount(
            login=row["Participant"],
            repository=row["Repository"],
            participated_in=int(row["PRs participated in"]),
            authored=int(row["PRs authored"]),
            reviewed=int(row["PRs reviewed"]),
            resolved=int(row["PRs resolved"]),
        )

    participants = [_parse(path, row, build) for row in _read_rows(path)]
    return [p for p in participants if not is_robot(p.login)]  # type: ignore[attr-defined]


def parse_issue_closures(path: Path) -> List[IssueClosure]:
    """Parse ``issue-closures.csv``."""

    def build(row: Dict[str, str]) -> IssueClosure:
        return IssueClosure(
            organization=row["Organization"],
            repository=row["Repository"],
            opened=int(row["Issues Opened"]),
            closed=int(row["Issues Closed"]),
            window_start=date.fromisoformat(row["Start Date"]),
            window_end=date.fromisoformat(row["End Date"]),
        )

    return [_parse(path, row, build) for row in _read_rows(path)]  # type: ignore[misc]
