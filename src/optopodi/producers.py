"""Producers that turn GitHub queries into rows for the pipeline."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Sequence

from .aggregate import aggregate_participants, sorted_participants
from .github_client import GithubClient
from .pipeline import Producer, Sender
from .queries import format_date, search_string

logger = logging.getLogger(__name__)


class _OrgProducer(Producer):
    """Shared state for producers that walk a set of repositories in one window."""

    def __init__(
        self,
        client: GithubClient,
        org: str,
        repos: Sequence[str],
        start: date,
        end: Optional[date] = None,
    ) -> None:
        self._client = client
        self._org = org
        self._repos = list(repos)
        self._start = start
        self._end = end

    def repositories(self) -> List[str]:
        """Return the configured repositories, or every repository in the org."""
        if self._repos:
            return self._repos
        return self._client.list_org_repos(self._org)

    def _search(self, kind: str, qualifier: str, repo: str) -> str:
        return search_string(self._org, repo, kind, qualifier, self._start, self._end)

    def _window(self) -> List[str]:
        end = self._end if self._end is not None else date.today()
        return [format_date(self._start), format_date(end)]


class ListRepos(_OrgProducer):
    """One row per repository with its pull request and issue counts."""

    def column_names(self) -> List[str]:
        return [
            "Organization",
            "Repository Name",
            "# of PRs",
            "Issues Opened",
            "Issues Closed",
            "Start Date",
            "End Date",
        ]

    def run(self, sender: Sender) -> None:
        for repo in self.repositories():
            num_prs = self._client.count_issues(self._search("pr", "created", repo))
            opened = self._client.count_issues(self._search("issue", "created", repo))
            closed = self._client.count_issues(self._search("issue", "closed", repo))
            logger.debug(
                "Counted repository activity",
                extra={"repository": repo, "prs": num_prs, "opened": opened, "closed": closed},
            )
            sender.send([self._org, repo, str(num_prs), str(opened), str(closed), *self._window()])


class RepoParticipants(_OrgProducer):
    """One row per (participant, repository) with pull request activity counts.

    Rows for a repository are ordered by descending participation, then login.
    """

    def column_names(self) -> List[str]:
        return [
            "Participant",
            "Repository",
            "PRs participated in",
            "PRs authored",
            "PRs reviewed",
            "PRs resolved",
        ]

    def run(self, sender: Sender) -> None:
        for repo in self.repositories():
            pull_requests = self._client.list_pull_requests(self._search("pr", "created", repo))
            counts = aggregate_participants(repo, pull_requests)
            for participant in sorted_participants(counts):
                sender.send(
                    [
                        participant.login,
                        repo,
                        str(participant.participated_in),
                        str(participant.authored),
                        str(participant.reviewed),
                        str(participant.resolved),
                    ]
                )


class IssueClosures(_OrgProducer):
    """One row per repository with issues opened and closed in the window."""

    def column_names(self) -> List[str]:
        return [
            "Organization",
            "Repository",
            "Issues Opened",
            "Issues Closed",
            "Start Date",
            "End Date",
        ]

    def run(self, sender: Sender) -> None:
        for repo in self.repositories():
            logger.debug("Fetching issue closure info", extra={"org": self._org, "repository": repo})
            opened = len(self._client.list_issue_numbers(self._search("issue", "created", repo)))
            closed = len(self._client.list_issue_numbers(self._search("issue", "closed", repo)))
            sender.send([self._org, repo, str(opened), str(closed), *self._window()])
