"""GitHub GraphQL API client for contribution metrics retrieval."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from . import queries
from .errors import ApiError, ConfigurationError, MissingDataError
from .models import Page, PullRequestRecord
from .pagination import connection_page, fetch_all, require

logger = logging.getLogger(__name__)


class GithubClient:
    """Small, typed client for the GitHub GraphQL API.

    When ``record_dir`` is set every response payload is saved there as
    ``0000.json``, ``0001.json``, ... With ``replay=True`` those files are read
    back in the same order instead of contacting GitHub, so a report can be
    regenerated offline from an earlier run.
    """

    _GRAPHQL_URL = "https://api.github.com/graphql"

    def __init__(
        self,
        token: Optional[str],
        timeout_seconds: int = 30,
        record_dir: Optional[Path] = None,
        replay: bool = False,
    ) -> None:
        """Initialize an authenticated GitHub API client.

        Args:
            token: GitHub token; may be ``None`` only in replay mode.
            timeout_seconds: Per-request timeout in seconds.
            record_dir: Directory for recorded responses.
            replay: Read responses from ``record_dir`` instead of the network.
        """
        if replay and record_dir is None:
            raise ConfigurationError("Replaying GraphQL responses requires a record directory.")
        if not replay and not token:
            raise ConfigurationError("A GitHub token is required unless replaying recorded responses.")

        self._timeout_seconds = timeout_seconds
        self._record_dir = Path(record_dir) if record_dir is not None else None
        self._replay = replay
        self._sequence = 0
        self._lock = threading.Lock()

        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/json",
                "Authorization": f"bearer {token}",
            }
        )

    def _next_record_path(self) -> Optional[Path]:
        if self._record_dir is None:
            return None
        with self._lock:
            path = self._record_dir / f"{self._sequence:04d}.json"
            self._sequence += 1
        return path

    def _post_json(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a GraphQL POST and return the decoded payload.

        Raises:
            ApiError: If the request fails, returns HTTP >= 400, or does not
                return a JSON object.
        """
        try:
            response = self._session.post(
                self._GRAPHQL_URL, json=body, timeout=self._timeout_seconds
            )
        except requests.RequestException as exc:
            raise ApiError(f"GitHub GraphQL request failed: POST {self._GRAPHQL_URL}") from exc

        if response.status_code >= 400:
            raise ApiError(
                "GitHub GraphQL request failed: "
                f"POST {self._GRAPHQL_URL} returned {response.status_code} - {response.text}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ApiError(f"GitHub GraphQL API returned invalid JSON: POST {self._GRAPHQL_URL}") from exc

        if not isinstance(payload, dict):
            raise ApiError(f"GitHub GraphQL API returned unexpected payload shape: {payload!r}")

        return payload

    def _load_recorded(self, path: Path) -> Dict[str, Any]:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise ApiError(f"No recorded GraphQL response at {path}") from exc
        except (OSError, ValueError) as exc:
            raise ApiError(f"Recorded GraphQL response {path} is unreadable") from exc

    def execute(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Run a GraphQL query and return its ``data`` object.

        Raises:
            ApiError: On transport failures or when GitHub reports ``errors``.
            MissingDataError: If the payload has no ``data``.
        """
        record_path = self._next_record_path()

        if self._replay and record_path is not None:
            logger.debug("Replaying GraphQL response", extra={"path": str(record_path)})
            payload = self._load_recorded(record_path)
        else:
            payload = self._post_json({"query": query, "variables": variables})
            if record_path is not None:
                record_path.parent.mkdir(parents=True, exist_ok=True)
                record_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

        errors = payload.get("errors")
        if errors:
            messages = "; ".join(str(error.get("message", error)) for error in errors)
            raise ApiError(f"GitHub GraphQL query returned errors: {messages}")

        return require(payload, "data", "GraphQL response")

    def org_repos_page(self, org: str, cursor: Optional[str]) -> Optional[Page[str]]:
        """Fetch one page of repository names for an organization."""
        data = self.execute(queries.ORG_REPOS, {"orgName": org, "afterCursor": cursor})
        organization = data.get("organization")
        if organization is None:
            return None
        repositories = require(organization, "repositories", "organization")
        return connection_page(repositories, lambda node: require(node, "name", "repository"))

    def list_org_repos(self, org: str) -> List[str]:
        """List every repository name visible in the organization."""
        repos = fetch_all(lambda cursor: self.org_repos_page(org, cursor))
        logger.info("Listed organization repositories", extra={"org": org, "repos": len(repos)})
        return repos

    def count_issues(self, query_string: str) -> int:
        """Return the number of issues or pull requests matching a search string."""
        data = self.execute(queries.COUNT_ISSUES, {"queryString": query_string})
        search = require(data, "search", "CountIssues")
        return int(require(search, "issueCount", "search"))

    def issue_search_page(self, query_string: str, cursor: Optional[str]) -> Optional[Page[int]]:
        """Fetch one page of issue numbers matching a search string."""
        data = self.execute(
            queries.ISSUE_SEARCH, {"queryString": query_string, "afterCursor": cursor}
        )

        def parse_node(node: Dict[str, Any]) -> Optional[int]:
            if node.get("__typename") != "Issue":
                logger.debug("Skipping non-issue search hit", extra={"node": node})
                return None
            return int(require(node, "number", "issue"))

        return connection_page(data.get("search"), parse_node)

    def list_issue_numbers(self, query_string: str) -> List[int]:
        """Return the numbers of every issue matching a search string."""
        return fetch_all(lambda cursor: self.issue_search_page(query_string, cursor))

    def pull_requests_page(
        self, query_string: str, cursor: Optional[str]
    ) -> Optional[Page[PullRequestRecord]]:
        """Fetch one page of pull requests with their participants and reviews."""
        data = self.execute(
            queries.PRS_AND_PARTICIPANTS, {"queryString": query_string, "afterCursor": cursor}
        )
        return connection_page(data.get("search"), _parse_pull_request)

    def list_pull_requests(self, query_string: str) -> List[PullRequestRecord]:
        """Return every pull request matching a search string."""
        return fetch_all(lambda cursor: self.pull_requests_page(query_string, cursor))


def _login(actor: Optional[Dict[str, Any]]) -> Optional[str]:
    # Deleted accounts come back as null actors.
    if not actor:
        return None
    return actor.get("login")


def _parse_pull_request(node: Dict[str, Any]) -> Optional[PullRequestRecord]:
    if node.get("__typename") != "PullRequest":
        return None

    number = int(require(node, "number", "pull request"))
    context = f"pull request #{number}"
    participants = require(node, "participants", context)
    reviews = require(node, "reviews", context)

    return PullRequestRecord(
        number=number,
        author=_login(node.get("author")),
        participants=[_login(item) for item in require(participants, "nodes", context)],
        participants_total=int(require(participants, "totalCount", context)),
        reviewers=[
            _login(item.get("author") if item else None)
            for item in require(reviews, "nodes", context)
        ],
        reviewers_total=int(require(reviews, "totalCount", context)),
        merged_by=_login(node.get("mergedBy")),
    )
