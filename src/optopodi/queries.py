"""GraphQL documents and search strings used against the GitHub API."""

from __future__ import annotations

from datetime import date
from typing import Optional

ORG_REPOS = """
query OrgRepos($orgName: String!, $afterCursor: String) {
  organization(login: $orgName) {
    repositories(first: 100, after: $afterCursor, orderBy: {field: NAME, direction: ASC}) {
      pageInfo { hasNextPage endCursor }
      edges { cursor node { name } }
    }
  }
}
"""

COUNT_ISSUES = """
query CountIssues($queryString: String!) {
  search(query: $queryString, type: ISSUE, first: 0) {
    issueCount
  }
}
"""

ISSUE_SEARCH = """
query IssueSearch($queryString: String!, $afterCursor: String) {
  search(query: $queryString, type: ISSUE, first: 100, after: $afterCursor) {
    pageInfo { hasNextPage endCursor }
    edges { cursor node { __typename ... on Issue { number } } }
  }
}
"""

PRS_AND_PARTICIPANTS = """
query PrsAndParticipants($queryString: String!, $afterCursor: String) {
  search(query: $queryString, type: ISSUE, first: 25, after: $afterCursor) {
    pageInfo { hasNextPage endCursor }
    edges {
      cursor
      node {
        __typename
        ... on PullRequest {
          number
          author { login }
          mergedBy { login }
          participants(first: 100) { totalCount nodes { login } }
          reviews(first: 100) { totalCount nodes { author { login } } }
        }
      }
    }
  }
}
"""


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def search_string(
    org: str,
    repo: str,
    kind: str,
    qualifier: str,
    start: date,
    end: Optional[date] = None,
) -> str:
    """Build a GitHub search string scoped to one repository and date range.

    ``kind`` is ``pr`` or ``issue`` and ``qualifier`` is the date field, such as
    ``created`` or ``closed``. Without ``end`` the range is open-ended, i.e.
    ``created:>2024-01-01``.

    >>> search_string("rust-lang", "rust", "issue", "closed", date(2024, 1, 1), date(2024, 2, 1))
    'repo:rust-lang/rust is:issue closed:2024-01-01..2024-02-01'
    """
    if end is None:
        window = f">{format_date(start)}"
    else:
        window = f"{format_date(start)}..{format_date(end)}"
    return f"repo:{org}/{repo} is:{kind} {qualifier}:{window}"
