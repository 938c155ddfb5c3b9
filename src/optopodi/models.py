"""Domain models for GitHub contribution metrics.

These dataclasses intentionally model only the subset of GraphQL payload fields
that are required for aggregation and classification.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")

# Rows travel between producers and consumers as plain string lists.
Row = List[str]


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a cursor-paged query."""

    items: List[T]
    has_next_page: bool
    end_cursor: Optional[str]


@dataclass(frozen=True)
class PullRequestRecord:
    """Represents the pull request data required for participant aggregation."""

    number: int
    author: Optional[str]
    participants: List[Optional[str]]
    participants_total: int
    reviewers: List[Optional[str]]
    reviewers_total: int
    merged_by: Optional[str]


@dataclass(frozen=True)
class RepoInfo:
    """Represents per-repository activity counts for one time window."""

    organization: str
    repository: str
    num_prs: int
    num_issues_opened: int
    num_issues_closed: int
    window_start: date
    window_end: date


@dataclass(frozen=True)
class ParticipantCount:
    """Represents one login's pull request activity in one repository."""

    login: str
    repository: str
    participated_in: int = 0
    authored: int = 0
    reviewed: int = 0
    resolved: int = 0

    @property
    def reviewed_or_resolved(self) -> int:
        return max(self.reviewed, self.resolved)


@dataclass(frozen=True)
class IssueClosure:
    """Represents issue openings and closures for one repository."""

    organization: str
    repository: str
    opened: int
    closed: int
    window_start: date
    window_end: date

    @property
    def delta(self) -> int:
        return self.opened - self.closed


@dataclass(frozen=True)
class ClassificationResult:
    """Represents the derived contributor classification for a repository."""

    repository: str
    num_prs: int
    total_participants: int
    total_authors: int
    total_reviewers: int
    top_author: str
    top_author_pct: int
    top_reviewer: str
    top_reviewer_pct: int
    top_participant: str
    top_participant_pct: int
    author_saturation: Tuple[str, int] = ("", 0)
    reviewer_saturation: Tuple[str, int] = ("", 0)
    high_contributors: List[str] = field(default_factory=list)
