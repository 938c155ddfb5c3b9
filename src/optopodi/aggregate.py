"""Per-repository participant aggregation over pull request records.

For each pull request:
- every participant other than the author is counted as having participated;
- every distinct reviewer other than the author is counted as a reviewer;
- the author is counted as an author;
- the merger, if any, is counted as having resolved the pull request.

Participant and review lists must be complete. GitHub truncates them at the
page size requested in the query, so a pull request whose retrieved list is
shorter than its reported total is rejected rather than under-counted.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, FrozenSet, Iterable, List

from .errors import PaginationUnsupportedError
from .models import ParticipantCount, PullRequestRecord

logger = logging.getLogger(__name__)

ROBOTS: FrozenSet[str] = frozenset(
    {
        "rust-highfive",
        "bors",
        "rustbot",
        "rust-log-analyzer",
        "rust-timer",
        "rfcbot",
        "dependabot[bot]",
        "github-actions[bot]",
    }
)


def is_robot(login: str) -> bool:
    return login in ROBOTS


def _check_complete(repository: str, pr: PullRequestRecord) -> None:
    if len(pr.participants) != pr.participants_total:
        raise PaginationUnsupportedError(
            f"{repository}#{pr.number}: retrieved {len(pr.participants)} of "
            f"{pr.participants_total} participants; paging participants is not supported"
        )
    if len(pr.reviewers) != pr.reviewers_total:
        raise PaginationUnsupportedError(
            f"{repository}#{pr.number}: retrieved {len(pr.reviewers)} of "
            f"{pr.reviewers_total} reviews; paging reviews is not supported"
        )


def aggregate_participants(
    repository: str,
    pull_requests: Iterable[PullRequestRecord],
) -> Dict[str, ParticipantCount]:
    """Count per-login participation for one repository's pull requests.

    Raises:
        PaginationUnsupportedError: If any pull request's participant or
            review list is incomplete.
    """
    participated_in: Counter[str] = Counter()
    authored: Counter[str] = Counter()
    reviewed: Counter[str] = Counter()
    resolved: Counter[str] = Counter()
    pr_count = 0

    for pr in pull_requests:
        _check_complete(repository, pr)
        pr_count += 1
        author = pr.author

        for login in pr.participants:
            if login and login != author:
                participated_in[login] += 1

        for login in {login for login in pr.reviewers if login}:
            if login != author:
                reviewed[login] += 1

        if author:
            authored[author] += 1

        if pr.merged_by:
            resolved[pr.merged_by] += 1

    logins = set(participated_in) | set(authored) | set(reviewed) | set(resolved)
    counts = {
        login: ParticipantCount(
            login=login,
            repository=repository,
            participated_in=participated_in[login],
            authored=authored[login],
            reviewed=reviewed[login],
            resolved=resolved[login],
        )
        for login in logins
        if not is_robot(login)
    }

    logger.info(
        "Aggregated pull request participants",
        extra={"repository": repository, "prs_total": pr_count, "participants": len(counts)},
    )
    return counts


def sorted_participants(counts: Dict[str, ParticipantCount]) -> List[ParticipantCount]:
    """Order participants by descending participation, then login."""
    return sorted(counts.values(), key=lambda p: (-p.participated_in, p.login))
