"""Contribution classification for repository participants.

This module provides utilities for:
- Integer percentages of a repository's pull request count.
- Finding the top participant for a given metric.
- Computing saturation sets: the smallest ranked group of participants whose
  combined metric exceeds a share of all pull requests.
- Deciding whether a participant is a high contributor.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Sequence, Tuple

from .config import ContributorThresholds
from .models import ClassificationResult, ParticipantCount, RepoInfo

Metric = Callable[[ParticipantCount], int]


def participated_in(participant: ParticipantCount) -> int:
    return participant.participated_in


def authored(participant: ParticipantCount) -> int:
    return participant.authored


def reviewed_or_resolved(participant: ParticipantCount) -> int:
    return participant.reviewed_or_resolved


def percentage(numerator: int, denominator: int) -> int:
    """Return ``numerator`` as a floored integer percentage of ``denominator``.

    A zero denominator yields ``0`` so repositories without pull requests do
    not need special handling.
    """
    if denominator == 0:
        return 0
    return numerator * 100 // denominator


def in_repo(participants: Iterable[ParticipantCount], repo_info: RepoInfo) -> List[ParticipantCount]:
    return [p for p in participants if p.repository == repo_info.repository]


def top_participant(
    participants: Iterable[ParticipantCount],
    repo_info: RepoInfo,
    metric: Metric,
) -> Tuple[str, int]:
    """Return the login maximizing ``metric`` and its percentage of ``num_prs``.

    Returns ``("N/A", 0)`` when the repository has no participants. When
    several participants share the maximum, the last one encountered wins.
    """
    candidates = in_repo(participants, repo_info)
    if not candidates:
        return "N/A", 0

    best = max(reversed(candidates), key=metric)
    return best.login, percentage(metric(best), repo_info.num_prs)


def saturation_set(
    participants: Iterable[ParticipantCount],
    repo_info: RepoInfo,
    threshold_percent: int,
    metric: Metric,
) -> List[Tuple[str, int]]:
    """Return the ranked participants needed to exceed ``threshold_percent`` of PRs.

    Participants are ranked by descending ``(metric, login)``. Entries are
    taken until the running total strictly exceeds
    ``num_prs * threshold_percent // 100``; if it never does, every
    participant is returned. Each entry is ``(login, percent)``.
    """
    ranked = sorted(
        ((metric(p), p.login) for p in in_repo(participants, repo_info)),
        reverse=True,
    )
    target = repo_info.num_prs * threshold_percent // 100

    running_total = 0
    entries: List[Tuple[str, int]] = []
    for value, login in ranked:
        running_total += value
        entries.append((login, percentage(value, repo_info.num_prs)))
        if running_total > target:
            break

    return entries


def format_saturation(entries: Sequence[Tuple[str, int]]) -> List[str]:
    return [f"{login} ({percent}%)" for login, percent in entries]


def saturation(
    participants: Iterable[ParticipantCount],
    repo_info: RepoInfo,
    threshold_percent: int,
    metric: Metric,
) -> Tuple[str, int]:
    """Return the saturation set as a ``", "``-joined string and its size."""
    names = format_saturation(saturation_set(participants, repo_info, threshold_percent, metric))
    return ", ".join(names), len(names)


def is_high_contributor(
    thresholds: ContributorThresholds,
    repo_info: RepoInfo,
    participant: ParticipantCount,
) -> bool:
    """Decide whether ``participant`` counts as a high contributor.

    Three categories are evaluated:
    - reviewer: reviewed-or-resolved percentage above the minimum, *or* count
      above the minimum;
    - activity: participation percentage *and* count above their minimums;
    - author: authored percentage *and* count above their minimums.

    The participant qualifies when at least ``categories_required`` categories
    hold. The reviewer category deliberately uses OR while the other two use
    AND; this mirrors the reporting policy and is pending product review.
    """
    num_prs = repo_info.num_prs
    reviews = participant.reviewed_or_resolved

    high_reviewer = (
        percentage(reviews, num_prs) > thresholds.reviewer_min_percent
        or reviews > thresholds.reviewer_min_count
    )
    high_activity = (
        percentage(participant.participated_in, num_prs) > thresholds.participant_min_percent
        and participant.participated_in > thresholds.participant_min_count
    )
    high_author = (
        percentage(participant.authored, num_prs) > thresholds.author_min_percent
        and participant.authored > thresholds.author_min_count
    )

    categories = sum((high_reviewer, high_activity, high_author))
    return categories >= thresholds.categories_required


def classify_repository(
    thresholds: ContributorThresholds,
    repo_info: RepoInfo,
    participants: Iterable[ParticipantCount],
) -> ClassificationResult:
    """Compute the full contributor classification for one repository."""
    members = in_repo(participants, repo_info)

    top_author, top_author_pct = top_participant(members, repo_info, authored)
    top_reviewer, top_reviewer_pct = top_participant(members, repo_info, reviewed_or_resolved)
    top_active, top_active_pct = top_participant(members, repo_info, participated_in)

    return ClassificationResult(
        repository=repo_info.repository,
        num_prs=repo_info.num_prs,
        total_participants=sum(1 for p in members if p.participated_in > 0),
        total_authors=sum(1 for p in members if p.authored > 0),
        total_reviewers=sum(1 for p in members if p.reviewed_or_resolved > 0),
        top_author=top_author,
        top_author_pct=top_author_pct,
        top_reviewer=top_reviewer,
        top_reviewer_pct=top_reviewer_pct,
        top_participant=top_active,
        top_participant_pct=top_active_pct,
        author_saturation=saturation(
            members, repo_info, thresholds.author_saturation_percent, authored
        ),
        reviewer_saturation=saturation(
            members, repo_info, thresholds.reviewer_saturation_percent, reviewed_or_resolved
        ),
        high_contributors=[
            p.login for p in members if is_high_contributor(thresholds, repo_info, p)
        ],
    )
