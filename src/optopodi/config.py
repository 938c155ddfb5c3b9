"""Configuration parsing and validation for optopodi."""

from __future__ import annotations

import logging
import os
import subprocess
import tomllib
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .errors import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

REPORT_CONFIG_FILE = "report.toml"


@dataclass(frozen=True)
class ContributorThresholds:
    """Thresholds used to classify a participant as a high contributor."""

    reviewer_min_percent: int
    reviewer_min_count: int
    participant_min_percent: int
    participant_min_count: int
    author_min_percent: int
    author_min_count: int
    categories_required: int
    reviewer_saturation_percent: int
    author_saturation_percent: int


@dataclass(frozen=True)
class GithubConfig:
    org: str
    repos: Tuple[str, ...]


@dataclass(frozen=True)
class DataSourceConfig:
    start_date: date
    end_date: date


@dataclass(frozen=True)
class ReportConfig:
    """Validated report settings loaded from ``report.toml``."""

    github: GithubConfig
    data_source: DataSourceConfig
    thresholds: ContributorThresholds


# report.toml key -> ContributorThresholds field
_THRESHOLD_KEYS: Dict[str, str] = {
    "high_reviewer_min_percentage": "reviewer_min_percent",
    "high_reviewer_min_prs": "reviewer_min_count",
    "high_participant_min_percentage": "participant_min_percent",
    "high_participant_min_prs": "participant_min_count",
    "high_author_min_percentage": "author_min_percent",
    "high_author_min_prs": "author_min_count",
    "high_contributor_categories_threshold": "categories_required",
    "reviewer_saturation_threshold": "reviewer_saturation_percent",
    "author_saturation_threshold": "author_saturation_percent",
}


def _table(document: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = document.get(name)
    if not isinstance(value, dict):
        raise ConfigurationError(f"Missing required table '[{name}]' in {REPORT_CONFIG_FILE}.")
    return value


def _non_negative_int(table: Dict[str, Any], section: str, key: str) -> int:
    value = table.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigurationError(
            f"Invalid value for '{section}.{key}': expected a non-negative integer, got {value!r}."
        )
    return value


def _date(table: Dict[str, Any], section: str, key: str) -> date:
    value = table.get(key)
    # TOML local dates arrive as ``date``; offset datetimes as ``datetime``.
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError as exc:
            raise ConfigurationError(
                f"Invalid value for '{section}.{key}': expected YYYY-MM-DD, got {value!r}."
            ) from exc
    raise ConfigurationError(f"Missing or invalid date '{section}.{key}'.")


def parse_report_config(document: Dict[str, Any]) -> ReportConfig:
    """Build a ``ReportConfig`` from an already-parsed TOML document.

    Raises:
        ConfigurationError: If a table or key is missing or has the wrong type,
            or if the data window ends before it starts.
    """
    github = _table(document, "github")
    org = github.get("org")
    if not isinstance(org, str) or not org.strip():
        raise ConfigurationError("Missing required value 'github.org'.")

    repos = github.get("repos", [])
    if not isinstance(repos, list) or not all(isinstance(repo, str) for repo in repos):
        raise ConfigurationError("Invalid value for 'github.repos': expected a list of strings.")

    data_source = _table(document, "data_source")
    start_date = _date(data_source, "data_source", "start_date")
    end_date = _date(data_source, "data_source", "end_date")
    if start_date > end_date:
        raise ConfigurationError(
            f"Invalid data window: start_date {start_date} is after end_date {end_date}."
        )

    high_contributor = _table(document, "high_contributor")
    threshold_values = {
        field_name: _non_negative_int(high_contributor, "high_contributor", key)
        for key, field_name in _THRESHOLD_KEYS.items()
    }

    return ReportConfig(
        github=GithubConfig(org=org.strip(), repos=tuple(repos)),
        data_source=DataSourceConfig(start_date=start_date, end_date=end_date),
        thresholds=ContributorThresholds(**threshold_values),
    )


def load_report_config(data_dir: Path) -> ReportConfig:
    """Load and validate ``report.toml`` from the report data directory.

    Raises:
        ConfigurationError: If the file cannot be read, is not valid TOML, or
            does not describe a valid report.
    """
    path = Path(data_dir) / REPORT_CONFIG_FILE
    try:
        with path.open("rb") as handle:
            document = tomllib.load(handle)
    except OSError as exc:
        raise ConfigurationError(f"Failed to read report config from {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Failed to parse report config {path}: {exc}") from exc

    config = parse_report_config(document)
    logger.debug(
        "Loaded report config",
        extra={"path": str(path), "org": config.github.org, "repos": len(config.github.repos)},
    )
    return config


def _token_from_git_config() -> Optional[str]:
    try:
        completed = subprocess.run(
            ["git", "config", "--get", "github.oauth-token"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        logger.debug("git is not available; skipping git config token lookup")
        return None

    if completed.returncode != 0:
        return None
    return completed.stdout.strip() or None


def github_token() -> str:
    """Find a GitHub token in ``GITHUB_TOKEN`` or ``git config github.oauth-token``.

    Raises:
        AuthenticationError: If neither source provides a token.
    """
    token = os.getenv("GITHUB_TOKEN", "").strip()
    if token:
        return token

    token = _token_from_git_config()
    if token:
        return token

    raise AuthenticationError(
        "Could not find a GitHub token. Set the 'GITHUB_TOKEN' environment variable "
        "or 'git config github.oauth-token'."
    )


def sheets_token() -> str:
    """Return the Google Sheets OAuth access token from ``GOOGLE_SHEETS_TOKEN``."""
    token = os.getenv("GOOGLE_SHEETS_TOKEN", "").strip()
    if not token:
        raise AuthenticationError(
            "Missing Google Sheets access token. "
            "Set the 'GOOGLE_SHEETS_TOKEN' environment variable to export to a sheet."
        )
    return token


def list_repos_arg(repos: Optional[List[str]]) -> Tuple[str, ...]:
    """Normalize repeatable ``--repo`` values, dropping blanks."""
    return tuple(repo.strip() for repo in repos or [] if repo.strip())
