"""Tests for application orchestration in the main module."""

import sys
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from optopodi.errors import (
    ApiError,
    AuthenticationError,
    ConfigurationError,
    MetricsError,
    PaginationUnsupportedError,
    SinkError,
)
from optopodi.main import exit_code_for, orchestrate, run_pipeline
from optopodi.producers import ListRepos, RepoParticipants


def test_orchestrate_list_wires_producer_and_print_consumer():
    """Verify list streams ListRepos into stdout CSV and returns 0."""
    with patch("optopodi.main.github_token", return_value="secret"), patch(
        "optopodi.main.GithubClient"
    ) as client_ctor_mock, patch("optopodi.main.run_pipeline") as pipeline_mock:
        exit_code = orchestrate(["list", "--org", "org"])

    assert exit_code == 0
    client_ctor_mock.assert_called_once_with(token="secret")
    producer, consumer = pipeline_mock.call_args.args
    assert isinstance(producer, ListRepos)
    assert type(consumer).__name__ == "Print"


def test_orchestrate_participants_with_sheet_uses_sheets_consumer(monkeypatch):
    """Verify --sheet-id selects the Google Sheets consumer."""
    monkeypatch.setenv("GOOGLE_SHEETS_TOKEN", "sheets-secret")
    with patch("optopodi.main.github_token", return_value="secret"), patch(
        "optopodi.main.GithubClient"
    ), patch("optopodi.main.run_pipeline") as pipeline_mock:
        exit_code = orchestrate(["participants", "--org", "org", "--repo", "rust", "--sheet-id", "abc"])

    assert exit_code == 0
    producer, consumer = pipeline_mock.call_args.args
    assert isinstance(producer, RepoParticipants)
    assert type(consumer).__name__ == "ExportToSheets"


def test_orchestrate_report_runs_report(capsys, tmp_path):
    """Verify the report command constructs and runs a Report."""
    report = Mock()
    report.run.return_value = tmp_path / "output"

    with patch("optopodi.main.github_token", return_value="secret"), patch(
        "optopodi.main.Report", return_value=report
    ) as report_ctor_mock:
        exit_code = orchestrate(["report", str(tmp_path)])

    assert exit_code == 0
    report_ctor_mock.assert_called_once_with(tmp_path, "secret", replay_graphql=False)
    assert "Report written to" in capsys.readouterr().out


def test_orchestrate_report_replay_does_not_need_token(tmp_path):
    report = Mock()
    report.run.return_value = tmp_path

    with patch("optopodi.main.github_token") as token_mock, patch(
        "optopodi.main.Report", return_value=report
    ) as report_ctor_mock:
        exit_code = orchestrate(["report", str(tmp_path), "--replay-graphql"])

    assert exit_code == 0
    token_mock.assert_not_called()
    report_ctor_mock.assert_called_once_with(tmp_path, None, replay_graphql=True)


def test_orchestrate_missing_token_returns_auth_error():
    """Verify missing credentials return the authentication exit code."""
    with patch("optopodi.main.github_token", side_effect=AuthenticationError("no token")):
        exit_code = orchestrate(["list", "--org", "org"])

    assert exit_code == 3


def test_orchestrate_api_error_returns_api_exit_code():
    """Verify GitHub API failures return the API error exit code."""
    with patch("optopodi.main.github_token", return_value="secret"), patch(
        "optopodi.main.GithubClient"
    ), patch("optopodi.main.run_pipeline", side_effect=ApiError("boom")):
        exit_code = orchestrate(["list", "--org", "org"])

    assert exit_code == 4


def test_orchestrate_unexpected_error_returns_generic_exit_code():
    """Verify unexpected exceptions are mapped to the generic non-zero exit code."""
    with patch("optopodi.main.parse_args", side_effect=RuntimeError("boom")):
        exit_code = orchestrate([])

    assert exit_code == 1


def test_exit_code_follows_cause_chain():
    """Verify wrapped stage failures keep the exit code of their cause."""
    try:
        try:
            raise PaginationUnsupportedError("too many reviews")
        except PaginationUnsupportedError as inner:
            raise MetricsError("Failed to gather Repo Participants") from inner
    except MetricsError as outer:
        assert exit_code_for(outer) == 4

    assert exit_code_for(ConfigurationError("bad")) == 2
    assert exit_code_for(SinkError("disk")) == 5
    assert exit_code_for(MetricsError("plain")) == 1


def test_run_pipeline_reraises_producer_error():
    """Verify the producer's failure reaches the caller after the consumer finishes."""
    producer = Mock(spec=ListRepos)
    producer.column_names.return_value = ["name"]
    producer.run.side_effect = ApiError("search failed")
    consumer = Mock()
    consumer.consume.side_effect = lambda receiver, column_names: list(receiver)

    with pytest.raises(ApiError):
        run_pipeline(producer, consumer)

    consumer.consume.assert_called_once()
