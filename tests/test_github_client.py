"""Tests for GitHub GraphQL client behavior with mocked HTTP."""

import json
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest
import requests

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from optopodi.errors import ApiError, ConfigurationError, MissingDataError
from optopodi.github_client import GithubClient


def _response(status_code: int, payload: dict | None = None, text: str = ""):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.json.return_value = payload if payload is not None else {}
    return response


def _repos_page(names, has_next, cursor=None) -> dict:
    return {
        "organization": {
            "repositories": {
                "pageInfo": {"hasNextPage": has_next, "endCursor": cursor},
                "edges": [{"cursor": f"c-{name}", "node": {"name": name}} for name in names],
            }
        }
    }


def _pr_node(number, author="alice", participants=("alice", "bob"), reviewers=("bob",), merged_by="bob"):
    return {
        "__typename": "PullRequest",
        "number": number,
        "author": {"login": author} if author else None,
        "mergedBy": {"login": merged_by} if merged_by else None,
        "participants": {
            "totalCount": len(participants),
            "nodes": [{"login": login} for login in participants],
        },
        "reviews": {
            "totalCount": len(reviewers),
            "nodes": [{"author": {"login": login}} for login in reviewers],
        },
    }


def test_execute_returns_data_object():
    """Verify execute posts the query and returns the payload's data object."""
    client = GithubClient(token="token")
    client._session.post = Mock(return_value=_response(200, {"data": {"search": {"issueCount": 3}}}))

    data = client.execute("query", {"queryString": "q"})

    assert data == {"search": {"issueCount": 3}}
    body = client._session.post.call_args.kwargs["json"]
    assert body == {"query": "query", "variables": {"queryString": "q"}}


def test_execute_http_error_raises_api_error_without_retry():
    """Verify server errors are fatal and are not retried."""
    client = GithubClient(token="token")
    client._session.post = Mock(return_value=_response(502, text="bad gateway"))

    with pytest.raises(ApiError):
        client.execute("query", {})

    assert client._session.post.call_count == 1


def test_execute_transport_failure_raises_api_error():
    """Verify request exceptions are wrapped in ApiError."""
    client = GithubClient(token="token")
    client._session.post = Mock(side_effect=requests.ConnectionError("down"))

    with pytest.raises(ApiError):
        client.execute("query", {})


def test_execute_graphql_errors_raise_api_error():
    """Verify a non-empty errors array is reported as an API failure."""
    client = GithubClient(token="token")
    client._session.post = Mock(
        return_value=_response(200, {"data": None, "errors": [{"message": "Bad credentials"}]})
    )

    with pytest.raises(ApiError, match="Bad credentials"):
        client.execute("query", {})


def test_execute_missing_data_raises_missing_data_error():
    """Verify a payload without data is not silently treated as empty."""
    client = GithubClient(token="token")
    client._session.post = Mock(return_value=_response(200, {}))

    with pytest.raises(MissingDataError):
        client.execute("query", {})


def test_list_org_repos_follows_cursors_across_pages():
    """Verify repository listing requests each page with the previous end cursor."""
    client = GithubClient(token="token")
    client.execute = Mock(
        side_effect=[
            _repos_page(["alpha", "beta"], True, "cursor-1"),
            _repos_page(["gamma"], False),
        ]
    )

    repos = client.list_org_repos("org")

    assert repos == ["alpha", "beta", "gamma"]
    first_vars = client.execute.call_args_list[0].args[1]
    second_vars = client.execute.call_args_list[1].args[1]
    assert first_vars == {"orgName": "org", "afterCursor": None}
    assert second_vars == {"orgName": "org", "afterCursor": "cursor-1"}


def test_list_org_repos_unknown_org_returns_empty_list():
    """Verify a missing organization yields no repositories rather than an error."""
    client = GithubClient(token="token")
    client.execute = Mock(return_value={"organization": None})

    assert client.list_org_repos("missing") == []


def test_count_issues_reads_issue_count():
    """Verify issue counting returns the search issueCount."""
    client = GithubClient(token="token")
    client.execute = Mock(return_value={"search": {"issueCount": 42}})

    assert client.count_issues("repo:o/r is:pr created:>2024-01-01") == 42


def test_pull_requests_page_parses_records_and_skips_other_nodes():
    """Verify pull request nodes become records and other search hits are ignored."""
    client = GithubClient(token="token")
    client.execute = Mock(
        return_value={
            "search": {
                "pageInfo": {"hasNextPage": False, "endCursor": None},
                "edges": [
                    {"cursor": "a", "node": _pr_node(7, author=None, merged_by=None)},
                    {"cursor": "b", "node": {"__typename": "Issue", "number": 8}},
                    None,
                ],
            }
        }
    )

    page = client.pull_requests_page("q", None)

    assert page is not None
    assert [pr.number for pr in page.items] == [7]
    record = page.items[0]
    assert record.author is None
    assert record.merged_by is None
    assert record.participants == ["alice", "bob"]
    assert record.participants_total == 2
    assert record.reviewers == ["bob"]
    assert record.reviewers_total == 1


def test_recorded_responses_can_be_replayed(tmp_path):
    """Verify responses recorded during a run are replayed in order without HTTP."""
    recorder = GithubClient(token="token", record_dir=tmp_path)
    recorder._session.post = Mock(
        side_effect=[
            _response(200, {"data": {"search": {"issueCount": 1}}}),
            _response(200, {"data": {"search": {"issueCount": 2}}}),
        ]
    )
    assert recorder.count_issues("first") == 1
    assert recorder.count_issues("second") == 2
    assert json.loads((tmp_path / "0000.json").read_text())["data"]["search"]["issueCount"] == 1

    replayer = GithubClient(token=None, record_dir=tmp_path, replay=True)
    replayer._session.post = Mock()

    assert replayer.count_issues("first") == 1
    assert replayer.count_issues("second") == 2
    replayer._session.post.assert_not_called()

    with pytest.raises(ApiError):
        replayer.count_issues("third")


def test_replay_without_record_dir_is_a_configuration_error():
    """Verify replay mode requires a directory to read from."""
    with pytest.raises(ConfigurationError):
        GithubClient(token=None, replay=True)
