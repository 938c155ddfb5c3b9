"""Tests for CSV and Google Sheets consumers."""

import io
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from optopodi.consumers import ExportToSheets, Print
from optopodi.errors import SinkError
from optopodi.pipeline import channel
from optopodi.sheets import SheetsClient


def _filled_receiver(rows, width=2):
    sender, receiver = channel(capacity=len(rows) + 1, width=width)
    for row in rows:
        sender.send(row)
    sender.close()
    return receiver


def test_print_writes_indexed_csv_with_quoting():
    """Verify header, 1-based index column and CSV quoting of delimiters."""
    receiver = _filled_receiver([["alpha", "1"], ["beta, gamma", "2"]])
    output = io.StringIO()

    Print(output).consume(receiver, ["Repository", "PRs"])

    assert output.getvalue() == '#,Repository,PRs\n1,alpha,1\n2,"beta, gamma",2\n'


def test_print_empty_stream_writes_only_header():
    """Verify a producer with no rows still yields a header."""
    output = io.StringIO()

    Print(output).consume(_filled_receiver([]), ["Repository", "PRs"])

    assert output.getvalue() == "#,Repository,PRs\n"


def test_print_write_failure_raises_sink_error():
    """Verify I/O failures are fatal to the consumer."""
    stream = Mock()
    stream.write.side_effect = OSError("disk full")

    with pytest.raises(SinkError):
        Print(stream).consume(_filled_receiver([["a", "1"]]), ["Repository", "PRs"])


def test_export_to_sheets_clears_then_appends_header_and_rows(capsys):
    """Verify replace-not-append semantics and a link on success."""
    sheets = Mock()
    sheets.link = "https://docs.google.com/spreadsheets/d/sheet"
    calls = []
    sheets.clear.side_effect = lambda: calls.append("clear")
    sheets.append.side_effect = lambda rows: calls.append(rows)

    ExportToSheets(sheets).consume(_filled_receiver([["a", "1"], ["b", "2"]]), ["Repository", "PRs"])

    assert calls == ["clear", [["Repository", "PRs"]], [["a", "1"]], [["b", "2"]]]
    assert "https://docs.google.com/spreadsheets/d/sheet" in capsys.readouterr().out


def test_export_to_sheets_append_failure_is_fatal():
    """Verify a failed append stops the export."""
    sheets = Mock()
    sheets.append.side_effect = [None, SinkError("quota exceeded")]

    with pytest.raises(SinkError):
        ExportToSheets(sheets).consume(_filled_receiver([["a", "1"], ["b", "2"]]), ["Repository", "PRs"])

    assert sheets.append.call_count == 2


def test_sheets_client_posts_clear_and_append_requests():
    """Verify the Sheets REST calls and the sheet link."""
    client = SheetsClient("sheet-id", "access-token")
    response = Mock(status_code=200)
    response.json.return_value = {}
    client._session.post = Mock(return_value=response)

    client.clear()
    client.append([["a", "1"]])

    clear_call, append_call = client._session.post.call_args_list
    assert clear_call.args[0] == "https://sheets.googleapis.com/v4/spreadsheets/sheet-id/values/A1:Z1000:clear"
    assert append_call.args[0] == "https://sheets.googleapis.com/v4/spreadsheets/sheet-id/values/A1:append"
    assert append_call.kwargs["json"]["values"] == [["a", "1"]]
    assert append_call.kwargs["params"] == {"valueInputOption": "RAW"}
    assert client.link == "https://docs.google.com/spreadsheets/d/sheet-id"


def test_sheets_client_http_error_raises_sink_error():
    client = SheetsClient("sheet-id", "access-token")
    client._session.post = Mock(return_value=Mock(status_code=403, text="forbidden"))

    with pytest.raises(SinkError):
        client.clear()
