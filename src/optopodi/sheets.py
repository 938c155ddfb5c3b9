"""Google Sheets REST client used by the spreadsheet export consumer."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import requests

from .errors import SinkError


class SheetsClient:
    """Minimal client for clearing and appending rows to one spreadsheet."""

    _BASE_URL = "https://sheets.googleapis.com/v4"
    _CLEAR_RANGE = "A1:Z1000"

    def __init__(self, sheet_id: str, access_token: str, timeout_seconds: int = 30) -> None:
        self._sheet_id = sheet_id
        self._timeout_seconds = timeout_seconds
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            }
        )

    @property
    def link(self) -> str:
        return f"https://docs.google.com/spreadsheets/d/{self._sheet_id}"

    def _post(
        self,
        path: str,
        body: Dict[str, Any],
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        url = f"{self._BASE_URL}/spreadsheets/{self._sheet_id}/{path}"
        try:
            response = self._session.post(
                url, json=body, params=params, timeout=self._timeout_seconds
            )
        except requests.RequestException as exc:
            raise SinkError(f"Google Sheets request failed: POST {url}") from exc

        if response.status_code >= 400:
            raise SinkError(
                f"Google Sheets request failed: POST {url} returned "
                f"{response.status_code} - {response.text}"
            )

        try:
            return response.json()
        except ValueError as exc:
            raise SinkError(f"Google Sheets returned invalid JSON: POST {url}") from exc

    def clear(self) -> None:
        """Clear every value in the sheet's data range."""
        self._post(f"values/{self._CLEAR_RANGE}:clear", {})

    def append(self, rows: Sequence[Sequence[str]]) -> None:
        """Append rows after the last non-empty row of the sheet."""
        values: List[List[str]] = [list(row) for row in rows]
        self._post(
            "values/A1:append",
            {"majorDimension": "ROWS", "values": values},
            params={"valueInputOption": "RAW"},
        )
