"""Consumers that persist pipeline rows."""

from __future__ import annotations

import csv
import logging
from typing import List, TextIO

from .errors import SinkError
from .pipeline import Consumer, Receiver
from .sheets import SheetsClient

logger = logging.getLogger(__name__)


class Print(Consumer):
    """Write rows as CSV, prefixed with a 1-based ``#`` index column."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def consume(self, receiver: Receiver, column_names: List[str]) -> None:
        writer = csv.writer(self._stream, lineterminator="\n")
        row_index = 0
        try:
            writer.writerow(["#", *column_names])
            for row_index, row in enumerate(receiver, start=1):
                writer.writerow([str(row_index), *row])
            self._stream.flush()
        except (OSError, csv.Error) as exc:
            receiver.close()
            raise SinkError(f"Failed to write CSV output after {row_index} rows") from exc

        logger.debug("Wrote CSV rows", extra={"rows": row_index})


class ExportToSheets(Consumer):
    """Replace a Google Sheet's contents with the header and received rows."""

    def __init__(self, sheets: SheetsClient) -> None:
        self._sheets = sheets

    def consume(self, receiver: Receiver, column_names: List[str]) -> None:
        try:
            self._sheets.clear()
            self._sheets.append([column_names])
            rows = 0
            for row in receiver:
                self._sheets.append([row])
                rows += 1
        except SinkError:
            receiver.close()
            raise

        logger.info("Exported rows to Google Sheets", extra={"rows": rows, "link": self._sheets.link})
        print(f"Successfully uploaded data to Google Sheets: {self._sheets.link}")
