from __future__ import annotations

import csv
import io
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TextIO

from exporter.errors import OutputIOError
from indexstore.models import RecordId

HEADER = ["hash", "timestamp", "text", "link"]
DEFAULT_LINK_TEMPLATE = "https://ordinals.com/inscription/{id}"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class ExportRow:
    content_hash_hex: str
    timestamp_rfc3339: str
    text: str
    url: str

    def as_list(self):
        return [self.content_hash_hex, self.timestamp_rfc3339, self.text, self.url]


def format_timestamp(epoch_seconds: int) -> str:
    """Epoch seconds -> RFC 3339 in UTC, via millisecond precision."""
    millis = int(epoch_seconds) * 1000
    return (_EPOCH + timedelta(milliseconds=millis)).isoformat()


def build_link(record_id: RecordId, template: str = DEFAULT_LINK_TEMPLATE) -> str:
    return template.format(id=record_id)


def output_filename(now: datetime, fmt: str = "%d-%m-%Y_%H-%M.csv") -> str:
    return now.strftime(fmt)


def open_output(path: Path) -> TextIO:
    """Create the CSV file; refuses to overwrite an existing one."""
    try:
        return open(path, "x", newline="", encoding="utf-8")
    except OSError as e:
        raise OutputIOError(f"Cannot create output file {path}: {e}") from e


class CsvExportWriter:
    """
    Writes export rows to a text sink. Rows are staged in memory and only
    handed to the sink by `flush()`, which the pipeline calls once per
    completed page, so the file never ends in the middle of a page.
    """

    def __init__(self, sink: TextIO):
        self._sink = sink
        self._buffer = io.StringIO()
        self._writer = csv.writer(self._buffer, lineterminator="\r\n")
        self._header_written = False
        self.rows_written = 0
        self.pending_rows = 0

    def write_header(self) -> None:
        if self._header_written:
            raise RuntimeError("CSV header already written")
        self._writer.writerow(HEADER)
        self._header_written = True

    def write_row(self, row: ExportRow) -> None:
        if not self._header_written:
            raise RuntimeError("write_header() must be called before write_row()")
        self._writer.writerow(row.as_list())
        self.pending_rows += 1

    def flush(self) -> None:
        data = self._buffer.getvalue()
        try:
            if data:
                self._sink.write(data)
            self._sink.flush()
        except OSError as e:
            raise OutputIOError(f"Failed to write CSV output: {e}") from e
        self._buffer.seek(0)
        self._buffer.truncate(0)
        self.rows_written += self.pending_rows
        self.pending_rows = 0

        try:
            fd = self._sink.fileno()
        except (AttributeError, io.UnsupportedOperation):
            return  # in-memory sink
        try:
            os.fsync(fd)
        except OSError as e:
            raise OutputIOError(f"Failed to sync CSV output: {e}") from e
