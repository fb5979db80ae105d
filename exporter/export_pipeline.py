from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from common.config import yaml_config
from common.logger import get_logger
from exporter.csv_writer import (
    CsvExportWriter,
    ExportRow,
    build_link,
    format_timestamp,
    open_output,
    output_filename,
)
from exporter.dedup import Deduplicator, build_deduplicator
from exporter.errors import IndexReadError, OutputIOError
from exporter.filters import decode_body, is_exportable
from exporter.hash_utils import sha3_256_hex
from exporter.pager import iter_pages
from exporter.progress import ProgressTracker
from exporter.resolver import ResolvedRecord, resolve
from indexstore.base import ContentIndex

log = get_logger(__name__)


@dataclass
class ExportSummary:
    path: Path
    pages: int = 0
    scanned: int = 0
    exported: int = 0
    duplicates: int = 0
    skipped: int = 0


def build_row(
    resolved: ResolvedRecord,
    dedup: Deduplicator,
    decode_errors: str = "replace",
    link_template: Optional[str] = None,
) -> tuple[Optional[ExportRow], str]:
    """
    Run one resolved record through filter, dedup and fingerprinting.
    Returns (row, outcome) where outcome is "exported", "duplicate" or
    "skipped"; row is None unless exported.
    """
    record = resolved.record
    if not is_exportable(record):
        return None, "skipped"

    text = decode_body(record.body, decode_errors)
    if text is None:
        log.debug("Skipping %s: body is not valid UTF-8", resolved.record_id)
        return None, "skipped"

    timestamp = resolved.entry.timestamp
    try:
        rfc3339 = format_timestamp(timestamp)
    except (OverflowError, ValueError) as e:
        raise IndexReadError(
            f"Record {resolved.record_id} has an out-of-range timestamp {timestamp}"
        ) from e

    if not dedup.add(text):
        return None, "duplicate"

    row = ExportRow(
        content_hash_hex=sha3_256_hex(record.body),
        timestamp_rfc3339=rfc3339,
        text=text,
        url=build_link(
            resolved.record_id, link_template or yaml_config.export.link_template
        ),
    )
    return row, "exported"


def run_export(
    index: ContentIndex,
    output_dir: Path | None = None,
    page_size: int | None = None,
    decode_errors: str | None = None,
    dedup: Deduplicator | None = None,
    link_template: str | None = None,
    show_progress: bool | None = None,
    filename_format: str | None = None,
    now: datetime | None = None,
) -> ExportSummary:
    """
    Export every unique text inscription, newest first, to a new CSV file.
    - Writes and flushes the header
    - Estimates the total for the progress bar (empty index is fatal)
    - Pages backward through the index, flushing after each page
    """
    cfg = yaml_config.export
    output_dir = Path(output_dir or cfg.output_dir)
    page_size = page_size or cfg.page_size
    decode_errors = decode_errors or cfg.decode_errors
    link_template = link_template or cfg.link_template
    show_progress = cfg.show_progress if show_progress is None else show_progress
    filename_format = filename_format or cfg.filename_format
    if dedup is None:
        dedup = build_deduplicator(
            yaml_config.dedup.mode,
            capacity=yaml_config.dedup.capacity,
            error_rate=yaml_config.dedup.error_rate,
        )

    now = now or datetime.now(timezone.utc)
    path = output_dir / output_filename(now, filename_format)
    summary = ExportSummary(path=path)

    sink = open_output(path)
    tracker = ProgressTracker(enabled=show_progress)
    try:
        # 1) Header, durable before anything else
        writer = CsvExportWriter(sink)
        writer.write_header()
        writer.flush()

        # 2) Size the progress bar
        total = tracker.start(index)
        log.info("Exporting up to %d records to %s", total, path)

        # 3) Page backward, one flush per page
        for page in iter_pages(index, page_size):
            summary.pages += 1
            for record_id in page.ids:
                summary.scanned += 1
                resolved = resolve(index, record_id)
                if resolved is None:
                    log.debug("Skipping %s: record or entry missing", record_id)
                    summary.skipped += 1
                    continue

                row, outcome = build_row(resolved, dedup, decode_errors, link_template)
                if row is not None:
                    writer.write_row(row)
                    summary.exported += 1
                elif outcome == "duplicate":
                    summary.duplicates += 1
                else:
                    summary.skipped += 1

            writer.flush()
            tracker.advance(len(page.ids))

        tracker.finish()
    finally:
        tracker.close()
        try:
            sink.close()
        except OSError as e:
            raise OutputIOError(f"Failed to close {path}: {e}") from e

    log.info(
        "Export complete: %d scanned, %d exported, %d duplicates, %d skipped -> %s",
        summary.scanned,
        summary.exported,
        summary.duplicates,
        summary.skipped,
        path,
    )
    return summary
