from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from exporter.errors import IndexReadError
from indexstore.base import ContentIndex
from indexstore.models import Record, RecordEntry, RecordId


@dataclass(frozen=True)
class ResolvedRecord:
    record_id: RecordId
    record: Record
    entry: RecordEntry


def resolve(index: ContentIndex, record_id: RecordId) -> Optional[ResolvedRecord]:
    """
    Fetch the record and its entry. Returns None when either is missing;
    the caller still counts the id as scanned.
    """
    try:
        record = index.record_by_id(record_id)
        entry = index.entry_by_id(record_id)
    except Exception as e:
        raise IndexReadError(f"Failed to read record {record_id}: {e}") from e

    if record is None or entry is None:
        return None
    return ResolvedRecord(record_id=record_id, record=record, entry=entry)
