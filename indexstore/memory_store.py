from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set, Tuple

from indexstore.base import IndexStoreError
from indexstore.models import Cursor, Page, Record, RecordEntry, RecordId

IndexRow = Tuple[RecordId, Optional[Record], Optional[RecordEntry]]


class MemoryIndex:
    """
    In-memory index. Rows are kept in index order (oldest first); a row's
    position is its sequence number and doubles as the paging cursor.
    """

    def __init__(self, rows: Iterable[IndexRow] = ()):
        self._ids: List[RecordId] = []
        self._records: Dict[RecordId, Record] = {}
        self._entries: Dict[RecordId, RecordEntry] = {}
        self._known: Set[RecordId] = set()
        for record_id, record, entry in rows:
            self.add(record_id, record, entry)

    def add(
        self,
        record_id: RecordId,
        record: Optional[Record] = None,
        entry: Optional[RecordEntry] = None,
    ) -> None:
        if record_id in self._known:
            raise IndexStoreError(f"Duplicate record id: {record_id}")
        self._ids.append(record_id)
        self._known.add(record_id)
        if record is not None:
            self._records[record_id] = record
        if entry is not None:
            self._entries[record_id] = entry

    def record_count(self) -> int:
        return len(self._ids)

    def latest_page(self, count: int, cursor: Cursor = None) -> Page:
        if count < 1:
            raise IndexStoreError(f"Page size must be positive, got {count}")
        if not self._ids:
            return Page()
        latest = len(self._ids) - 1
        start = latest if cursor is None else min(cursor, latest)
        if start < 0:
            return Page()

        stop = max(start - count, -1)
        ids = [self._ids[i] for i in range(start, stop, -1)]
        older = start - count if start - count >= 0 else None
        newer = min(start + count, latest) if start < latest else None
        return Page(ids=ids, older_cursor=older, newer_cursor=newer)

    def record_by_id(self, record_id: RecordId) -> Optional[Record]:
        return self._records.get(record_id)

    def entry_by_id(self, record_id: RecordId) -> Optional[RecordEntry]:
        return self._entries.get(record_id)
