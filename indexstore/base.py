from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from indexstore.models import Cursor, Page, Record, RecordEntry, RecordId


class IndexStoreError(Exception):
    """Raised by a backend when the underlying index cannot be read."""


class ContentIndex(Protocol):
    """
    Read-only view over an inscription index, as consumed by the exporter.

    `latest_page(count, None)` returns the newest page. The returned
    `older_cursor` feeds the next call; `None` means no older records remain.
    """

    def latest_page(self, count: int, cursor: Cursor = None) -> Page: ...

    def record_by_id(self, record_id: RecordId) -> Optional[Record]: ...

    def entry_by_id(self, record_id: RecordId) -> Optional[RecordEntry]: ...


@runtime_checkable
class CountableIndex(Protocol):
    def record_count(self) -> int: ...
