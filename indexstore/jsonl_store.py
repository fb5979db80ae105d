from __future__ import annotations

import base64
from pathlib import Path
from typing import Any, Dict, Optional

import orjson

from common.logger import get_logger
from indexstore.base import IndexStoreError
from indexstore.memory_store import MemoryIndex
from indexstore.models import Cursor, Media, Page, Record, RecordEntry, RecordId

log = get_logger(__name__)


def _parse_line(raw: Dict[str, Any]):
    """
    Turn one snapshot line into an index row. Lines look like:
      {"id": "<txid>i0", "content_type": "text/plain;charset=utf-8",
       "body_b64": "aGVsbG8=", "timestamp": 1675000000}
    `body_text` may replace `body_b64` for UTF-8 bodies. A null
    `timestamp` means the entry is missing.
    """
    record_id = raw["id"]
    if not isinstance(record_id, str) or not record_id:
        raise ValueError("id must be a non-empty string")

    body: Optional[bytes] = None
    if raw.get("body_b64") is not None:
        body = base64.b64decode(raw["body_b64"], validate=True)
    elif raw.get("body_text") is not None:
        body = str(raw["body_text"]).encode("utf-8")

    record = None
    if "content_type" in raw or body is not None:
        media = Media.from_content_type(raw.get("content_type"))
        record = Record(media=media, body=body)

    entry = None
    if raw.get("timestamp") is not None:
        entry = RecordEntry(timestamp=int(raw["timestamp"]))
    return record_id, record, entry


class JsonlIndex:
    """
    Read-only index snapshot stored as JSON lines, oldest inscription first.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._store = MemoryIndex()
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            raise IndexStoreError(f"Index snapshot not found: {self.path}")
        try:
            with self.path.open("rb") as f:
                for lineno, line in enumerate(f, start=1):
                    if not line.strip():
                        continue
                    try:
                        row = _parse_line(orjson.loads(line))
                    except (KeyError, TypeError, ValueError) as e:
                        raise IndexStoreError(
                            f"{self.path}:{lineno}: malformed index line ({e})"
                        ) from e
                    self._store.add(*row)
        except OSError as e:
            raise IndexStoreError(f"Cannot read index snapshot {self.path}: {e}") from e
        log.info("Loaded %d records from %s", self._store.record_count(), self.path)

    def record_count(self) -> int:
        return self._store.record_count()

    def latest_page(self, count: int, cursor: Cursor = None) -> Page:
        return self._store.latest_page(count, cursor)

    def record_by_id(self, record_id: RecordId) -> Optional[Record]:
        return self._store.record_by_id(record_id)

    def entry_by_id(self, record_id: RecordId) -> Optional[RecordEntry]:
        return self._store.entry_by_id(record_id)
