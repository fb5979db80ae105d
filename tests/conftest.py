import pytest

from indexstore.memory_store import MemoryIndex
from indexstore.models import Media, Page, Record, RecordEntry


def text_row(record_id, body, ts):
    if isinstance(body, str):
        body = body.encode("utf-8")
    return record_id, Record(media=Media.TEXT, body=body), RecordEntry(timestamp=ts)


class ProbeOnlyIndex:
    """Wraps an index but hides record_count(), forcing the probe estimate."""

    def __init__(self, inner):
        self._inner = inner

    def latest_page(self, count, cursor=None) -> Page:
        return self._inner.latest_page(count, cursor)

    def record_by_id(self, record_id):
        return self._inner.record_by_id(record_id)

    def entry_by_id(self, record_id):
        return self._inner.entry_by_id(record_id)


@pytest.fixture
def scenario_a_index():
    # oldest first: id1 text, id2 image, id3 text (same body as id1)
    return MemoryIndex(
        [
            text_row("id1", "hello", 1000),
            ("id2", Record(media=Media.IMAGE, body=b"\x89PNG"), RecordEntry(1500)),
            text_row("id3", "hello", 2000),
        ]
    )
