import csv
from datetime import datetime, timezone

import pytest

from conftest import ProbeOnlyIndex, text_row
from exporter.csv_writer import HEADER
from exporter.dedup import BloomDeduplicator, ExactDeduplicator
from exporter.errors import EmptyIndexError, IndexReadError, TextDecodeError
from exporter.export_pipeline import run_export
from exporter.hash_utils import sha3_256_hex
from indexstore.memory_store import MemoryIndex
from indexstore.models import Media, Record, RecordEntry

NOW = datetime(2024, 1, 2, 3, 4, tzinfo=timezone.utc)
LINK = "https://ordinals.com/inscription/{id}"


def _export(index, out_dir, **kwargs):
    kwargs.setdefault("page_size", 1000)
    kwargs.setdefault("decode_errors", "replace")
    kwargs.setdefault("link_template", LINK)
    dedup = kwargs.pop("dedup", None)
    if dedup is None:
        dedup = ExactDeduplicator()
    return run_export(
        index,
        output_dir=out_dir,
        dedup=dedup,
        show_progress=False,
        filename_format="%d-%m-%Y_%H-%M.csv",
        now=NOW,
        **kwargs,
    )


def _read(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.reader(f))


class FailingPageIndex:
    """Serves the first `ok_pages` pages, then fails like a broken database."""

    def __init__(self, inner, ok_pages):
        self._inner = inner
        self._ok_pages = ok_pages
        self.calls = 0

    def record_count(self):
        return self._inner.record_count()

    def latest_page(self, count, cursor=None):
        self.calls += 1
        if self.calls > self._ok_pages:
            raise OSError("index file truncated")
        return self._inner.latest_page(count, cursor)

    def record_by_id(self, record_id):
        return self._inner.record_by_id(record_id)

    def entry_by_id(self, record_id):
        return self._inner.entry_by_id(record_id)


def test_basic_export_with_dedup(tmp_path, scenario_a_index):
    summary = _export(scenario_a_index, tmp_path, page_size=3)

    assert summary.path == tmp_path / "02-01-2024_03-04.csv"
    assert _read(summary.path) == [
        HEADER,
        [
            sha3_256_hex(b"hello"),
            "1970-01-01T00:33:20+00:00",
            "hello",
            "https://ordinals.com/inscription/id3",
        ],
    ]
    assert summary.pages == 1
    assert summary.scanned == 3
    assert summary.exported == 1
    assert summary.duplicates == 1
    assert summary.skipped == 1


def test_empty_index_leaves_header_only_file(tmp_path):
    with pytest.raises(EmptyIndexError):
        _export(MemoryIndex(), tmp_path)

    path = tmp_path / "02-01-2024_03-04.csv"
    assert path.read_bytes() == b"hash,timestamp,text,link\r\n"


def test_empty_index_without_record_count(tmp_path):
    with pytest.raises(EmptyIndexError):
        _export(ProbeOnlyIndex(MemoryIndex()), tmp_path)
    assert _read(tmp_path / "02-01-2024_03-04.csv") == [HEADER]


def test_interrupted_run_keeps_flushed_pages(tmp_path):
    inner = MemoryIndex(
        [
            text_row("id1", "one", 100),
            text_row("id2", "two", 200),
            text_row("id3", "three", 300),
        ]
    )
    index = FailingPageIndex(inner, ok_pages=2)

    with pytest.raises(IndexReadError):
        _export(index, tmp_path, page_size=1)

    rows = _read(tmp_path / "02-01-2024_03-04.csv")
    assert rows[0] == HEADER
    assert [r[2] for r in rows[1:]] == ["three", "two"]
    assert all(len(r) == 4 for r in rows)


def test_failure_mid_page_drops_the_partial_page(tmp_path):
    class FailingRecordIndex(MemoryIndex):
        def record_by_id(self, record_id):
            if record_id == "id1":
                raise OSError("corrupt record")
            return super().record_by_id(record_id)

    index = FailingRecordIndex(
        [
            text_row("id1", "a", 1),
            text_row("id2", "b", 2),
            text_row("id3", "c", 3),
            text_row("id4", "d", 4),
        ]
    )
    with pytest.raises(IndexReadError):
        _export(index, tmp_path, page_size=2)

    rows = _read(tmp_path / "02-01-2024_03-04.csv")
    # page [id4, id3] was flushed; "b" from the failed page never reached disk
    assert [r[2] for r in rows[1:]] == ["d", "c"]


def test_newest_duplicate_wins_across_pages(tmp_path):
    index = MemoryIndex(
        [
            text_row("old", "gm", 1_600_000_000),
            text_row("mid", "gn", 1_650_000_000),
            text_row("new", "gm", 1_700_000_000),
        ]
    )
    summary = _export(index, tmp_path, page_size=1)

    rows = _read(summary.path)[1:]
    emitted = [(r[2], r[3].rsplit("/", 1)[1]) for r in rows]
    assert emitted == [("gm", "new"), ("gn", "mid")]
    assert summary.pages == 3
    assert summary.duplicates == 1


def test_only_text_records_are_exported(tmp_path):
    index = MemoryIndex(
        [
            ("png", Record(Media.IMAGE, b"\x89PNG\r\n"), RecordEntry(1)),
            ("svg", Record(Media.IFRAME, b"<svg/>"), RecordEntry(2)),
            ("empty", Record(Media.TEXT, b""), RecordEntry(3)),
            ("nobody", Record(Media.TEXT, None), RecordEntry(4)),
            text_row("txt", "plain text", 5),
        ]
    )
    summary = _export(index, tmp_path)

    rows = _read(summary.path)[1:]
    assert [r[3] for r in rows] == ["https://ordinals.com/inscription/txt"]
    assert summary.skipped == 4


def test_missing_record_or_entry_is_skipped_but_scanned(tmp_path):
    index = MemoryIndex(
        [
            ("no-entry", Record(Media.TEXT, b"orphan"), None),
            ("no-record", None, RecordEntry(10)),
            text_row("ok", "kept", 20),
        ]
    )
    summary = _export(index, tmp_path)

    assert [r[2] for r in _read(summary.path)[1:]] == ["kept"]
    assert summary.scanned == 3
    assert summary.skipped == 2


def test_hash_is_over_raw_bytes_not_decoded_text(tmp_path):
    raw = b"bad \xff byte"
    index = MemoryIndex([("id0", Record(Media.TEXT, raw), RecordEntry(1))])
    summary = _export(index, tmp_path)

    row = _read(summary.path)[1]
    assert row[0] == sha3_256_hex(raw)
    assert row[0] != sha3_256_hex(row[2].encode("utf-8"))
    assert row[2] == raw.decode("utf-8", errors="replace")


def test_distinct_bodies_decoding_to_same_text_are_deduplicated(tmp_path):
    # both decode to "x\ufffd"
    index = MemoryIndex(
        [
            ("a", Record(Media.TEXT, b"x\xff"), RecordEntry(1)),
            ("b", Record(Media.TEXT, b"x\xfe"), RecordEntry(2)),
        ]
    )
    summary = _export(index, tmp_path)

    rows = _read(summary.path)[1:]
    assert len(rows) == 1
    assert rows[0][0] == sha3_256_hex(b"x\xfe")


def test_skip_policy_excludes_malformed_text(tmp_path):
    index = MemoryIndex(
        [
            ("bad", Record(Media.TEXT, b"\xc3\x28"), RecordEntry(1)),
            text_row("good", "fine", 2),
        ]
    )
    summary = _export(index, tmp_path, decode_errors="skip")

    assert [r[2] for r in _read(summary.path)[1:]] == ["fine"]
    assert summary.skipped == 1


def test_strict_policy_aborts(tmp_path):
    index = MemoryIndex([("bad", Record(Media.TEXT, b"\xc3\x28"), RecordEntry(1))])
    with pytest.raises(TextDecodeError):
        _export(index, tmp_path, decode_errors="strict")


def test_output_independent_of_page_size(tmp_path):
    rows = [text_row(f"id{i}", f"text {i % 7}", 1000 + i) for i in range(30)]
    outputs = []
    for page_size in (1, 4, 1000):
        out_dir = tmp_path / f"p{page_size}"
        out_dir.mkdir()
        summary = _export(MemoryIndex(rows), out_dir, page_size=page_size)
        outputs.append(summary.path.read_text(encoding="utf-8"))

    assert outputs[0] == outputs[1] == outputs[2]
    assert len(_read(tmp_path / "p1" / "02-01-2024_03-04.csv")) == 1 + 7


def test_bloom_dedup_matches_exact_on_small_index(tmp_path, scenario_a_index):
    exact_dir = tmp_path / "exact"
    bloom_dir = tmp_path / "bloom"
    exact_dir.mkdir()
    bloom_dir.mkdir()

    exact = _export(scenario_a_index, exact_dir)
    bloom = _export(scenario_a_index, bloom_dir, dedup=BloomDeduplicator(capacity=100))

    assert exact.path.read_text() == bloom.path.read_text()


def test_carriage_return_in_text_stays_in_one_row(tmp_path):
    index = MemoryIndex([text_row("a", "line1\rline2", 1), text_row("b", "plain", 2)])
    summary = _export(index, tmp_path)

    rows = _read(summary.path)
    assert len(rows) == 3
    assert all(len(r) == 4 for r in rows)
    assert rows[2][2] == "line1\rline2"
    assert rows[2][3] == "https://ordinals.com/inscription/a"


def test_out_of_range_timestamp_is_an_index_error(tmp_path):
    index = MemoryIndex([text_row("far", "future", 10**12)])
    with pytest.raises(IndexReadError, match="out-of-range timestamp"):
        _export(index, tmp_path)

    assert _read(tmp_path / "02-01-2024_03-04.csv") == [HEADER]
