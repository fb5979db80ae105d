from __future__ import annotations

from enum import Enum
from typing import Optional

from tqdm import tqdm

from exporter.errors import EmptyIndexError, IndexReadError
from exporter.pager import fetch_page
from indexstore.base import ContentIndex, CountableIndex


class ProgressState(Enum):
    STARTING = "starting"
    PAGING = "paging"
    EXHAUSTED = "exhausted"


def estimate_total(index: ContentIndex) -> int:
    """
    Estimate how many records the index holds. Used only to size the progress
    bar; paging never depends on it.
    """
    if isinstance(index, CountableIndex):
        try:
            return max(0, int(index.record_count()))
        except Exception as e:
            raise IndexReadError(f"Failed to count index records: {e}") from e

    # Fallback: probe the newest record. Its older cursor is the sequence
    # number just below it, so newest sequence + 1 records exist.
    probe = fetch_page(index, 1, None)
    if not probe.ids:
        return 0
    if probe.older_cursor is None:
        return len(probe.ids)
    return probe.older_cursor + 2


class ProgressTracker:
    """
    STARTING -> PAGING -> EXHAUSTED. Counts scanned ids, not emitted rows.
    """

    def __init__(self, enabled: bool = True, desc: str = "[exporting]"):
        self.enabled = enabled
        self.desc = desc
        self.state = ProgressState.STARTING
        self.total = 0
        self.position = 0
        self._bar: Optional[tqdm] = None

    def start(self, index: ContentIndex) -> int:
        self._expect(ProgressState.STARTING)
        self.total = estimate_total(index)
        if self.total == 0:
            raise EmptyIndexError("No inscriptions found in the index.")
        self._bar = tqdm(
            total=self.total,
            desc=self.desc,
            unit="rec",
            leave=False,
            disable=not self.enabled,
        )
        self.state = ProgressState.PAGING
        return self.total

    def advance(self, scanned: int) -> None:
        self._expect(ProgressState.PAGING)
        self.position += scanned
        # index may have grown since the estimate
        if self.position > self.total:
            self.total = self.position
            self._bar.total = self.total
        self._bar.update(scanned)

    def finish(self) -> None:
        self._expect(ProgressState.PAGING)
        self.close()
        self.state = ProgressState.EXHAUSTED

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None

    def _expect(self, state: ProgressState) -> None:
        if self.state is not state:
            raise RuntimeError(
                f"Progress tracker is {self.state.value}, expected {state.value}"
            )
