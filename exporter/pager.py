from __future__ import annotations

from typing import Iterator

from common.logger import get_logger
from exporter.errors import CursorOrderError, IndexReadError
from indexstore.base import ContentIndex
from indexstore.models import Cursor, Page

log = get_logger(__name__)


def fetch_page(index: ContentIndex, page_size: int, cursor: Cursor = None) -> Page:
    """Read one page; any index failure becomes a fatal IndexReadError."""
    try:
        return index.latest_page(page_size, cursor)
    except Exception as e:
        raise IndexReadError(f"Failed to read page at cursor {cursor}: {e}") from e


def iter_pages(
    index: ContentIndex, page_size: int, cursor: Cursor = None
) -> Iterator[Page]:
    """
    Walk the index from newest to oldest, yielding every page including the
    last one. Stops once a page reports no older cursor.
    """
    if page_size < 1:
        raise ValueError(f"page_size must be positive, got {page_size}")

    previous: Cursor = cursor
    while True:
        page = fetch_page(index, page_size, previous)
        yield page

        older = page.older_cursor
        if older is None:
            return
        if previous is not None and older >= previous:
            raise CursorOrderError(
                f"Index cursor did not move backward: {previous} -> {older}"
            )
        log.debug("Next page at cursor %s", older)
        previous = older
