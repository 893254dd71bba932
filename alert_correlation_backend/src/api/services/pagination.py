from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, List, NamedTuple, Optional, Set

logger = logging.getLogger(__name__)


DEFAULT_MAX_PAGES = 50


class Page(NamedTuple):
    """One page of a cursor-paginated collection."""

    items: List[Any]
    next_cursor: Optional[str] = None


PageFetch = Callable[[Optional[str]], Awaitable[Optional[Page]]]


# PUBLIC_INTERFACE
async def collect_all(fetch_page: PageFetch, max_pages: int = DEFAULT_MAX_PAGES, label: str = "collection") -> List[Any]:
    """
    Follow cursors from an absent cursor until the collection is exhausted.

    Stops when fetch_page returns None (no result object: whatever was gathered so far
    is returned), when a page carries no next cursor, when a cursor repeats, or after
    max_pages pages. Items are concatenated in page-arrival order.
    """
    items: List[Any] = []
    seen: Set[str] = set()
    cursor: Optional[str] = None
    pages = 0

    while True:
        page = await fetch_page(cursor)
        if page is None:
            if pages:
                logger.warning("%s: page %s unavailable, returning %s items collected so far", label, pages + 1, len(items))
            else:
                logger.warning("%s: first page unavailable", label)
            return items

        pages += 1
        items.extend(page.items or [])

        cursor = page.next_cursor or None
        if cursor is None:
            return items
        if cursor in seen:
            logger.warning("%s: cursor repeated after %s pages, stopping with %s items", label, pages, len(items))
            return items
        if pages >= max(1, int(max_pages)):
            logger.warning("%s: page cap (%s) reached, results may be partial (%s items)", label, max_pages, len(items))
            return items
        seen.add(cursor)
