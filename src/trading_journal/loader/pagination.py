"""Serial cursor pagination."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from trading_journal.core.errors import FetchError, PaginationError

logger = logging.getLogger(__name__)

PageFetcher = Callable[[str | None], Awaitable[Mapping[str, Any]]]


async def paginate(
    fetch_page: PageFetcher,
    *,
    on_progress: Callable[[int], None] | None = None,
    max_pages: int = 30,
    timeout: float | None = None,
) -> list[Any]:
    """Follow a cursor chain and collect every page's ``results``.

    Pages are fetched strictly one after another.  ``on_progress`` gets
    the running record count after each page.  Collection stops when a
    page has no ``next_cursor``, when a cursor repeats, or after
    ``max_pages`` pages.

    Raises
    ------
    FetchError
        If any page fails or exceeds ``timeout`` seconds.  Records
        gathered so far are discarded.
    """
    if max_pages < 1:
        raise PaginationError(f"max_pages must be >= 1, got {max_pages}")

    records: list[Any] = []
    seen: set[str] = set()
    cursor: str | None = None

    for page in range(1, max_pages + 1):
        try:
            data = await asyncio.wait_for(fetch_page(cursor), timeout)
        except asyncio.TimeoutError as exc:
            raise FetchError(f"Page {page} timed out after {timeout}s") from exc

        results = data.get("results") or []
        if not isinstance(results, list):
            raise PaginationError(f"Page {page} has non-list results")
        records.extend(results)
        if on_progress is not None:
            on_progress(len(records))

        cursor = data.get("next_cursor") or None
        if cursor is None:
            break
        if cursor in seen:
            logger.warning("Cursor %s repeated on page %d; stopping", cursor, page)
            break
        seen.add(cursor)
    else:
        if cursor is not None:
            logger.warning("Stopped after %d pages with cursor still open", max_pages)

    return records
