# -*- coding: utf-8 -*-
"""Filtered, sorted and limited views over catalog items."""

from __future__ import annotations

from collections.abc import Iterable

from screenhistory.constants import DEFAULT_LIST_LIMIT
from screenhistory.models.screenshot_item import ScreenshotItem


def matches_search(item: ScreenshotItem, search: str) -> bool:
    """Case-insensitive substring match on ticket id or created_at."""
    needle = search.lower()
    if item.ticket_id is not None and needle in item.ticket_id.lower():
        return True
    return needle in item.created_at.lower()


def query_items(
    items: Iterable[ScreenshotItem],
    search: str | None = None,
    limit: int | None = None,
) -> list[ScreenshotItem]:
    """Return matching items, newest first, truncated to `limit` after sorting."""
    if limit is None:
        limit = DEFAULT_LIST_LIMIT
    if search:
        results = [item for item in items if matches_search(item, search)]
    else:
        results = list(items)
    results.sort(key=lambda item: item.created_at, reverse=True)
    return results[: max(0, int(limit))]
