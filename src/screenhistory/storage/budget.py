# -*- coding: utf-8 -*-
"""Oldest-first eviction once the store grows past its byte budget."""

from __future__ import annotations

import logging

from screenhistory.constants import STORAGE_BUDGET_BYTES
from screenhistory.errors import StorageIOError, ValidationError
from screenhistory.storage.blob_store import BlobStore
from screenhistory.storage.catalog import Catalog
from screenhistory.storage.size_accountant import dir_size, is_item_dir, total_usage

logger = logging.getLogger(__name__)


def remove_item(blob_store: BlobStore, catalog: Catalog, item_id: str) -> bool:
    """Remove an item's directory, then its catalog entry.

    Both steps run under the catalog lock, so no other catalog writer sees
    the item half removed. The entry is only dropped after the directory is
    gone. Returns True when anything was removed.
    """
    with catalog.lock:
        removed_dir = blob_store.remove(item_id)
        removed_entry = catalog.remove_by_id(item_id)
    return removed_dir or removed_entry


class BudgetEnforcer:
    """Evict items by ascending `created_at` until usage fits the budget."""

    def __init__(self, blob_store: BlobStore, catalog: Catalog, budget_bytes: int = STORAGE_BUDGET_BYTES) -> None:
        self.blob_store = blob_store
        self.catalog = catalog
        self.budget_bytes = int(budget_bytes)

    def enforce(self) -> list[str]:
        """Return the ids evicted, oldest first."""
        used_bytes, _ = total_usage(self.blob_store.root)
        if used_bytes <= self.budget_bytes:
            return []

        logger.info("Storage over budget: %d > %d bytes", used_bytes, self.budget_bytes)
        # sorted() is stable, so equal timestamps keep catalog order.
        items = sorted(self.catalog.load(), key=lambda item: item.created_at)
        current = used_bytes
        evicted: list[str] = []

        for item in items:
            if current <= self.budget_bytes:
                break
            with self.catalog.lock:
                try:
                    item_dir = self.blob_store.item_dir(item.id)
                    if not is_item_dir(item_dir):
                        logger.warning("Dropping catalog entry without directory: %s", item.id)
                        self.catalog.remove_by_id(item.id)
                        continue
                    size = dir_size(item_dir)
                    removed = self.blob_store.remove(item.id)
                except (StorageIOError, ValidationError):
                    logger.exception("Failed to evict item %s; continuing with the next one", item.id)
                    continue
                if removed:
                    current = max(0, current - size)
                try:
                    self.catalog.remove_by_id(item.id)
                except StorageIOError:
                    logger.exception("Evicted %s but could not drop its catalog entry", item.id)
            if removed:
                evicted.append(item.id)
                logger.info("Evicted %s (%d bytes), %d bytes remain", item.id, size, current)

        if current > self.budget_bytes:
            logger.warning("Storage still over budget after eviction: %d bytes", current)
        return evicted
