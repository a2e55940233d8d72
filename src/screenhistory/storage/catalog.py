# -*- coding: utf-8 -*-
"""JSON-backed metadata catalog with serialized read-modify-write cycles."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Callable

from screenhistory.errors import NotFoundError, SerializationError, StorageIOError
from screenhistory.models.screenshot_item import ScreenshotItem
from screenhistory.utils.file_utils import read_json_value, write_json_file

logger = logging.getLogger(__name__)


_LOCKS: dict[Path, threading.RLock] = {}
_LOCKS_GUARD = threading.Lock()

UPDATABLE_FIELDS = frozenset({"uploaded_url"})


def _lock_for(path: Path) -> threading.RLock:
    key = path.resolve()
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = threading.RLock()
            _LOCKS[key] = lock
        return lock


class Catalog:
    """One metadata record per stored item, persisted as a single JSON array.

    Each mutation re-reads the document, changes it in memory and rewrites it
    while holding the lock shared by every handle on the same file.
    """

    def __init__(self, index_path: str | Path) -> None:
        self.index_path = Path(index_path)
        self.lock = _lock_for(self.index_path)

    def load(self) -> list[ScreenshotItem]:
        with self.lock:
            return self._read()

    def get(self, item_id: str) -> ScreenshotItem | None:
        for item in self.load():
            if item.id == item_id:
                return item
        return None

    def upsert(self, item: ScreenshotItem) -> None:
        def _apply(items: list[ScreenshotItem]) -> list[ScreenshotItem]:
            for index, existing in enumerate(items):
                if existing.id == item.id:
                    items[index] = item
                    return items
            items.append(item)
            return items

        self.mutate(_apply)

    def remove_by_id(self, item_id: str) -> bool:
        """Drop the record; returns False when it was not present."""
        removed = False

        def _apply(items: list[ScreenshotItem]) -> list[ScreenshotItem]:
            nonlocal removed
            kept = [item for item in items if item.id != item_id]
            removed = len(kept) != len(items)
            return kept

        self.mutate(_apply)
        return removed

    def update(self, item_id: str, **fields: Any) -> ScreenshotItem:
        """Set late-bound fields on an existing record."""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated after creation: {sorted(unknown)}")

        def _apply(items: list[ScreenshotItem]) -> list[ScreenshotItem]:
            for item in items:
                if item.id == item_id:
                    for name, value in fields.items():
                        setattr(item, name, value)
                    return items
            raise NotFoundError(f"Unknown item id: {item_id}")

        for item in self.mutate(_apply):
            if item.id == item_id:
                return item
        raise NotFoundError(f"Unknown item id: {item_id}")

    def mutate(self, change: Callable[[list[ScreenshotItem]], list[ScreenshotItem]]) -> list[ScreenshotItem]:
        """Run one locked load -> change -> persist cycle."""
        with self.lock:
            items = change(self._read())
            self._write(items)
            return items

    def _read(self) -> list[ScreenshotItem]:
        if not self.index_path.exists():
            return []
        try:
            data = read_json_value(self.index_path)
        except ValueError as exc:
            raise SerializationError(f"Catalog {self.index_path} is corrupt: {exc}") from exc
        except OSError as exc:
            raise StorageIOError(f"Failed to read catalog {self.index_path}: {exc}") from exc
        if not isinstance(data, list):
            raise SerializationError(f"Catalog {self.index_path} must contain a JSON array")
        return [ScreenshotItem.from_dict(entry) for entry in data]

    def _write(self, items: list[ScreenshotItem]) -> None:
        try:
            write_json_file(self.index_path, [item.to_dict() for item in items])
        except OSError as exc:
            raise StorageIOError(f"Failed to write catalog {self.index_path}: {exc}") from exc
        logger.debug("Catalog written with %d item(s)", len(items))
