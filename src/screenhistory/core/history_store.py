# -*- coding: utf-8 -*-
"""Screenshot history store: save, list, delete and usage over one root."""

from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from screenhistory.constants import INDEX_FILE, STORAGE_BUDGET_BYTES
from screenhistory.errors import NotFoundError, SerializationError, StorageIOError, ValidationError
from screenhistory.models.screenshot_item import ScreenshotItem, format_created_at
from screenhistory.models.storage_usage import StorageUsage
from screenhistory.storage.blob_store import BlobStore
from screenhistory.storage.budget import BudgetEnforcer, remove_item
from screenhistory.storage.catalog import Catalog
from screenhistory.storage.query import query_items
from screenhistory.storage.size_accountant import dir_size, is_item_dir, total_usage
from screenhistory.utils.file_utils import read_json_value, write_json_file

logger = logging.getLogger(__name__)


Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def count_annotations(annotations_json: str) -> int:
    """Parse the annotation document and return its top-level array length.

    Malformed JSON is rejected; a well-formed non-array document counts as 0.
    """
    try:
        document = json.loads(annotations_json)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Annotation document is not valid JSON: {exc}") from exc
    if isinstance(document, list):
        return len(document)
    return 0


class HistoryStore:
    """Handle owning the blob directories and the catalog under `root`."""

    def __init__(
        self,
        root: str | Path,
        *,
        budget_bytes: int = STORAGE_BUDGET_BYTES,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
    ) -> None:
        self.root = Path(root)
        self.budget_bytes = int(budget_bytes)
        self.blob_store = BlobStore(self.root)
        self.catalog = Catalog(self.root / INDEX_FILE)
        self.enforcer = BudgetEnforcer(self.blob_store, self.catalog, self.budget_bytes)
        self._clock = clock or _utc_now
        self._id_factory = id_factory or _new_id
        # Guards commit + upsert + eviction and the set of saves in flight.
        self._commit_lock = threading.Lock()
        self._in_flight: set[str] = set()

    @classmethod
    def open(cls, root: str | Path, **kwargs: Any) -> HistoryStore:
        """Create the root if needed and repair leftovers of earlier crashes.

        Existing folders under `root` that are not items are left untouched.
        """
        root_path = Path(root)
        try:
            root_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageIOError(f"Failed to create history directory {root_path}: {exc}") from exc
        store = cls(root_path, **kwargs)
        store.reconcile()
        return store

    def save(
        self,
        original_path: str | Path,
        annotated_path: str | Path | None,
        thumbnail_path: str | Path,
        annotations_json: str,
        ticket_id: str | None = None,
    ) -> str:
        """Persist one screenshot and return its new id."""
        annotation_count = count_annotations(annotations_json)
        item_id = self._id_factory()
        with self._commit_lock:
            self._in_flight.add(item_id)
        try:
            return self._save(
                item_id, original_path, annotated_path, thumbnail_path, annotations_json, ticket_id, annotation_count
            )
        finally:
            with self._commit_lock:
                self._in_flight.discard(item_id)

    def _save(
        self,
        item_id: str,
        original_path: str | Path,
        annotated_path: str | Path | None,
        thumbnail_path: str | Path,
        annotations_json: str,
        ticket_id: str | None,
        annotation_count: int,
    ) -> str:
        directory = self.blob_store.create(item_id)
        try:
            stored_original = self.blob_store.store(directory, "original", original_path)
            stored_annotated = None
            if annotated_path is not None:
                stored_annotated = self.blob_store.store(directory, "annotated", annotated_path)
            stored_thumbnail = self.blob_store.store(directory, "thumbnail", thumbnail_path)
            self.blob_store.store(directory, "annotations", annotations_json.encode("utf-8"))

            item = ScreenshotItem(
                id=item_id,
                original_path=str(stored_original),
                annotated_path=str(stored_annotated) if stored_annotated is not None else None,
                thumbnail_path=str(stored_thumbnail),
                created_at=format_created_at(self._clock()),
                ticket_id=ticket_id,
                uploaded_url=None,
                size_bytes=dir_size(directory.staging_path),
                annotation_count=annotation_count,
            )
            meta = json.dumps(item.to_dict(), indent=2, ensure_ascii=True) + "\n"
            self.blob_store.store(directory, "meta", meta.encode("utf-8"))
        except BaseException:
            self.blob_store.discard(directory)
            raise

        with self._commit_lock:
            try:
                self.blob_store.commit(directory)
                self.catalog.upsert(item)
            except BaseException:
                self.blob_store.discard(directory)
                raise
            logger.info("Saved screenshot %s (%d bytes, ticket=%s)", item_id, item.size_bytes, ticket_id or "-")
            evicted = self.enforcer.enforce()
        if evicted:
            logger.info("Evicted %d item(s) to stay within budget", len(evicted))
        return item_id

    def list(self, search: str | None = None, limit: int | None = None) -> list[ScreenshotItem]:
        return query_items(self.catalog.load(), search=search, limit=limit)

    def get(self, item_id: str) -> ScreenshotItem | None:
        return self.catalog.get(item_id)

    def delete(self, item_id: str) -> None:
        """Remove an item; unknown ids are a no-op."""
        if remove_item(self.blob_store, self.catalog, item_id):
            logger.info("Deleted screenshot %s", item_id)
        else:
            logger.debug("Delete of unknown item %s ignored", item_id)

    def usage(self) -> StorageUsage:
        used_bytes, item_count = total_usage(self.root)
        return StorageUsage(used_bytes=used_bytes, budget_bytes=self.budget_bytes, item_count=item_count)

    def set_uploaded_url(self, item_id: str, url: str) -> ScreenshotItem:
        """Record where an item was uploaded; the item must exist.

        The catalog entry and `meta.json` change under the catalog lock, which
        `delete` and eviction hold too, so a removed item is never recreated.
        """
        with self.catalog.lock:
            item = self.catalog.update(item_id, uploaded_url=url)
            meta_path = self.blob_store.blob_path(item_id, "meta")
            if is_item_dir(meta_path.parent):
                try:
                    write_json_file(meta_path, item.to_dict(), create_parents=False)
                except OSError as exc:
                    raise StorageIOError(f"Failed to update metadata for {item_id}: {exc}") from exc
            else:
                logger.warning("Item %s has no directory; only its catalog entry was updated", item_id)
        logger.info("Recorded upload URL for %s", item_id)
        return item

    def reconcile(self) -> dict[str, list[str] | int]:
        """Bring catalog and directories back in line after a crash.

        Item directories missing from the catalog are registered again from
        their `meta.json`; those whose metadata cannot be used are reported
        and left in place. Catalog entries whose directory is gone are
        dropped and staging leftovers purged. Folders without item metadata
        are never touched.
        """
        with self._commit_lock, self.catalog.lock:
            in_flight = set(self._in_flight)
            purged = self.blob_store.purge_staging(keep=in_flight)
            on_disk = set(self.blob_store.item_ids())
            catalog_ids = {item.id for item in self.catalog.load()}

            recovered: list[ScreenshotItem] = []
            unreadable: list[str] = []
            for item_id in sorted(on_disk - catalog_ids):
                item = self._recover_item(item_id)
                if item is None:
                    unreadable.append(item_id)
                else:
                    recovered.append(item)
            if recovered:
                recovered.sort(key=lambda item: item.created_at)
                logger.warning("Registering %d item(s) missing from the catalog", len(recovered))
                self.catalog.mutate(lambda items: items + recovered)

            orphan_entries = sorted(catalog_ids - on_disk)
            if orphan_entries:
                missing = set(orphan_entries)
                logger.warning("Dropping %d catalog entr(ies) without directory", len(missing))
                self.catalog.mutate(lambda items: [item for item in items if item.id not in missing])

        return {
            "recovered": [item.id for item in recovered],
            "unreadable_dirs": unreadable,
            "orphan_entries": orphan_entries,
            "staging_purged": purged,
        }

    def _recover_item(self, item_id: str) -> ScreenshotItem | None:
        meta_path = self.blob_store.blob_path(item_id, "meta")
        try:
            item = ScreenshotItem.from_dict(read_json_value(meta_path))
        except (OSError, ValueError, SerializationError) as exc:
            logger.warning("Leaving %s in place: unreadable metadata (%s)", item_id, exc)
            return None
        if item.id != item_id:
            logger.warning("Leaving %s in place: its metadata names item %s", item_id, item.id)
            return None
        # Blob paths follow the directory in case the root was moved.
        item.original_path = str(self.blob_store.blob_path(item_id, "original"))
        item.thumbnail_path = str(self.blob_store.blob_path(item_id, "thumbnail"))
        if item.annotated_path is not None:
            item.annotated_path = str(self.blob_store.blob_path(item_id, "annotated"))
        logger.info("Recovered item %s from its metadata", item_id)
        return item


def require_item(store: HistoryStore, item_id: str) -> ScreenshotItem:
    item = store.get(item_id)
    if item is None:
        raise NotFoundError(f"Unknown item id: {item_id}")
    return item
