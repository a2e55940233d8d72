# -*- coding: utf-8 -*-
"""Per-item blob directories with staged, all-or-nothing writes."""

from __future__ import annotations

import logging
import os
import shutil
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from screenhistory.constants import BLOB_FILENAMES, STAGING_DIR
from screenhistory.errors import StorageIOError, ValidationError
from screenhistory.storage.size_accountant import is_item_dir, is_item_dir_name

logger = logging.getLogger(__name__)


BlobSource = str | Path | bytes


@dataclass
class ItemDirectory:
    """A staged item directory that becomes `final_path` on commit."""

    item_id: str
    staging_path: Path
    final_path: Path
    written: list[str] = field(default_factory=list)
    committed: bool = False


class BlobStore:
    """Persist the raw files of each item under `<root>/<id>/`.

    Files are written into `<root>/.staging/<id>/` and the whole directory is
    renamed into place by `commit`, so a failed save leaves no item directory.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.staging_root = self.root / STAGING_DIR

    def item_dir(self, item_id: str) -> Path:
        _check_item_id(item_id)
        return self.root / item_id

    def blob_path(self, item_id: str, role: str) -> Path:
        """Return the committed location of one blob."""
        return self.item_dir(item_id) / _filename_for(role)

    def create(self, item_id: str) -> ItemDirectory:
        final_path = self.item_dir(item_id)
        staging_path = self.staging_root / item_id
        try:
            self.staging_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageIOError(f"Storage root is not accessible: {self.root}: {exc}") from exc
        if final_path.exists():
            raise StorageIOError(f"Item directory already exists: {final_path}")
        try:
            staging_path.mkdir(exist_ok=False)
        except FileExistsError as exc:
            raise StorageIOError(f"Staging directory already exists: {staging_path}") from exc
        except OSError as exc:
            raise StorageIOError(f"Failed to create item directory {staging_path}: {exc}") from exc
        logger.debug("Created staging directory for %s", item_id)
        return ItemDirectory(item_id=item_id, staging_path=staging_path, final_path=final_path)

    def store(self, directory: ItemDirectory, role: str, source: BlobSource) -> Path:
        """Write one blob; paths are copied, bytes are written verbatim."""
        if directory.committed:
            raise StorageIOError(f"Item {directory.item_id} is already committed")
        filename = _filename_for(role)
        target = directory.staging_path / filename
        try:
            if isinstance(source, bytes):
                target.write_bytes(source)
            else:
                shutil.copyfile(Path(source), target)
        except OSError as exc:
            raise StorageIOError(f"Failed to store {role} for {directory.item_id}: {exc}") from exc
        directory.written.append(filename)
        return directory.final_path / filename

    def commit(self, directory: ItemDirectory) -> Path:
        try:
            os.rename(directory.staging_path, directory.final_path)
        except OSError as exc:
            raise StorageIOError(f"Failed to commit item {directory.item_id}: {exc}") from exc
        directory.committed = True
        logger.debug("Committed item directory %s", directory.final_path)
        return directory.final_path

    def discard(self, directory: ItemDirectory) -> None:
        """Drop everything written for an item whose save failed.

        Runs on error paths, so failures are logged instead of raised to keep
        the original error visible. Leftovers are cleared by `purge_staging`.
        """
        path = directory.final_path if directory.committed else directory.staging_path
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            return
        except OSError:
            logger.exception("Failed to discard partial item %s", directory.item_id)
            return
        logger.info("Discarded partial item %s (%d file(s))", directory.item_id, len(directory.written))

    def remove(self, item_id: str) -> bool:
        """Delete an item directory. Returns False when there is no such item.

        Directories without item metadata are never touched.

        The directory is first renamed into the staging area so it disappears
        from the store in one step; the recursive delete happens afterwards.
        """
        target = self.item_dir(item_id)
        if not is_item_dir(target):
            return False
        trash = self.staging_root / f"{item_id}.trash-{uuid.uuid4().hex[:8]}"
        try:
            self.staging_root.mkdir(parents=True, exist_ok=True)
            os.rename(target, trash)
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageIOError(f"Failed to delete item directory {target}: {exc}") from exc
        try:
            shutil.rmtree(trash)
        except OSError:
            logger.warning("Removed %s but could not clear %s; will retry on next purge", item_id, trash)
        return True

    def item_ids(self) -> list[str]:
        """Ids of committed item directories on disk."""
        if not self.root.is_dir():
            return []
        try:
            return sorted(p.name for p in self.root.iterdir() if is_item_dir(p))
        except OSError as exc:
            raise StorageIOError(f"Failed to list storage root {self.root}: {exc}") from exc

    def purge_staging(self, keep: set[str] | frozenset[str] = frozenset()) -> int:
        """Remove leftovers of interrupted saves and deletes.

        Entries named in `keep` belong to saves still in progress.
        """
        if not self.staging_root.is_dir():
            return 0
        purged = 0
        for leftover in list(self.staging_root.iterdir()):
            if leftover.name in keep:
                continue
            try:
                if leftover.is_dir():
                    shutil.rmtree(leftover)
                else:
                    leftover.unlink()
            except OSError:
                logger.exception("Failed to purge staging leftover %s", leftover)
                continue
            purged += 1
        if purged:
            logger.info("Purged %d staging leftover(s)", purged)
        return purged


def _filename_for(role: str) -> str:
    try:
        return BLOB_FILENAMES[role]
    except KeyError:
        raise ValueError(f"Unknown blob role: {role!r}") from None


def _check_item_id(item_id: str) -> None:
    if (
        not item_id
        or not is_item_dir_name(item_id)
        or "/" in item_id
        or "\\" in item_id
        or item_id in {".", ".."}
    ):
        raise ValidationError(f"Invalid item id: {item_id!r}")
