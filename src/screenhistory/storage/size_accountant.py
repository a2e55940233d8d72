# -*- coding: utf-8 -*-
"""Live byte accounting for item directories and the whole store."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from screenhistory.constants import BLOB_FILENAMES
from screenhistory.errors import StorageIOError

logger = logging.getLogger(__name__)


def is_item_dir_name(name: str) -> bool:
    """Hidden entries (staging area, temp files) are never items."""
    return not name.startswith(".")


def is_item_dir(path: str | Path) -> bool:
    """An item directory is a visible directory holding its metadata file.

    Anything else under the root belongs to someone else and is left alone.
    """
    candidate = Path(path)
    return (
        is_item_dir_name(candidate.name)
        and candidate.is_dir()
        and (candidate / BLOB_FILENAMES["meta"]).is_file()
    )


def dir_size(path: str | Path) -> int:
    """Sum the sizes of all files below `path`.

    Walks with an explicit work-list. Symlinked directories are not descended
    into, matching `os.walk`; symlinked files count with their target size.
    """
    root = Path(path)
    if not root.is_dir():
        return 0

    total = 0
    pending: list[Path] = [root]
    while pending:
        current = pending.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    if entry.is_dir(follow_symlinks=False):
                        pending.append(Path(entry.path))
                    elif entry.is_file():
                        total += entry.stat().st_size
        except FileNotFoundError:
            # Removed while walking (concurrent delete); counts as empty.
            logger.debug("Path vanished during size walk: %s", current)
        except OSError as exc:
            raise StorageIOError(f"Failed to measure {current}: {exc}") from exc
    return total


def total_usage(storage_root: str | Path) -> tuple[int, int]:
    """Return (used_bytes, item_count) recomputed from disk."""
    root = Path(storage_root)
    if not root.is_dir():
        return 0, 0

    used_bytes = 0
    item_count = 0
    try:
        children = sorted(root.iterdir())
    except OSError as exc:
        raise StorageIOError(f"Failed to list storage root {root}: {exc}") from exc
    for child in children:
        if not is_item_dir(child):
            continue
        used_bytes += dir_size(child)
        item_count += 1
    return used_bytes, item_count
