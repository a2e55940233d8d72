# -*- coding: utf-8 -*-
"""Image helper functions."""

from __future__ import annotations

from pathlib import Path

from PIL import Image

from screenhistory.constants import DEFAULT_THUMBNAIL_SIZE


PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def is_png_bytes(data: bytes) -> bool:
    """Return True if bytes look like a PNG file."""
    return data.startswith(PNG_SIGNATURE)


def is_png_file(path: str | Path) -> bool:
    """Return True if the file starts with the PNG signature."""
    with Path(path).open("rb") as handle:
        return is_png_bytes(handle.read(len(PNG_SIGNATURE)))


def create_thumbnail(
    source: str | Path,
    target: str | Path,
    max_size: int = DEFAULT_THUMBNAIL_SIZE,
) -> Path:
    """Write a PNG thumbnail of `source` that fits into `max_size` x `max_size`."""
    target_path = Path(target)
    target_path.parent.mkdir(parents=True, exist_ok=True)
    with Image.open(source) as image:
        thumb = image.convert("RGBA") if image.mode not in {"RGB", "RGBA"} else image.copy()
        thumb.thumbnail((max_size, max_size))
        thumb.save(target_path, format="PNG")
    return target_path
