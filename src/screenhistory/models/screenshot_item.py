# -*- coding: utf-8 -*-
"""Screenshot item data model."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any

from screenhistory.errors import SerializationError


CREATED_AT_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

_REQUIRED_STR = ("id", "original_path", "thumbnail_path", "created_at")
_OPTIONAL_STR = ("annotated_path", "ticket_id", "uploaded_url")
_REQUIRED_INT = ("size_bytes", "annotation_count")


def format_created_at(moment: datetime) -> str:
    """Return a fixed-width UTC timestamp that sorts lexically in time order."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime(CREATED_AT_FORMAT)


@dataclass
class ScreenshotItem:
    """Metadata and blob paths for one stored screenshot."""

    id: str
    original_path: str
    thumbnail_path: str
    created_at: str
    size_bytes: int
    annotation_count: int
    annotated_path: str | None = None
    ticket_id: str | None = None
    uploaded_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> ScreenshotItem:
        if not isinstance(data, dict):
            raise SerializationError(f"Expected metadata object, got {type(data).__name__}")
        for key in _REQUIRED_STR:
            if not isinstance(data.get(key), str):
                raise SerializationError(f"Metadata field '{key}' is missing or not a string")
        for key in _OPTIONAL_STR:
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise SerializationError(f"Metadata field '{key}' must be a string or null")
        for key in _REQUIRED_INT:
            value = data.get(key)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise SerializationError(f"Metadata field '{key}' must be a non-negative integer")

        return cls(
            id=data["id"],
            original_path=data["original_path"],
            thumbnail_path=data["thumbnail_path"],
            created_at=data["created_at"],
            size_bytes=data["size_bytes"],
            annotation_count=data["annotation_count"],
            annotated_path=data.get("annotated_path"),
            ticket_id=data.get("ticket_id"),
            uploaded_url=data.get("uploaded_url"),
        )
