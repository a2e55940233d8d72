# -*- coding: utf-8 -*-
"""Storage usage data model."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass
class StorageUsage:
    """Live disk usage of the history store."""

    used_bytes: int
    budget_bytes: int
    item_count: int

    @property
    def over_budget(self) -> bool:
        return self.used_bytes > self.budget_bytes

    @property
    def percent_used(self) -> int:
        if self.budget_bytes <= 0:
            return 0
        return max(0, min(100, int((self.used_bytes / self.budget_bytes) * 100)))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def format_bytes(value: int) -> str:
    """Human-readable size using binary units."""
    size = float(max(0, int(value)))
    for unit in ("B", "KiB", "MiB"):
        if size < 1024:
            return f"{int(size)} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GiB"
