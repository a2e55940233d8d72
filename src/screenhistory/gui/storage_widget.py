# -*- coding: utf-8 -*-
"""Live storage usage widget."""

from __future__ import annotations

from PyQt6.QtWidgets import QLabel, QProgressBar, QVBoxLayout, QWidget

from screenhistory.models.storage_usage import StorageUsage, format_bytes


class StorageUsageWidget(QWidget):
    """Display used disk space against the storage budget."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.title_label = QLabel("Storage")
        self.title_label.setObjectName("sectionTitle")
        self.items_label = QLabel("Screenshots: 0")
        self.items_label.setObjectName("mutedText")
        self.usage_label = QLabel("Used: -")
        self.usage_label.setObjectName("mutedText")
        self.usage_bar = QProgressBar()
        self.usage_bar.setRange(0, 100)
        self.usage_bar.setValue(0)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(6)
        layout.addWidget(self.title_label)
        layout.addWidget(self.items_label)
        layout.addWidget(self.usage_label)
        layout.addWidget(self.usage_bar)

    def set_usage(self, usage: StorageUsage) -> None:
        self.items_label.setText(f"Screenshots: {usage.item_count}")
        self.usage_label.setText(
            f"Used: {format_bytes(usage.used_bytes)} / {format_bytes(usage.budget_bytes)}"
        )
        self.usage_bar.setValue(usage.percent_used)
