# -*- coding: utf-8 -*-
"""Gallery of stored screenshots with search, delete and storage usage."""

from __future__ import annotations

import logging
from typing import Any, Callable

from PyQt6.QtCore import QSize, Qt, QThread, QTimer, pyqtSignal
from PyQt6.QtGui import QIcon, QPixmap
from PyQt6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListView,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from screenhistory.constants import DEFAULT_LIST_LIMIT
from screenhistory.core.history_store import HistoryStore
from screenhistory.gui.storage_widget import StorageUsageWidget
from screenhistory.gui.workers import HistoryTaskWorker
from screenhistory.models.screenshot_item import ScreenshotItem
from screenhistory.models.storage_usage import StorageUsage

logger = logging.getLogger(__name__)

SEARCH_DEBOUNCE_MS = 250


class HistoryGalleryWidget(QWidget):
    """Thumbnail list of stored screenshots, newest first.

    Store calls run on a QThread so large directories never block the window.
    """

    item_activated = pyqtSignal(str)
    status_message = pyqtSignal(str)

    def __init__(
        self,
        store: HistoryStore,
        limit: int = DEFAULT_LIST_LIMIT,
        thumbnail_size: int = 160,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.store = store
        self.limit = int(limit)
        self._tasks: list[tuple[QThread, HistoryTaskWorker]] = []

        self.title_label = QLabel("History")
        self.title_label.setObjectName("sectionTitle")
        self.search_edit = QLineEdit()
        self.search_edit.setPlaceholderText("Search ticket or date...")
        self.search_edit.setClearButtonEnabled(True)
        self.refresh_button = QPushButton("Refresh")
        self.delete_button = QPushButton("Delete")
        self.delete_button.setEnabled(False)

        self.list_widget = QListWidget()
        self.list_widget.setViewMode(QListView.ViewMode.IconMode)
        self.list_widget.setResizeMode(QListView.ResizeMode.Adjust)
        self.list_widget.setIconSize(QSize(thumbnail_size, thumbnail_size))
        self.list_widget.setSpacing(8)
        self.list_widget.setUniformItemSizes(True)

        self.empty_label = QLabel("No screenshots stored")
        self.empty_label.setObjectName("mutedText")
        self.storage_widget = StorageUsageWidget()

        self._search_timer = QTimer(self)
        self._search_timer.setSingleShot(True)
        self._search_timer.setInterval(SEARCH_DEBOUNCE_MS)

        toolbar = QHBoxLayout()
        toolbar.setSpacing(6)
        toolbar.addWidget(self.search_edit, 1)
        toolbar.addWidget(self.refresh_button)
        toolbar.addWidget(self.delete_button)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 8)
        layout.setSpacing(8)
        layout.addWidget(self.title_label)
        layout.addLayout(toolbar)
        layout.addWidget(self.list_widget, 1)
        layout.addWidget(self.empty_label)
        layout.addWidget(self.storage_widget)

        self.search_edit.textChanged.connect(lambda _text: self._search_timer.start())
        self.search_edit.returnPressed.connect(self.refresh)
        self._search_timer.timeout.connect(self.refresh)
        self.refresh_button.clicked.connect(self.refresh)
        self.delete_button.clicked.connect(self.delete_selected)
        self.list_widget.itemSelectionChanged.connect(self._on_selection_changed)
        self.list_widget.itemDoubleClicked.connect(self._on_item_double_clicked)

    def search_text(self) -> str:
        return self.search_edit.text().strip()

    def selected_item_id(self) -> str | None:
        current = self.list_widget.currentItem()
        if current is None or not current.isSelected():
            return None
        value = current.data(Qt.ItemDataRole.UserRole)
        return str(value) if value else None

    def refresh(self) -> None:
        """Reload items and usage in the background."""
        search = self.search_text() or None
        limit = self.limit
        store = self.store
        self._run_task(
            "refresh",
            lambda: (store.list(search=search, limit=limit), store.usage()),
            self._on_refreshed,
        )

    def delete_selected(self) -> None:
        item_id = self.selected_item_id()
        if item_id is None:
            return
        store = self.store
        self.delete_button.setEnabled(False)

        def _delete() -> str:
            store.delete(item_id)
            return item_id

        self._run_task("delete", _delete, self._on_deleted)

    def show_results(self, items: list[ScreenshotItem], usage: StorageUsage | None = None) -> None:
        """Replace the gallery contents; items are shown in the given order."""
        self.list_widget.clear()
        for item in items:
            entry = QListWidgetItem(self._icon_for(item), self._label_for(item))
            entry.setData(Qt.ItemDataRole.UserRole, item.id)
            entry.setToolTip(item.annotated_path or item.original_path)
            self.list_widget.addItem(entry)
        self.empty_label.setVisible(not items)
        self.delete_button.setEnabled(False)
        if usage is not None:
            self.storage_widget.set_usage(usage)

    def has_pending_tasks(self) -> bool:
        return bool(self._tasks)

    def wait_for_tasks(self, timeout_ms: int = 5000) -> None:
        for thread, _ in list(self._tasks):
            thread.quit()
            thread.wait(timeout_ms)

    def _label_for(self, item: ScreenshotItem) -> str:
        stamp = item.created_at[:19].replace("T", " ")
        if item.ticket_id:
            return f"{item.ticket_id}\n{stamp}"
        return stamp

    def _icon_for(self, item: ScreenshotItem) -> QIcon:
        pixmap = QPixmap(item.thumbnail_path)
        if pixmap.isNull():
            logger.debug("No thumbnail for %s at %s", item.id, item.thumbnail_path)
            return QIcon()
        return QIcon(pixmap)

    def _run_task(self, name: str, func: Callable[[], Any], on_done: Callable[[Any], None]) -> None:
        thread = QThread(self)
        worker = HistoryTaskWorker(name, func)
        worker.moveToThread(thread)
        thread.started.connect(worker.run)

        worker.finished.connect(on_done)
        worker.error.connect(self._on_task_error)

        worker.finished.connect(thread.quit)
        worker.error.connect(thread.quit)
        thread.finished.connect(self._prune_tasks)
        thread.finished.connect(worker.deleteLater)
        self._tasks.append((thread, worker))
        thread.start()

    def _prune_tasks(self) -> None:
        running = []
        for thread, worker in self._tasks:
            if thread.isFinished():
                thread.deleteLater()
            else:
                running.append((thread, worker))
        self._tasks = running

    def _on_refreshed(self, payload: Any) -> None:
        items, usage = payload
        self.show_results(items, usage)
        self.status_message.emit(f"{len(items)} screenshot(s) shown")

    def _on_deleted(self, item_id: Any) -> None:
        logger.info("Deleted screenshot %s from gallery", item_id)
        self.status_message.emit(f"Deleted {item_id}")
        self.refresh()

    def _on_task_error(self, message: str) -> None:
        self.status_message.emit(f"History error: {message}")
        self.delete_button.setEnabled(self.selected_item_id() is not None)

    def _on_selection_changed(self) -> None:
        self.delete_button.setEnabled(self.selected_item_id() is not None)

    def _on_item_double_clicked(self, entry: QListWidgetItem) -> None:
        value = entry.data(Qt.ItemDataRole.UserRole)
        if value:
            self.item_activated.emit(str(value))
