# -*- coding: utf-8 -*-
"""Tests for the history gallery widgets."""

from __future__ import annotations

import time
from pathlib import Path

import pytest

pytest.importorskip("PyQt6")

from screenhistory.core.history_store import HistoryStore
from screenhistory.models.storage_usage import StorageUsage


def _wait_until_idle(qt_app, widget, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        qt_app.processEvents()
        if not widget.has_pending_tasks():
            qt_app.processEvents()
            return
        time.sleep(0.01)
    raise AssertionError("background task did not finish")


def test_storage_widget_shows_usage(qt_app) -> None:
    from screenhistory.gui.storage_widget import StorageUsageWidget

    widget = StorageUsageWidget()
    widget.set_usage(StorageUsage(used_bytes=250 * 1024 * 1024, budget_bytes=500 * 1024 * 1024, item_count=12))

    assert widget.usage_bar.value() == 50
    assert widget.items_label.text() == "Screenshots: 12"
    assert widget.usage_label.text() == "Used: 250.0 MiB / 500.0 MiB"


def test_gallery_shows_items_in_given_order(
    qt_app, store: HistoryStore, sample_screenshot: Path, sample_thumbnail: Path
) -> None:
    from PyQt6.QtCore import Qt

    from screenhistory.gui.history_widget import HistoryGalleryWidget

    for ticket in ("A-1", "B-2", "C-3"):
        store.save(sample_screenshot, None, sample_thumbnail, "[]", ticket)
    widget = HistoryGalleryWidget(store)

    widget.show_results(store.list(), store.usage())

    assert widget.list_widget.count() == 3
    first = widget.list_widget.item(0)
    assert first.text().startswith("C-3")
    assert first.data(Qt.ItemDataRole.UserRole) == store.list()[0].id
    assert widget.storage_widget.items_label.text() == "Screenshots: 3"
    assert widget.empty_label.isHidden()


def test_gallery_refresh_runs_in_background(
    qt_app, store: HistoryStore, sample_screenshot: Path, sample_thumbnail: Path
) -> None:
    from screenhistory.gui.history_widget import HistoryGalleryWidget

    store.save(sample_screenshot, None, sample_thumbnail, "[]", "PROJ-1")
    store.save(sample_screenshot, None, sample_thumbnail, "[]", "OTHER-2")
    widget = HistoryGalleryWidget(store)
    widget.search_edit.blockSignals(True)
    widget.search_edit.setText("proj")
    widget.search_edit.blockSignals(False)

    widget.refresh()
    _wait_until_idle(qt_app, widget)

    assert widget.list_widget.count() == 1
    assert widget.list_widget.item(0).text().startswith("PROJ-1")


def test_gallery_delete_selected(
    qt_app, store: HistoryStore, sample_screenshot: Path, sample_thumbnail: Path
) -> None:
    from screenhistory.gui.history_widget import HistoryGalleryWidget

    item_id = store.save(sample_screenshot, None, sample_thumbnail, "[]")
    widget = HistoryGalleryWidget(store)
    widget.show_results(store.list(), store.usage())
    assert widget.delete_button.isEnabled() is False

    widget.list_widget.setCurrentRow(0)
    assert widget.selected_item_id() == item_id
    assert widget.delete_button.isEnabled() is True

    widget.delete_selected()
    _wait_until_idle(qt_app, widget)
    # Deleting triggers a follow-up refresh.
    _wait_until_idle(qt_app, widget)

    assert store.get(item_id) is None
    assert widget.list_widget.count() == 0
    assert widget.storage_widget.items_label.text() == "Screenshots: 0"


def test_main_window_hosts_gallery(qt_app, store: HistoryStore, default_config: dict) -> None:
    from screenhistory.main import HistoryWindow

    default_config["gui"]["thumbnail_size"] = 96
    window = HistoryWindow(store, default_config)

    assert window.gallery.store is store
    assert window.gallery.list_widget.iconSize().width() == 96
    window.open_item("ghost")
    assert "no longer exists" in window.statusBar().currentMessage()


def test_task_worker_reports_result_and_error(qt_app) -> None:
    from screenhistory.errors import StorageIOError
    from screenhistory.gui.workers import HistoryTaskWorker

    results: list = []
    errors: list[str] = []

    ok = HistoryTaskWorker("ok", lambda: 42)
    ok.finished.connect(results.append)
    ok.run()

    def _boom():
        raise StorageIOError("root is read-only")

    failing = HistoryTaskWorker("boom", _boom)
    failing.error.connect(errors.append)
    failing.run()

    assert results == [42]
    assert errors == ["root is read-only"]
