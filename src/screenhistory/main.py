# -*- coding: utf-8 -*-
"""Application entry point."""

from __future__ import annotations

import logging
import sys
import traceback

from PyQt6.QtCore import QUrl
from PyQt6.QtGui import QDesktopServices
from PyQt6.QtWidgets import QApplication, QMainWindow, QMessageBox

from screenhistory.config import ConfigError, load_config, resolve_storage_root
from screenhistory.constants import APP_NAME, APP_VERSION
from screenhistory.core.history_store import HistoryStore
from screenhistory.errors import HistoryError
from screenhistory.gui.history_widget import HistoryGalleryWidget
from screenhistory.utils.logger import log_dir_for, setup_session_logging


def global_exception_handler(exc_type, exc_value, exc_traceback):
    """Log uncaught errors before the default hook prints them."""
    error_msg = "".join(traceback.format_exception(exc_type, exc_value, exc_traceback))
    logging.getLogger().critical("FATAL CRASH:\n%s", error_msg)
    if QApplication.instance() is not None:
        QMessageBox.critical(None, "Application Crash", f"A fatal error occurred:\n{exc_value}")
    sys.__excepthook__(exc_type, exc_value, exc_traceback)


class HistoryWindow(QMainWindow):
    """Main window hosting the screenshot gallery."""

    def __init__(self, store: HistoryStore, settings: dict) -> None:
        super().__init__()
        self.store = store
        self.setWindowTitle(f"Screenshot History {APP_VERSION}")
        self.resize(960, 720)
        thumbnail_size = int(settings.get("gui", {}).get("thumbnail_size", 160))
        self.gallery = HistoryGalleryWidget(
            store,
            limit=int(settings.get("history", {}).get("default_limit", 20)),
            thumbnail_size=min(thumbnail_size, 240),
        )
        self.gallery.status_message.connect(lambda text: self.statusBar().showMessage(text, 5000))
        self.setCentralWidget(self.gallery)
        self.gallery.item_activated.connect(self.open_item)

    def open_item(self, item_id: str) -> None:
        """Open the annotated image (or the original) in the system viewer."""
        item = self.store.get(item_id)
        if item is None:
            self.statusBar().showMessage(f"Screenshot {item_id} no longer exists", 5000)
            return
        QDesktopServices.openUrl(QUrl.fromLocalFile(item.annotated_path or item.original_path))


def main() -> int:
    """Start the GUI application."""
    sys.excepthook = global_exception_handler
    app = QApplication(sys.argv)
    try:
        settings = load_config(sys.argv[1] if len(sys.argv) > 1 else None)
    except (ConfigError, ValueError, OSError) as exc:
        QMessageBox.critical(None, "Invalid settings", str(exc))
        return 1

    root = resolve_storage_root(settings)
    level = str(settings.get("logging", {}).get("level", "INFO"))
    session_log_path = setup_session_logging(log_dir_for(root), APP_NAME, level=level)
    logger = logging.getLogger(__name__)
    if session_log_path is not None:
        logger.info("Session log file: %s", session_log_path)

    try:
        store = HistoryStore.open(root)
    except HistoryError as exc:
        logger.exception("Failed to open history store at %s", root)
        QMessageBox.critical(None, "Storage error", f"Cannot open {root}:\n{exc}")
        return 1
    logger.info("History store opened at %s", root)

    window = HistoryWindow(store, settings)
    app.aboutToQuit.connect(window.gallery.wait_for_tasks)
    window.show()
    window.gallery.refresh()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
