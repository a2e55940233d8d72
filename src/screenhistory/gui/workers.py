# -*- coding: utf-8 -*-
"""Worker classes for running history store calls off the GUI thread."""

from __future__ import annotations

import logging
from typing import Any, Callable

from PyQt6.QtCore import QObject, pyqtSignal

logger = logging.getLogger(__name__)


class HistoryTaskWorker(QObject):
    """Run one history store call and report its result."""
    finished = pyqtSignal(object)
    error = pyqtSignal(str)

    def __init__(self, name: str, func: Callable[[], Any]) -> None:
        super().__init__()
        self.name = name
        self.func = func

    def run(self) -> None:
        try:
            logger.debug("HistoryTaskWorker: starting %s", self.name)
            result = self.func()
            self.finished.emit(result)
        except Exception as e:
            logger.exception("HistoryTaskWorker: %s failed", self.name)
            self.error.emit(str(e))
