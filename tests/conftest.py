# -*- coding: utf-8 -*-
"""Shared pytest fixtures for the history store."""

from __future__ import annotations

import base64
import itertools
import json
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest


SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


PNG_1X1_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mP8/x8AAwMCAO7+fJ8AAAAASUVORK5CYII="
)

START_TIME = datetime(2026, 3, 1, 9, 30, 0, tzinfo=timezone.utc)


class StepClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: datetime = START_TIME, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


def _write_png(path: Path, padding: int = 0) -> Path:
    # Trailing bytes after IEND keep the file a valid PNG for viewers but make its size controllable.
    path.write_bytes(PNG_1X1_BYTES + b"\x00" * padding)
    return path


@pytest.fixture
def write_png():
    return _write_png


@pytest.fixture
def sample_screenshot(tmp_path: Path) -> Path:
    return _write_png(tmp_path / "capture.png")


@pytest.fixture
def sample_annotated(tmp_path: Path) -> Path:
    return _write_png(tmp_path / "annotated.png")


@pytest.fixture
def sample_thumbnail(tmp_path: Path) -> Path:
    return _write_png(tmp_path / "thumbnail.png")


@pytest.fixture
def annotations_json() -> str:
    return json.dumps(
        [
            {"type": "arrow", "from": [10, 10], "to": [40, 40]},
            {"type": "text", "at": [5, 5], "text": "Login button overlaps"},
        ]
    )


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"item-{next(counter):03d}"


@pytest.fixture
def history_root(tmp_path: Path) -> Path:
    return tmp_path / "history"


@pytest.fixture
def store(history_root: Path, clock: StepClock, id_factory):
    from screenhistory.core.history_store import HistoryStore

    return HistoryStore.open(history_root, clock=clock, id_factory=id_factory)


@pytest.fixture
def default_config() -> dict:
    from screenhistory.config import get_default_config

    return get_default_config()


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("SCREENHISTORY_ROOT", "SCREENHISTORY_LOG_LEVEL", "JIRA_API_TOKEN", "ZENDESK_API_TOKEN"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def qt_app():
    pytest.importorskip("PyQt6")
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    from PyQt6.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app
