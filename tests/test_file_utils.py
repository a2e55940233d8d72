# -*- coding: utf-8 -*-
"""Tests for file helpers and session logging."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from screenhistory.utils.file_utils import read_json_file, read_json_value, write_json_file
from screenhistory.utils.logger import get_logger, log_dir_for, setup_session_logging


def test_write_json_file_is_atomic_and_readable(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "index.json"
    write_json_file(target, [{"id": "a"}])

    assert read_json_value(target) == [{"id": "a"}]
    assert target.read_text(encoding="utf-8").endswith("\n")
    assert [p.name for p in target.parent.iterdir()] == ["index.json"]


def test_failed_write_keeps_previous_content(tmp_path: Path) -> None:
    target = tmp_path / "index.json"
    write_json_file(target, {"ok": True})

    with pytest.raises(TypeError):
        write_json_file(target, {"bad": object()})

    assert read_json_file(target) == {"ok": True}
    assert [p.name for p in tmp_path.iterdir()] == ["index.json"]


def test_write_without_parents_never_creates_directories(tmp_path: Path) -> None:
    target = tmp_path / "gone" / "meta.json"

    with pytest.raises(FileNotFoundError):
        write_json_file(target, {"id": "gone"}, create_parents=False)

    assert not (tmp_path / "gone").exists()


def test_read_json_file_requires_object(tmp_path: Path) -> None:
    target = tmp_path / "list.json"
    target.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        read_json_file(target)


def test_get_logger_writes_to_file(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "cli.log"
    logger = get_logger("screenhistory.test_file_logger", log_file=log_file)
    logger.info("hello from test")
    for handler in logger.handlers:
        handler.flush()

    assert "hello from test" in log_file.read_text(encoding="utf-8")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_setup_session_logging_creates_log_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    root = logging.getLogger()
    previous_level = root.level
    monkeypatch.setattr(root, "_screenhistory_logging_configured", False, raising=False)
    monkeypatch.setattr(root, "_screenhistory_session_log", None, raising=False)
    monkeypatch.setattr(root, "handlers", list(root.handlers))
    monkeypatch.setenv("SCREENHISTORY_LOG_LEVEL", "debug")

    (tmp_path / "logs").mkdir()
    for n in range(5):
        (tmp_path / "logs" / f"screenshot-history-20250101-00000{n}.log").write_text("old", encoding="utf-8")

    path = setup_session_logging(tmp_path / "logs", "Screenshot History", keep=3)

    assert path is not None
    assert path.parent == tmp_path / "logs"
    assert len(list((tmp_path / "logs").glob("screenshot-history-*.log"))) == 3
    assert path.name.startswith("screenshot-history-")
    assert root.level == logging.DEBUG
    assert setup_session_logging(tmp_path / "other", "Screenshot History") == path
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == path:
            handler.close()
    root.setLevel(previous_level)


def test_log_dir_is_outside_history_root(tmp_path: Path) -> None:
    root = tmp_path / "com.screenshot-annotate" / "history"
    assert log_dir_for(root) == tmp_path / "com.screenshot-annotate" / "logs"
