# -*- coding: utf-8 -*-
"""Logging setup for the CLI and the gallery app."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path


LOG_FORMAT = "%(asctime)s [%(threadName)s] %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
MAX_SESSION_LOGS = 10


def get_logger(name: str, log_file: str | Path | None = None, level: int | str = logging.DEBUG) -> logging.Logger:
    """Return a logger with a console handler and an optional file handler.

    Handlers are attached once; later calls only adjust the level.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt=DATE_FORMAT)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    return logger


def log_dir_for(storage_root: str | Path) -> Path:
    """Session logs live beside the history root, never inside it."""
    return Path(storage_root).parent / "logs"


def _env_level(name: str, default: str) -> int:
    raw = (os.getenv(name) or default).strip().upper()
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else logging.INFO


def _prune_session_logs(log_dir: Path, prefix: str, keep: int) -> None:
    logs = sorted(log_dir.glob(f"{prefix}-*.log"))
    for old in logs[: max(0, len(logs) - keep)]:
        try:
            old.unlink()
        except OSError as exc:
            logging.getLogger(__name__).warning("Could not remove old session log %s: %s", old, exc)


def setup_session_logging(
    log_dir: str | Path,
    app_name: str,
    level: str = "INFO",
    keep: int = MAX_SESSION_LOGS,
) -> Path | None:
    """Configure root logging and open a per-run session log in `log_dir`.

    `SCREENHISTORY_LOG_LEVEL` overrides `level`. Only the newest `keep`
    session logs are kept.
    """
    root = logging.getLogger()
    if getattr(root, "_screenhistory_logging_configured", False):
        return getattr(root, "_screenhistory_session_log", None)

    log_level = _env_level("SCREENHISTORY_LOG_LEVEL", level)
    root.setLevel(log_level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if not any(isinstance(handler, logging.StreamHandler) for handler in root.handlers):
        console = logging.StreamHandler()
        console.setLevel(log_level)
        console.setFormatter(formatter)
        root.addHandler(console)

    directory = Path(log_dir)
    prefix = app_name.lower().replace(" ", "-")
    session_log: Path | None = directory / f"{prefix}-{datetime.now().strftime('%Y%m%d-%H%M%S')}.log"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        _prune_session_logs(directory, prefix, max(0, keep - 1))
        file_handler = logging.FileHandler(session_log, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        root.info("Session log file established: %s", session_log)
    except OSError as exc:
        root.error("Failed to establish session log file: %s", exc)
        session_log = None

    root._screenhistory_logging_configured = True  # type: ignore[attr-defined]
    root._screenhistory_session_log = session_log  # type: ignore[attr-defined]
    return session_log
