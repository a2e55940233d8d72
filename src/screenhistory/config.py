# -*- coding: utf-8 -*-
"""Settings persistence and validation."""

from __future__ import annotations

import os
from copy import deepcopy
from pathlib import Path
from typing import Any

from screenhistory.constants import (
    DEFAULT_LIST_LIMIT,
    DEFAULT_SETTINGS_FILE,
    DEFAULT_THUMBNAIL_SIZE,
    HISTORY_SUBDIR,
    UPLOAD_SERVICES,
)
from screenhistory.utils.file_utils import data_local_dir, read_json_file, write_json_file


DEFAULT_CONFIG: dict[str, Any] = {
    "storage": {"root": ""},
    "history": {"default_limit": DEFAULT_LIST_LIMIT},
    "logging": {"level": "INFO"},
    "upload": {
        "service": "jira",
        "base_url": "",
        "email": "",
        "api_token": "USE_ENV_FILE",
    },
    "gui": {"thumbnail_size": DEFAULT_THUMBNAIL_SIZE},
}

TOKEN_ENV_NAMES = {
    "jira": "JIRA_API_TOKEN",
    "zendesk": "ZENDESK_API_TOKEN",
}

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ConfigError(ValueError):
    """Raised when settings are invalid."""


def get_default_config() -> dict[str, Any]:
    """Return a deep copy of the default config."""
    return deepcopy(DEFAULT_CONFIG)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Overlay `override` onto a copy of `base`; nested sections merge key by key."""
    result = deepcopy(base)
    for key, value in override.items():
        current = result.get(key)
        result[key] = _deep_merge(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
    return result


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    return value


def _load_env_file(env_path: Path) -> dict[str, str]:
    """Read KEY=VALUE pairs from a .env file; `export` prefixes and comments are ignored."""
    if not env_path.is_file():
        return {}
    values: dict[str, str] = {}
    for line in env_path.read_text(encoding="utf-8").splitlines():
        entry = line.strip()
        if entry.startswith("export "):
            entry = entry[len("export "):].lstrip()
        if not entry or entry.startswith("#"):
            continue
        key, sep, value = entry.partition("=")
        if sep and key.strip():
            values[key.strip()] = _unquote(value.strip())
    return values


def _apply_env_overrides(config: dict[str, Any], env_values: dict[str, str]) -> dict[str, Any]:
    """Apply environment-based overrides to runtime config.

    Process environment wins over the .env file.
    """
    merged = deepcopy(config)

    def _lookup(name: str) -> str:
        return (os.environ.get(name) or env_values.get(name) or "").strip()

    root_override = _lookup("SCREENHISTORY_ROOT")
    if root_override:
        merged.setdefault("storage", {})
        merged["storage"]["root"] = root_override

    service = str(merged.get("upload", {}).get("service", "jira"))
    token_env = TOKEN_ENV_NAMES.get(service)
    token = _lookup(token_env) if token_env else ""
    if token:
        merged.setdefault("upload", {})
        merged["upload"]["api_token"] = token
    return merged


def validate_config(config: dict[str, Any]) -> None:
    """Validate the fields the store, CLI and GUI rely on."""
    root = config.get("storage", {}).get("root", "")
    if not isinstance(root, str):
        raise ConfigError("storage.root must be a string (empty for the platform default)")

    limit = config.get("history", {}).get("default_limit")
    if isinstance(limit, bool) or not isinstance(limit, int) or not (1 <= limit <= 10000):
        raise ConfigError("history.default_limit must be an int in range 1..10000")

    level = str(config.get("logging", {}).get("level", "")).upper()
    if level not in LOG_LEVELS:
        raise ConfigError(f"logging.level must be one of {sorted(LOG_LEVELS)}")

    service = config.get("upload", {}).get("service")
    if service not in UPLOAD_SERVICES:
        raise ConfigError(f"upload.service must be one of {list(UPLOAD_SERVICES)}")

    size = config.get("gui", {}).get("thumbnail_size")
    if isinstance(size, bool) or not isinstance(size, int) or not (32 <= size <= 2048):
        raise ConfigError("gui.thumbnail_size must be an int in range 32..2048")


def load_config(path: str | Path | None = None) -> dict[str, Any]:
    """Return validated settings: defaults, then settings.json, then env overrides.

    A missing settings file means defaults; an unreadable or malformed one
    raises `ConfigError`.
    """
    settings_path = Path(path or DEFAULT_SETTINGS_FILE)
    stored: dict[str, Any] = {}
    if settings_path.exists():
        try:
            stored = read_json_file(settings_path)
        except (OSError, ValueError) as exc:
            raise ConfigError(f"Cannot read settings {settings_path}: {exc}") from exc

    config = _apply_env_overrides(
        _deep_merge(get_default_config(), stored),
        _load_env_file(settings_path.parent / ".env"),
    )
    validate_config(config)
    return config


def resolve_storage_root(config: dict[str, Any]) -> Path:
    """Return the configured storage root or the platform default."""
    configured = str(config.get("storage", {}).get("root", "") or "").strip()
    if configured:
        return Path(configured).expanduser()
    return data_local_dir().joinpath(*HISTORY_SUBDIR)


def _strip_api_tokens(config: dict[str, Any]) -> dict[str, Any]:
    """Replace real API tokens with the env-file placeholder before saving."""
    config_copy = deepcopy(config)
    upload = config_copy.get("upload", {})
    token = upload.get("api_token")
    if token and token != "USE_ENV_FILE":
        upload["api_token"] = "USE_ENV_FILE"
    return config_copy


def save_config(config: dict[str, Any], path: str | Path | None = None) -> Path:
    """Validate and save config as JSON, but without real API tokens.

    Tokens belong in the .env file, not in settings.json.
    """
    validate_config(config)
    config_path = Path(path or DEFAULT_SETTINGS_FILE)
    write_json_file(config_path, _strip_api_tokens(config))
    return config_path


def upload_token(config: dict[str, Any]) -> str:
    """Return the usable API token, or an empty string when only the placeholder is set."""
    token = str(config.get("upload", {}).get("api_token", "") or "")
    return "" if token == "USE_ENV_FILE" else token
