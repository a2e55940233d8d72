# -*- coding: utf-8 -*-
"""Application constants."""

APP_NAME = "screenshot-history"
APP_VERSION = "0.1.0"

DEFAULT_SETTINGS_FILE = "settings.json"

# Relative to the platform local-data directory.
HISTORY_SUBDIR = ("com.screenshot-annotate", "history")

STORAGE_BUDGET_MB = 500
STORAGE_BUDGET_BYTES = STORAGE_BUDGET_MB * 1024 * 1024

DEFAULT_LIST_LIMIT = 20

INDEX_FILE = "index.json"
STAGING_DIR = ".staging"

BLOB_FILENAMES = {
    "original": "original.png",
    "annotated": "annotated.png",
    "thumbnail": "thumbnail.png",
    "annotations": "annotations.json",
    "meta": "meta.json",
}

UPLOAD_SERVICES = ("jira", "zendesk")
UPLOAD_TIMEOUT_SECONDS = 15.0
VALIDATE_TIMEOUT_SECONDS = 5.0

DEFAULT_THUMBNAIL_SIZE = 320
