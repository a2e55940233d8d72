# -*- coding: utf-8 -*-
"""Exception types raised by the screenshot history store."""

from __future__ import annotations


class HistoryError(Exception):
    """Base class for all history store failures."""


class StorageIOError(HistoryError):
    """Raised when a file or directory operation fails."""


class SerializationError(HistoryError):
    """Raised when the catalog or a metadata document cannot be parsed."""


class ValidationError(HistoryError, ValueError):
    """Raised when caller-supplied input is not well-formed."""


class NotFoundError(HistoryError, KeyError):
    """Raised when an operation targets an unknown item id."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class UploadError(HistoryError):
    """Raised by the ticket upload integration.

    `code` is one of ``UPLOAD_AUTH_FAILED``, ``TICKET_NOT_FOUND``,
    ``NETWORK_ERROR``, ``INVALID_REQUEST`` or ``UPLOAD_FAILED``.
    """

    def __init__(self, code: str, message: str = "") -> None:
        self.code = code
        self.message = message or code
        super().__init__(self.message if self.message.startswith(code) else f"{code}: {self.message}")
