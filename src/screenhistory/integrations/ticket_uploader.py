# -*- coding: utf-8 -*-
"""Attach stored screenshots to Jira issues or Zendesk tickets."""

from __future__ import annotations

import base64
import json
import logging
import uuid
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any
from urllib import error, parse, request

from screenhistory.constants import UPLOAD_SERVICES, UPLOAD_TIMEOUT_SECONDS, VALIDATE_TIMEOUT_SECONDS
from screenhistory.core.history_store import HistoryStore, require_item
from screenhistory.errors import UploadError

logger = logging.getLogger(__name__)


@dataclass
class UploadRequest:
    """One attachment upload. `base_url` is the Jira site URL or the Zendesk subdomain."""

    service: str
    ticket_id: str
    file_path: str
    base_url: str
    email: str
    api_token: str
    comment: str = ""


@dataclass
class UploadResult:
    ticket_url: str
    attachment_url: str


def validate_jira_base_url(base_url: str) -> str:
    trimmed = base_url.strip()
    parsed = parse.urlparse(trimmed)
    if not parsed.scheme:
        raise UploadError("INVALID_REQUEST", "Invalid Jira URL")
    if parsed.scheme != "https":
        raise UploadError("INVALID_REQUEST", "Invalid Jira URL: HTTPS is required")
    if not parsed.hostname:
        raise UploadError("INVALID_REQUEST", "Invalid Jira URL: missing host")
    return trimmed.rstrip("/")


def validate_jira_ticket_id(ticket_id: str) -> str:
    trimmed = ticket_id.strip()
    project, sep, number = trimmed.partition("-")
    if not sep:
        raise UploadError("INVALID_REQUEST", "Invalid Jira ticket ID")
    project_ok = len(project) >= 2 and all(c.isascii() and (c.isupper() or c.isdigit() or c == "_") for c in project)
    number_ok = bool(number) and number.isascii() and number.isdigit()
    if not (project_ok and number_ok):
        raise UploadError("INVALID_REQUEST", "Invalid Jira ticket ID")
    return f"{project}-{number}"


def validate_zendesk_subdomain(subdomain: str) -> str:
    normalized = subdomain.strip().lower()
    if not normalized or len(normalized) > 63:
        raise UploadError("INVALID_REQUEST", "Invalid Zendesk subdomain")
    if normalized.startswith("-") or normalized.endswith("-"):
        raise UploadError("INVALID_REQUEST", "Invalid Zendesk subdomain")
    if not all(c.isascii() and (c.islower() or c.isdigit() or c == "-") for c in normalized):
        raise UploadError("INVALID_REQUEST", "Invalid Zendesk subdomain")
    return normalized


def validate_zendesk_ticket_id(ticket_id: str) -> str:
    trimmed = ticket_id.strip()
    if not trimmed or not (trimmed.isascii() and trimmed.isdigit()):
        raise UploadError("INVALID_REQUEST", "Invalid Zendesk ticket ID")
    return trimmed


def _basic_auth(user: str, secret: str) -> str:
    token = base64.b64encode(f"{user}:{secret}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class TicketUploader:
    """Thin urllib wrapper for the Jira and Zendesk attachment APIs."""

    def __init__(
        self,
        timeout: float = UPLOAD_TIMEOUT_SECONDS,
        validate_timeout: float = VALIDATE_TIMEOUT_SECONDS,
    ) -> None:
        self.timeout = float(timeout)
        self.validate_timeout = float(validate_timeout)

    def upload(self, upload_request: UploadRequest) -> UploadResult:
        if upload_request.service == "jira":
            result = self._upload_to_jira(upload_request)
        elif upload_request.service == "zendesk":
            result = self._upload_to_zendesk(upload_request)
        else:
            raise UploadError("INVALID_REQUEST", f"Unknown service: {upload_request.service}")
        logger.info("Uploaded %s to %s", Path(upload_request.file_path).name, result.ticket_url)
        return result

    def validate_credentials(self, service: str, base_url: str, email: str, api_token: str) -> bool:
        """Return True when the service accepts the credentials."""
        if service == "jira":
            url = f"{validate_jira_base_url(base_url)}/rest/api/3/myself"
            auth = _basic_auth(email, api_token)
        elif service == "zendesk":
            url = f"https://{validate_zendesk_subdomain(base_url)}.zendesk.com/api/v2/users/me.json"
            auth = _basic_auth(f"{email}/token", api_token)
        else:
            raise UploadError("INVALID_REQUEST", f"Unknown service: {service}")
        status, _ = self._send("GET", url, headers={"Authorization": auth}, timeout=self.validate_timeout)
        return 200 <= status < 300

    def _upload_to_jira(self, upload_request: UploadRequest) -> UploadResult:
        base_url = validate_jira_base_url(upload_request.base_url)
        ticket_id = validate_jira_ticket_id(upload_request.ticket_id)
        file_path = _require_file(upload_request.file_path)
        auth = _basic_auth(upload_request.email, upload_request.api_token)

        boundary = uuid.uuid4().hex
        body_parts = [
            f"--{boundary}\r\n".encode("utf-8"),
            f'Content-Disposition: form-data; name="file"; filename="{file_path.name}"\r\n'.encode("utf-8"),
            b"Content-Type: image/png\r\n\r\n",
            file_path.read_bytes(),
            b"\r\n",
            f"--{boundary}--\r\n".encode("utf-8"),
        ]
        status, body = self._send(
            "POST",
            f"{base_url}/rest/api/3/issue/{ticket_id}/attachments",
            data=b"".join(body_parts),
            headers={
                "Authorization": auth,
                "X-Atlassian-Token": "no-check",
                "Content-Type": f"multipart/form-data; boundary={boundary}",
            },
        )
        _check_status(status, body, "Upload failed")

        if upload_request.comment:
            comment_body = {
                "body": {
                    "type": "doc",
                    "version": 1,
                    "content": [
                        {"type": "paragraph", "content": [{"type": "text", "text": upload_request.comment}]}
                    ],
                }
            }
            status, body = self._send(
                "POST",
                f"{base_url}/rest/api/3/issue/{ticket_id}/comment",
                data=json.dumps(comment_body).encode("utf-8"),
                headers={"Authorization": auth, "Content-Type": "application/json"},
            )
            _check_status(status, body, "Failed to add comment")

        ticket_url = f"{base_url}/browse/{ticket_id}"
        return UploadResult(ticket_url=ticket_url, attachment_url=ticket_url)

    def _upload_to_zendesk(self, upload_request: UploadRequest) -> UploadResult:
        subdomain = validate_zendesk_subdomain(upload_request.base_url)
        ticket_id = validate_zendesk_ticket_id(upload_request.ticket_id)
        file_path = _require_file(upload_request.file_path)
        auth = _basic_auth(f"{upload_request.email}/token", upload_request.api_token)
        host = f"https://{subdomain}.zendesk.com"

        filename = parse.quote(file_path.name, safe="")
        status, body = self._send(
            "POST",
            f"{host}/api/v2/uploads.json?filename={filename}",
            data=file_path.read_bytes(),
            headers={"Authorization": auth, "Content-Type": "image/png"},
        )
        _check_status(status, body, "File upload failed", not_found_means_ticket=False)
        upload_token = _parse_upload_token(body)

        comment_body = {
            "ticket": {
                "comment": {
                    "body": upload_request.comment or "Screenshot attached",
                    "uploads": [upload_token],
                }
            }
        }
        status, body = self._send(
            "PUT",
            f"{host}/api/v2/tickets/{ticket_id}.json",
            data=json.dumps(comment_body).encode("utf-8"),
            headers={"Authorization": auth, "Content-Type": "application/json"},
        )
        _check_status(status, body, "Comment failed")

        ticket_url = f"{host}/agent/tickets/{ticket_id}"
        return UploadResult(ticket_url=ticket_url, attachment_url=ticket_url)

    def _send(
        self,
        method: str,
        url: str,
        *,
        data: bytes | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> tuple[int, bytes]:
        req = request.Request(url, data=data, headers=headers or {}, method=method)
        try:
            with request.urlopen(req, timeout=timeout or self.timeout) as response:
                return int(getattr(response, "status", 200)), response.read()
        except error.HTTPError as exc:
            return int(exc.code), exc.read()
        except error.URLError as exc:
            if isinstance(exc.reason, TimeoutError):
                raise UploadError("NETWORK_ERROR", "Request timed out") from exc
            raise UploadError("NETWORK_ERROR", f"Connection failed: {exc.reason}") from exc
        except TimeoutError as exc:
            raise UploadError("NETWORK_ERROR", "Request timed out") from exc


def _require_file(file_path: str) -> Path:
    path = Path(file_path)
    if not path.is_file():
        raise UploadError("INVALID_REQUEST", "File not found")
    return path


def _check_status(status: int, body: bytes, context: str, not_found_means_ticket: bool = True) -> None:
    if status in (401, 403):
        raise UploadError("UPLOAD_AUTH_FAILED")
    if status == 404 and not_found_means_ticket:
        raise UploadError("TICKET_NOT_FOUND")
    if not 200 <= status < 300:
        text = body.decode("utf-8", errors="ignore") or "Unknown error"
        raise UploadError("UPLOAD_FAILED", f"{context}: {status} - {text[:500]}")


def _parse_upload_token(body: bytes) -> str:
    try:
        payload: Any = json.loads(body.decode("utf-8", errors="ignore"))
        token = payload["upload"]["token"]
    except (ValueError, KeyError, TypeError) as exc:
        raise UploadError("UPLOAD_FAILED", f"Failed to parse upload response: {exc}") from exc
    if not isinstance(token, str) or not token:
        raise UploadError("UPLOAD_FAILED", "Failed to parse upload response: missing token")
    return token


def upload_history_item(
    store: HistoryStore,
    uploader: TicketUploader,
    item_id: str,
    upload_request: UploadRequest,
) -> UploadResult:
    """Upload a stored item (annotated image preferred) and record the resulting URL.

    `upload_request.file_path` is filled from the item; an empty `ticket_id`
    falls back to the one saved with the item.
    """
    item = require_item(store, item_id)
    ticket_id = upload_request.ticket_id or item.ticket_id or ""
    if not ticket_id:
        raise UploadError("INVALID_REQUEST", f"No ticket id for item {item_id}")
    if upload_request.service not in UPLOAD_SERVICES:
        raise UploadError("INVALID_REQUEST", f"Unknown service: {upload_request.service}")
    file_path = item.annotated_path or item.original_path
    result = uploader.upload(replace(upload_request, ticket_id=ticket_id, file_path=file_path))
    store.set_uploaded_url(item_id, result.attachment_url)
    return result
