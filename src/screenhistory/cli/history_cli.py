# -*- coding: utf-8 -*-
"""CLI commands for the screenshot history store."""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
from typing import Any, NoReturn

import typer

from screenhistory.config import ConfigError, load_config, resolve_storage_root, upload_token
from screenhistory.core.history_store import HistoryStore
from screenhistory.errors import HistoryError
from screenhistory.integrations.ticket_uploader import TicketUploader, UploadRequest, upload_history_item
from screenhistory.models.storage_usage import format_bytes
from screenhistory.utils.image_utils import create_thumbnail, is_png_file
from screenhistory.utils.logger import get_logger

app = typer.Typer(help="Manage locally stored screenshots")
logger = logging.getLogger(__name__)


@app.callback()
def main(
    ctx: typer.Context,
    root: Path = typer.Option(None, help="Storage root (default: from settings or platform data dir)"),
    config: Path = typer.Option(None, help="Path to settings.json"),
    verbose: bool = typer.Option(False, help="Verbose output"),
    log_file: Path = typer.Option(None, help="Also write log output to this file"),
) -> None:
    """Screenshot history: save, list, delete and inspect stored captures."""
    try:
        settings = load_config(config)
    except (ConfigError, ValueError, OSError) as exc:
        typer.echo(f"Failed to load settings: {exc}", err=True)
        raise typer.Exit(1)
    if verbose or log_file is not None:
        level = "DEBUG" if verbose else str(settings.get("logging", {}).get("level", "INFO")).upper()
        get_logger("screenhistory", log_file=log_file, level=level)
    ctx.obj = {"settings": settings, "root": root or resolve_storage_root(settings)}


def _open_store(ctx: typer.Context, repair: bool = True) -> HistoryStore:
    try:
        if not repair:
            return HistoryStore(ctx.obj["root"])
        return HistoryStore.open(ctx.obj["root"])
    except HistoryError as exc:
        typer.echo(f"Failed to open history store: {exc}", err=True)
        raise typer.Exit(1)


def _fail(exc: Exception) -> NoReturn:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(1)


@app.command()
def save(
    ctx: typer.Context,
    original: Path = typer.Argument(..., help="Path to the captured screenshot"),
    annotated: Path = typer.Option(None, help="Path to the annotated export"),
    thumbnail: Path = typer.Option(None, help="Path to a thumbnail (generated when omitted)"),
    annotations: Path = typer.Option(None, help="Annotation JSON document (default: empty list)"),
    ticket: str = typer.Option(None, help="Ticket reference, e.g. PROJ-123"),
) -> None:
    """Store a screenshot and print its id."""
    store = _open_store(ctx)
    if original.is_file() and not is_png_file(original):
        logger.warning("Original is not a PNG file: %s", original)
    try:
        annotations_json = annotations.read_text(encoding="utf-8") if annotations is not None else "[]"
    except OSError as exc:
        _fail(exc)

    with tempfile.TemporaryDirectory(prefix="screenhistory-") as tmp_dir:
        thumbnail_path = thumbnail
        if thumbnail_path is None:
            size = int(ctx.obj["settings"].get("gui", {}).get("thumbnail_size", 320))
            try:
                thumbnail_path = create_thumbnail(annotated or original, Path(tmp_dir) / "thumbnail.png", size)
            except OSError as exc:
                _fail(exc)
        try:
            item_id = store.save(original, annotated, thumbnail_path, annotations_json, ticket)
        except HistoryError as exc:
            _fail(exc)
    typer.echo(item_id)


@app.command("list")
def list_items(
    ctx: typer.Context,
    search: str = typer.Option(None, help="Match ticket id or timestamp (case-insensitive)"),
    limit: int = typer.Option(None, help="Maximum number of results"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
) -> None:
    """List stored screenshots, newest first."""
    store = _open_store(ctx)
    if limit is None:
        limit = int(ctx.obj["settings"].get("history", {}).get("default_limit", 20))
    try:
        items = store.list(search=search, limit=limit)
    except HistoryError as exc:
        _fail(exc)

    if as_json:
        typer.echo(json.dumps([item.to_dict() for item in items], indent=2))
        return
    if not items:
        typer.echo("No screenshots stored")
        return
    for item in items:
        ticket = item.ticket_id or "-"
        uploaded = " (uploaded)" if item.uploaded_url else ""
        typer.echo(f"{item.id}  {item.created_at}  {ticket:<12}  {format_bytes(item.size_bytes):>10}{uploaded}")


@app.command()
def delete(
    ctx: typer.Context,
    item_id: str = typer.Argument(..., help="Id of the screenshot to delete"),
) -> None:
    """Delete a stored screenshot (no error if it does not exist)."""
    store = _open_store(ctx)
    try:
        store.delete(item_id)
    except HistoryError as exc:
        _fail(exc)
    typer.echo(f"Deleted {item_id}")


@app.command()
def usage(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
) -> None:
    """Show disk usage against the storage budget."""
    store = _open_store(ctx)
    try:
        current = store.usage()
    except HistoryError as exc:
        _fail(exc)

    if as_json:
        typer.echo(json.dumps(current.to_dict()))
        return
    typer.echo(
        f"{current.item_count} item(s), {format_bytes(current.used_bytes)} of "
        f"{format_bytes(current.budget_bytes)} ({current.percent_used}%)"
    )
    if current.over_budget:
        typer.echo("Storage is over budget; the next save evicts the oldest screenshots.")


@app.command("set-url")
def set_url(
    ctx: typer.Context,
    item_id: str = typer.Argument(..., help="Id of the screenshot"),
    url: str = typer.Argument(..., help="URL the screenshot was uploaded to"),
) -> None:
    """Record the upload URL of a stored screenshot."""
    store = _open_store(ctx)
    try:
        store.set_uploaded_url(item_id, url)
    except HistoryError as exc:
        _fail(exc)
    typer.echo(f"Updated {item_id}")


@app.command()
def upload(
    ctx: typer.Context,
    item_id: str = typer.Argument(..., help="Id of the screenshot"),
    ticket: str = typer.Option(None, help="Ticket id (default: the one saved with the item)"),
    comment: str = typer.Option("", help="Comment added to the ticket"),
) -> None:
    """Attach a stored screenshot to the configured Jira/Zendesk ticket."""
    settings: dict[str, Any] = ctx.obj["settings"]
    upload_settings = settings.get("upload", {})
    token = upload_token(settings)
    if not token:
        typer.echo("No API token configured. Set it in the .env file.", err=True)
        raise typer.Exit(1)

    store = _open_store(ctx)
    request = UploadRequest(
        service=str(upload_settings.get("service", "jira")),
        ticket_id=ticket or "",
        file_path="",
        base_url=str(upload_settings.get("base_url", "")),
        email=str(upload_settings.get("email", "")),
        api_token=token,
        comment=comment,
    )
    try:
        result = upload_history_item(store, TicketUploader(), item_id, request)
    except HistoryError as exc:
        _fail(exc)
    typer.echo(f"Uploaded to {result.ticket_url}")


@app.command()
def reconcile(ctx: typer.Context) -> None:
    """Register items missing from the catalog and drop stale entries."""
    store = _open_store(ctx, repair=False)
    try:
        report = store.reconcile()
    except HistoryError as exc:
        _fail(exc)
    typer.echo(json.dumps(report, indent=2))


if __name__ == "__main__":
    app()
