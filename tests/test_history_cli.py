# -*- coding: utf-8 -*-
"""Tests for the history CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from screenhistory.cli.history_cli import app


runner = CliRunner()


@pytest.fixture
def cli(tmp_path: Path, history_root: Path):
    settings = tmp_path / "config" / "settings.json"

    def _invoke(*args: str):
        return runner.invoke(app, ["--root", str(history_root), "--config", str(settings), *args])

    return _invoke


def _last_line(output: str) -> str:
    return output.strip().splitlines()[-1]


def test_save_then_list_json(cli, sample_screenshot: Path, sample_thumbnail: Path, tmp_path: Path) -> None:
    annotations = tmp_path / "annotations.json"
    annotations.write_text('[{"type": "rect"}]', encoding="utf-8")

    saved = cli(
        "save", str(sample_screenshot),
        "--thumbnail", str(sample_thumbnail),
        "--annotations", str(annotations),
        "--ticket", "PROJ-5",
    )
    assert saved.exit_code == 0, saved.output
    item_id = _last_line(saved.stdout)

    listed = cli("list", "--json")
    assert listed.exit_code == 0, listed.output
    items = json.loads(listed.stdout)
    assert [item["id"] for item in items] == [item_id]
    assert items[0]["ticket_id"] == "PROJ-5"
    assert items[0]["annotation_count"] == 1


def test_save_generates_thumbnail_when_missing(cli, sample_screenshot: Path, history_root: Path) -> None:
    saved = cli("save", str(sample_screenshot))
    assert saved.exit_code == 0, saved.output
    item_id = _last_line(saved.stdout)
    assert (history_root / item_id / "thumbnail.png").is_file()


def test_list_empty_store(cli) -> None:
    result = cli("list")
    assert result.exit_code == 0
    assert "No screenshots stored" in result.stdout


def test_list_search_and_limit(cli, sample_screenshot: Path, sample_thumbnail: Path) -> None:
    for ticket in ("A-1", "B-2", "C-3"):
        assert cli("save", str(sample_screenshot), "--thumbnail", str(sample_thumbnail), "--ticket", ticket).exit_code == 0

    limited = json.loads(cli("list", "--json", "--limit", "2").stdout)
    assert len(limited) == 2
    searched = cli("list", "--search", "b-2")
    assert "B-2" in searched.stdout
    assert "A-1" not in searched.stdout


def test_delete_and_usage(cli, sample_screenshot: Path, sample_thumbnail: Path) -> None:
    item_id = _last_line(cli("save", str(sample_screenshot), "--thumbnail", str(sample_thumbnail)).stdout)
    before = json.loads(cli("usage", "--json").stdout)
    assert before["item_count"] == 1
    assert before["used_bytes"] > 0

    deleted = cli("delete", item_id)
    assert deleted.exit_code == 0
    assert f"Deleted {item_id}" in deleted.stdout
    assert cli("delete", item_id).exit_code == 0

    after = json.loads(cli("usage", "--json").stdout)
    assert after["item_count"] == 0
    assert after["used_bytes"] == 0
    assert "0 item(s)" in cli("usage").stdout


def test_set_url(cli, sample_screenshot: Path, sample_thumbnail: Path) -> None:
    item_id = _last_line(cli("save", str(sample_screenshot), "--thumbnail", str(sample_thumbnail)).stdout)

    result = cli("set-url", item_id, "https://acme.zendesk.com/agent/tickets/1")
    assert result.exit_code == 0

    items = json.loads(cli("list", "--json").stdout)
    assert items[0]["uploaded_url"] == "https://acme.zendesk.com/agent/tickets/1"


def test_set_url_unknown_item_fails(cli) -> None:
    result = cli("set-url", "ghost", "https://example.com")
    assert result.exit_code == 1


def test_save_with_malformed_annotations_fails(
    cli, sample_screenshot: Path, sample_thumbnail: Path, tmp_path: Path, history_root: Path
) -> None:
    annotations = tmp_path / "broken.json"
    annotations.write_text("[{", encoding="utf-8")

    result = cli("save", str(sample_screenshot), "--thumbnail", str(sample_thumbnail), "--annotations", str(annotations))

    assert result.exit_code == 1
    assert json.loads(cli("list", "--json").stdout) == []


def test_upload_without_token_fails(cli) -> None:
    result = cli("upload", "any-id")
    assert result.exit_code == 1


def test_reconcile_recovers_items_and_keeps_foreign_folders(
    cli, history_root: Path, sample_screenshot: Path, sample_thumbnail: Path
) -> None:
    item_id = _last_line(cli("save", str(sample_screenshot), "--thumbnail", str(sample_thumbnail)).stdout)
    (history_root / "index.json").write_text("[]", encoding="utf-8")
    (history_root / "notes").mkdir()

    result = cli("reconcile")

    assert result.exit_code == 0
    assert json.loads(result.stdout)["recovered"] == [item_id]
    assert (history_root / "notes").is_dir()
    assert [entry["id"] for entry in json.loads(cli("list", "--json").stdout)] == [item_id]


def test_invalid_settings_exit_with_error(tmp_path: Path, history_root: Path) -> None:
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({"upload": {"service": "github"}}), encoding="utf-8")

    result = runner.invoke(app, ["--root", str(history_root), "--config", str(settings), "list"])
    assert result.exit_code == 1
