"""Tests for showroom share commands."""

from __future__ import annotations

import base64
import json
import os
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

from typer.testing import CliRunner

from showroom.assets.store import AssetStore
from showroom.cli.main import app
from showroom.db.connection import StorageWriteError
from showroom.db.schema import open_database
from showroom.settings import Keys, SettingsStore
from showroom.share.registry import LinkRegistry

runner = CliRunner()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _url(result) -> str:
    """The URL is always the last line a share command prints."""
    return result.output.strip().splitlines()[-1]


def _link_id(url: str) -> str:
    return parse_qs(urlsplit(url).query)["share"][0]


def _form(project: Path, data: dict | None = None) -> Path:
    path = project / "proposal.json"
    path.write_text(json.dumps(data or {"title": "Kitchen remodel", "budget": "18000"}), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# share create
# ---------------------------------------------------------------------------


def test_create_prints_managed_url(project: Path) -> None:
    result = runner.invoke(app, ["share", "create", "--label", "Smith kitchen"])

    assert result.exit_code == 0, result.output
    url = _url(result)
    assert url.startswith("https://proposals.example.com/?")
    query = parse_qs(urlsplit(url).query)
    assert query["share"][0].startswith("sl_")
    assert query["role"] == ["client"]
    assert query["mode"] == ["presentation"]
    assert "Smith kitchen" in result.output


def test_create_role_indicator_flag(project: Path) -> None:
    result = runner.invoke(app, ["share", "create", "--role", "agent", "--mode", "edit", "--show-role-indicator"])

    assert result.exit_code == 0, result.output
    query = parse_qs(urlsplit(_url(result)).query)
    assert query["role"] == ["agent"]
    assert query["mode"] == ["edit"]
    assert query["showRoleIndicator"] == ["true"]


def test_create_as_client_is_refused(project: Path) -> None:
    result = runner.invoke(app, ["share", "create", "--as", "client"])
    assert result.exit_code == 1
    assert "may not create share links" in result.output


def test_create_unknown_role_exits_1(project: Path) -> None:
    result = runner.invoke(app, ["share", "create", "--role", "guest"])
    assert result.exit_code == 1
    assert "Unknown role 'guest'" in result.output


def test_create_bad_form_file_exits_1(project: Path) -> None:
    bad = project / "bad.json"
    bad.write_text("[1, 2]", encoding="utf-8")
    result = runner.invoke(app, ["share", "create", "--form", str(bad)])
    assert result.exit_code == 1
    assert "not an object" in result.output


def test_create_non_utf8_form_file_exits_1(project: Path) -> None:
    bad = project / "binary.json"
    bad.write_bytes(b"\xff\xfe\x00garbage")
    result = runner.invoke(app, ["share", "create", "--form", str(bad)])
    assert result.exit_code == 1
    assert "not UTF-8 text" in " ".join(result.output.split())


def test_create_without_db_exits_1(tmp_path: Path) -> None:
    result = runner.invoke(app, ["share", "create"])
    assert result.exit_code == 1
    assert "showroom init" in result.output


# ---------------------------------------------------------------------------
# share open
# ---------------------------------------------------------------------------


def test_open_managed_link_applies_captured_document(project: Path) -> None:
    created = runner.invoke(app, ["share", "create", "--form", str(_form(project))])
    url = _url(created)

    result = runner.invoke(app, ["share", "open", url])

    assert result.exit_code == 0, result.output
    assert "Viewing as client in presentation mode" in result.output
    assert "share controls:  hidden" in result.output
    assert "accesses:        1" in result.output
    assert "Kitchen remodel" in result.output


def test_open_counts_every_access(project: Path) -> None:
    url = _url(runner.invoke(app, ["share", "create"]))
    runner.invoke(app, ["share", "open", url])
    result = runner.invoke(app, ["share", "open", url])
    assert "accesses:        2" in result.output


def test_open_expired_link(project: Path) -> None:
    url = _url(runner.invoke(app, ["share", "create", "--expires-in", "0"]))

    result = runner.invoke(app, ["share", "open", url])

    assert result.exit_code == 0
    assert "Link has expired" in result.output


def test_open_unknown_link(project: Path) -> None:
    result = runner.invoke(app, ["share", "open", "https://proposals.example.com/?share=sl_" + "0" * 32])
    assert result.exit_code == 0
    assert "Link not found" in result.output


def test_open_reports_storage_failure(project: Path, monkeypatch) -> None:
    url = _url(runner.invoke(app, ["share", "create"]))

    def refuse(self, link_id):
        raise StorageWriteError("Could not save link access: disk I/O error. Free up disk space")

    monkeypatch.setattr(LinkRegistry, "resolve", refuse)
    result = runner.invoke(app, ["share", "open", url])

    assert result.exit_code == 1
    assert "disk I/O error" in result.output
    assert isinstance(result.exception, SystemExit)


def test_open_managed_link_with_corrupt_snapshot(project: Path) -> None:
    url = _url(runner.invoke(app, ["share", "create", "--role", "agent"]))

    result = runner.invoke(app, ["share", "open", url + "#snapshot=%%%bad"])

    assert result.exit_code == 0, result.output
    assert "Invalid snapshot link" in result.output
    assert "Viewing as agent in presentation mode" in result.output


def test_open_url_without_reference(project: Path) -> None:
    result = runner.invoke(app, ["share", "open", "https://proposals.example.com/?role=agent"])
    assert result.exit_code == 0
    assert "No share reference in this URL." in result.output


def test_open_corrupt_snapshot(project: Path) -> None:
    result = runner.invoke(app, ["share", "open", "https://proposals.example.com/#snapshot=%%%not-base64"])
    assert result.exit_code == 0
    assert "Invalid snapshot link" in result.output


# ---------------------------------------------------------------------------
# share embed
# ---------------------------------------------------------------------------


def test_embed_round_trips_through_open(project: Path) -> None:
    embedded = runner.invoke(app, ["share", "embed", "--form", str(_form(project)), "--label", "Smith"])
    assert embedded.exit_code == 0, embedded.output
    url = _url(embedded)
    assert "#snapshot=" in url

    result = runner.invoke(app, ["share", "open", url])

    assert result.exit_code == 0, result.output
    assert "Loaded embedded client snapshot" in result.output
    assert "share controls:  shown" in result.output
    assert "Kitchen remodel" in result.output
    assert "18000" in result.output


def test_embed_local_snapshot(project: Path) -> None:
    embedded = runner.invoke(app, ["share", "embed", "--local", "--form", str(_form(project))])
    assert embedded.exit_code == 0, embedded.output
    url = _url(embedded)
    assert "#share=" in url

    result = runner.invoke(app, ["share", "open", url])
    assert result.exit_code == 0, result.output
    assert "Kitchen remodel" in result.output


def test_embed_with_large_image_warns(project: Path) -> None:
    blob = base64.b64encode(os.urandom(3000)).decode("ascii")
    images = project / "images.json"
    images.write_text(json.dumps({"hero": f"data:application/octet-stream;base64,{blob}"}), encoding="utf-8")

    result = runner.invoke(
        app, ["share", "embed", "--images", str(images), "--include-images", "--no-compress"]
    )

    assert result.exit_code == 0, result.output
    assert "Link is long" in result.output
    assert "#snapshot=" in _url(result)


def test_embed_without_images_does_not_warn(project: Path) -> None:
    result = runner.invoke(app, ["share", "embed"])
    assert result.exit_code == 0, result.output
    assert "Link is long" not in result.output


def test_embed_as_client_is_refused(project: Path) -> None:
    result = runner.invoke(app, ["share", "embed", "--as", "client"])
    assert result.exit_code == 1
    assert "may not create share links" in result.output


# ---------------------------------------------------------------------------
# share list / revoke / sweep
# ---------------------------------------------------------------------------


def test_list_empty(project: Path) -> None:
    result = runner.invoke(app, ["share", "list"])
    assert result.exit_code == 0
    assert "No share links." in result.output


def test_list_shows_links_and_status(project: Path) -> None:
    runner.invoke(app, ["share", "create", "--label", "live"])
    runner.invoke(app, ["share", "create", "--label", "stale", "--expires-in", "0"])

    result = runner.invoke(app, ["share", "list"])

    assert result.exit_code == 0, result.output
    assert "live" in result.output
    assert "stale" in result.output
    assert "expired" in result.output
    assert "1/2 active" in result.output


def test_list_as_client_is_refused(project: Path) -> None:
    result = runner.invoke(app, ["share", "list", "--as", "client"])
    assert result.exit_code == 1


def test_revoke_invalidates_link(project: Path) -> None:
    url = _url(runner.invoke(app, ["share", "create"]))
    link_id = _link_id(url)

    result = runner.invoke(app, ["share", "revoke", link_id])
    assert result.exit_code == 0, result.output
    assert f"Revoked {link_id}" in result.output

    assert "Link not found" in runner.invoke(app, ["share", "open", url]).output
    again = runner.invoke(app, ["share", "revoke", link_id])
    assert again.exit_code == 1
    assert "Link not found" in again.output


def test_sweep_removes_expired(project: Path) -> None:
    runner.invoke(app, ["share", "create"])
    runner.invoke(app, ["share", "create", "--expires-in", "0"])

    result = runner.invoke(app, ["share", "sweep"])

    assert result.exit_code == 0, result.output
    assert "Removed 1 expired link(s)" in result.output
    assert "1/1 active" in runner.invoke(app, ["share", "list"]).output


def test_embed_includes_configured_logo(project: Path) -> None:
    logo = project / "logo.png"
    logo.write_bytes(b"\x89PNG fake")
    runner.invoke(app, ["assets", "upload", str(logo)])
    conn = open_database(project / ".showroom.db")
    try:
        settings = SettingsStore(conn)
        admin = settings.load(Keys.ADMIN)
        admin["company"]["logoAssetId"] = AssetStore(conn).list()[0].id
        settings.save(Keys.ADMIN, admin)
    finally:
        conn.close()

    embedded = runner.invoke(app, ["share", "embed", "--include-images", "--no-compress"])
    assert embedded.exit_code == 0, embedded.output

    result = runner.invoke(app, ["share", "open", _url(embedded)])
    assert result.exit_code == 0, result.output
    assert "images:          logo" in result.output
