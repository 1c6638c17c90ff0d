"""showroom status command.

Shows a project overview: configuration, asset store, share links and settings
backups.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel

from showroom.assets.store import AssetStore
from showroom.cli.context import format_ms, load_cfg_or_exit, resolve_db
from showroom.config import ShowroomConfig
from showroom.db.schema import open_database
from showroom.settings import Keys, SettingsStore
from showroom.share.registry import LinkRegistry

console = Console()


def status_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .showroom.db (default: storage.db_path)."),
    ] = None,
) -> None:
    """Show project status: configuration, assets and share links."""
    cfg = load_cfg_or_exit()
    db_path = resolve_db(db, cfg)

    # ---- Panel 1: Project ----
    _show_project_panel(db_path, cfg)

    if not db_path.exists():
        console.print(
            Panel(
                "[yellow]No database found.[/]\n"
                "  Run:  showroom init",
                title="[bold]Store[/]",
                expand=False,
            )
        )
        return

    conn = open_database(db_path)
    try:
        # ---- Panel 2: Assets ----
        _show_assets_panel(conn)
        # ---- Panel 3: Share links ----
        _show_links_panel(conn)
        # ---- Panel 4: Settings ----
        _show_settings_panel(conn, cfg)
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Panel renderers
# ---------------------------------------------------------------------------


def _show_project_panel(db_path: Path, cfg: ShowroomConfig) -> None:
    db_info = f"{db_path}"
    if db_path.exists():
        size_mb = db_path.stat().st_size / (1024 * 1024)
        db_info = f"{db_path} ({size_mb:.1f} MB)"

    lines = [
        f"Base URL:  [bold]{cfg.share.base_url}[/]",
        f"Database:  {db_info}",
        f"Images:    ≤{cfg.images.max_dimension_px}px, quality {cfg.images.quality}",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Project[/]", expand=False))


def _show_assets_panel(conn: sqlite3.Connection) -> None:
    assets = AssetStore(conn).list()
    total = sum(a.size_bytes for a in assets)
    lines = [f"Assets: [bold]{len(assets)}[/]  |  Stored: [bold]{total / 1024:.1f} KB[/]"]
    if assets:
        lines.append(f"Last upload: [dim]{format_ms(assets[0].created_at)}[/]")
    else:
        lines.append("[dim]No assets stored yet.[/]")
    console.print(Panel("\n".join(lines), title="[bold]Assets[/]", expand=False))


def _show_links_panel(conn: sqlite3.Connection) -> None:
    links = LinkRegistry(conn).list()
    expired = sum(1 for link in links if link.is_expired)
    accesses = sum(link.access_count for link in links)
    lines = [
        f"Active: [bold]{len(links) - expired}[/]  |  "
        f"Expired (pending sweep): [bold]{expired}[/]  |  "
        f"Accesses: [bold]{accesses}[/]"
    ]
    if expired:
        lines.append("  Run:  showroom share sweep")
    console.print(Panel("\n".join(lines), title="[bold]Share Links[/]", expand=False))


def _show_settings_panel(conn: sqlite3.Connection, cfg: ShowroomConfig) -> None:
    settings = SettingsStore(conn, backup_retention=cfg.storage.backup_retention)
    admin = settings.load(Keys.ADMIN)
    company = admin.get("company") or {}
    logo = company.get("logoAssetId") or "(none)"
    lines = [
        f"Company:  [bold]{company.get('name', '')}[/]",
        f"Logo:     {logo}",
        f"Backups:  {len(settings.backups(Keys.ADMIN))}/{cfg.storage.backup_retention} kept",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Settings[/]", expand=False))
