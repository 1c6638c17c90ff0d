"""showroom backup CLI commands.

Commands:
  showroom backup export OUT.json [--no-assets]  write settings (+ assets) to a file
  showroom backup import IN.json                 restore settings and assets
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from showroom.assets.store import AssetStore
from showroom.backup import BackupError, import_backup, read_backup, write_backup
from showroom.cli.context import load_cfg_or_exit, open_db_or_exit, resolve_db
from showroom.cli.errors import err_file_not_found, err_invalid_json, err_storage
from showroom.db.connection import StorageWriteError
from showroom.settings import SettingsStore

console = Console()

backup_app = typer.Typer(
    name="backup",
    help="Export and import settings + assets backups.",
    add_completion=False,
)

_DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Path to .showroom.db (default: storage.db_path)."),
]


@backup_app.command("export")
def backup_export_cmd(
    output: Annotated[Path, typer.Argument(help="Backup file to write.")],
    with_assets: Annotated[
        bool,
        typer.Option("--assets/--no-assets", help="Include stored assets as data URIs."),
    ] = True,
    db: _DbOption = None,
) -> None:
    """Write admin settings and (optionally) all assets to a JSON backup."""
    cfg = load_cfg_or_exit()
    conn = open_db_or_exit(resolve_db(db, cfg))
    try:
        settings = SettingsStore(conn, backup_retention=cfg.storage.backup_retention)
        payload = write_backup(output, settings, AssetStore(conn) if with_assets else None)
    finally:
        conn.close()

    count = len(payload.get("assets", []))
    console.print(f"[green]✓[/] Backup written to {output}  ({count} asset(s))")


@backup_app.command("import")
def backup_import_cmd(
    source: Annotated[Path, typer.Argument(help="Backup file to import.")],
    db: _DbOption = None,
) -> None:
    """Restore admin settings and assets from a JSON backup."""
    if not source.exists():
        console.print(err_file_not_found(str(source)))
        raise typer.Exit(1)

    cfg = load_cfg_or_exit()
    try:
        payload = read_backup(source)
    except BackupError as exc:
        console.print(err_invalid_json(str(source), str(exc)))
        raise typer.Exit(1)

    conn = open_db_or_exit(resolve_db(db, cfg))
    try:
        settings = SettingsStore(conn, backup_retention=cfg.storage.backup_retention)
        summary = import_backup(payload, settings, AssetStore(conn))
    except StorageWriteError as exc:
        console.print(err_storage(str(exc)))
        raise typer.Exit(1)
    finally:
        conn.close()

    console.print("[green]✓[/] Import completed")
    console.print(f"  settings:  {'restored' if summary.settings_restored else 'unchanged'}")
    console.print(f"  assets:    {summary.assets_imported} imported, {summary.assets_skipped} skipped")
