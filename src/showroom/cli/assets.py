"""showroom assets CLI commands.

Commands:
  showroom assets upload FILE...        store files (deduplicated by content)
  showroom assets list                  show stored assets
  showroom assets show ID [--data-uri]  show one asset, optionally as a data URI
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from showroom.assets.store import AssetStore
from showroom.cli.context import format_ms, load_cfg_or_exit, open_db_or_exit, resolve_db
from showroom.cli.errors import err_asset_not_found, err_file_not_found, err_storage
from showroom.db.connection import StorageWriteError

console = Console()

assets_app = typer.Typer(
    name="assets",
    help="Manage stored design assets (upload, list, show).",
    add_completion=False,
)

_DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Path to .showroom.db (default: storage.db_path)."),
]


@assets_app.command("upload")
def assets_upload_cmd(
    files: Annotated[list[Path], typer.Argument(help="Files to store.")],
    db: _DbOption = None,
) -> None:
    """Store one or more files. Identical content is stored once."""
    cfg = load_cfg_or_exit()
    conn = open_db_or_exit(resolve_db(db, cfg))
    try:
        store = AssetStore(conn)
        for path in files:
            if not path.is_file():
                console.print(err_file_not_found(str(path)))
                raise typer.Exit(1)
            before = store.count()
            try:
                asset = store.put_file(path)
            except StorageWriteError as exc:
                console.print(err_storage(str(exc)))
                raise typer.Exit(1)
            if store.count() > before:
                console.print(f"  [green]✓[/] {asset.name}  [dim]{asset.id}[/]")
            else:
                console.print(f"  [dim]=[/] {asset.name}  [dim]{asset.id}[/]  (already stored)")
    finally:
        conn.close()


@assets_app.command("list")
def assets_list_cmd(db: _DbOption = None) -> None:
    """List stored assets, newest first."""
    cfg = load_cfg_or_exit()
    conn = open_db_or_exit(resolve_db(db, cfg))
    try:
        assets = AssetStore(conn).list()
    finally:
        conn.close()

    if not assets:
        console.print("[yellow]No assets stored yet.[/]\n  Run:  showroom assets upload <file>")
        raise typer.Exit(0)

    table = Table(title="Assets", show_header=True, header_style="bold")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("Created")
    for a in assets:
        table.add_row(
            a.id[:12],
            a.name,
            a.mime_type,
            _human_size(a.size_bytes),
            format_ms(a.created_at),
        )
    console.print(table)
    console.print(f"\n  {len(assets)} asset(s)")


@assets_app.command("show")
def assets_show_cmd(
    asset_id: Annotated[str, typer.Argument(help="Asset id (full SHA-256 hex).")],
    data_uri: Annotated[
        bool,
        typer.Option("--data-uri", help="Print the asset as a data: URI."),
    ] = False,
    db: _DbOption = None,
) -> None:
    """Show one asset."""
    cfg = load_cfg_or_exit()
    conn = open_db_or_exit(resolve_db(db, cfg))
    try:
        store = AssetStore(conn)
        asset = store.get(asset_id)
        if asset is None:
            console.print(err_asset_not_found(asset_id))
            raise typer.Exit(1)
        if data_uri:
            typer.echo(store.resolve_to_displayable(asset_id))
            return
    finally:
        conn.close()

    console.print(f"[bold]{asset.name}[/]")
    console.print(f"  id:       {asset.id}")
    console.print(f"  type:     {asset.mime_type}")
    console.print(f"  size:     {_human_size(asset.size_bytes)}")
    console.print(f"  created:  {format_ms(asset.created_at)}")
    console.print(f"  ref:      asset:{asset.id}")


def _human_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"
