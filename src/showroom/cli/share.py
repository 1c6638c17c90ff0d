"""showroom share CLI commands.

Commands:
  showroom share create     managed link (stored locally, revocable, expiring)
  showroom share embed      self-contained link (document encoded in the URL)
  showroom share list       show managed links with access statistics
  showroom share revoke ID  invalidate a managed link for good
  showroom share open URL   apply an inbound share URL and show the result
  showroom share sweep      remove expired managed links now
"""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from showroom.cli.context import (
    build_service,
    format_ms,
    load_cfg_or_exit,
    open_db_or_exit,
    read_json_object,
    resolve_db,
)
from showroom.cli.errors import (
    err_invalid_choice,
    err_link_not_found,
    err_permission,
    err_storage,
    warn_long_link,
)
from showroom.db.connection import StorageWriteError
from showroom.settings import Keys, SettingsStore, apply_default_logo
from showroom.share.document import DocumentState
from showroom.share.roles import DEFAULT_SHARE_MODE, DEFAULT_SHARE_ROLE

console = Console()

share_app = typer.Typer(
    name="share",
    help="Create, inspect and open share links.",
    add_completion=False,
)

_DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Path to .showroom.db (default: storage.db_path)."),
]
_AsOption = Annotated[
    str,
    typer.Option("--as", help="Role you are acting as (checked against role-config)."),
]
_RoleOption = Annotated[
    str,
    typer.Option("--role", "-r", help="Role the viewer gets: admin, agent or client."),
]
_ModeOption = Annotated[
    str,
    typer.Option("--mode", "-m", help="View mode the viewer gets: edit or presentation."),
]
_LabelOption = Annotated[str, typer.Option("--label", help="Display label.")]
_FormOption = Annotated[
    Path | None,
    typer.Option("--form", help="JSON file with the document fields to share."),
]


@share_app.command("create")
def share_create_cmd(
    role: _RoleOption = DEFAULT_SHARE_ROLE,
    mode: _ModeOption = DEFAULT_SHARE_MODE,
    expires_in: Annotated[
        int | None,
        typer.Option("--expires-in", help="Lifetime in milliseconds (default: share.default_expiry_ms)."),
    ] = None,
    label: _LabelOption = "",
    form: _FormOption = None,
    show_role_indicator: Annotated[
        bool,
        typer.Option("--show-role-indicator", help="Show the viewer's role badge."),
    ] = False,
    allow_edit: Annotated[
        bool, typer.Option("--allow-edit", help="Mark the link as editable.")
    ] = False,
    acting_as: _AsOption = "admin",
    db: _DbOption = None,
) -> None:
    """Create a managed share link and print its URL."""
    cfg = load_cfg_or_exit()
    form_data = read_json_object(form) if form is not None else {}
    conn = open_db_or_exit(resolve_db(db, cfg))
    try:
        service = build_service(
            conn, cfg, document=DocumentState(role=acting_as, form_data=form_data)
        )
        try:
            created = service.create_managed_link(
                role=role,
                mode=mode,
                expires_in=expires_in,
                label=label,
                capture_document=form is not None,
                allow_edit=allow_edit,
                show_role_indicator=show_role_indicator,
            )
        except PermissionError:
            console.print(err_permission(acting_as, "create share links"))
            raise typer.Exit(1)
        except ValueError as exc:
            console.print(err_invalid_choice(str(exc)))
            raise typer.Exit(1)
        except StorageWriteError as exc:
            console.print(err_storage(str(exc)))
            raise typer.Exit(1)
    finally:
        conn.close()

    link = created.link
    console.print(f"[green]✓[/] {link.label}")
    console.print(f"  id:       {link.id}")
    console.print(f"  viewer:   {link.role} / {link.mode}")
    console.print(f"  expires:  {format_ms(link.expires_at)}")
    typer.echo(created.url)


@share_app.command("embed")
def share_embed_cmd(
    role: _RoleOption = DEFAULT_SHARE_ROLE,
    mode: _ModeOption = DEFAULT_SHARE_MODE,
    label: _LabelOption = "",
    form: _FormOption = None,
    images: Annotated[
        Path | None,
        typer.Option(
            "--images",
            help="JSON file mapping image keys to data URIs, asset:<id> refs or URLs.",
        ),
    ] = None,
    include_images: Annotated[
        bool,
        typer.Option("--include-images", help="Embed images in the link (much longer URL)."),
    ] = False,
    compress: Annotated[
        bool,
        typer.Option("--compress/--no-compress", help="Downscale embedded images first."),
    ] = True,
    local: Annotated[
        bool,
        typer.Option("--local", help="Keep the snapshot in the local store; URL carries an id."),
    ] = False,
    acting_as: _AsOption = "admin",
    db: _DbOption = None,
) -> None:
    """Encode the document into a self-contained share link and print it."""
    cfg = load_cfg_or_exit()
    document = DocumentState(
        role=acting_as,
        form_data=read_json_object(form) if form is not None else {},
        images={k: str(v) for k, v in read_json_object(images).items()} if images else {},
    )
    conn = open_db_or_exit(resolve_db(db, cfg))
    try:
        service = build_service(conn, cfg, document=document)
        if "logo" not in document.images:
            apply_default_logo(document, SettingsStore(conn).load(Keys.ADMIN))
        try:
            if local:
                url = service.create_local_snapshot_link(
                    role, mode, label, include_images, compress
                ).url
                warning = None
            else:
                with warnings.catch_warnings():
                    warnings.simplefilter("ignore", UserWarning)
                    embedded = service.create_embedded_link(
                        role, mode, label, include_images, compress
                    )
                url, warning = embedded.url, embedded.warning
        except PermissionError:
            console.print(err_permission(acting_as, "create share links"))
            raise typer.Exit(1)
        except ValueError as exc:
            console.print(err_invalid_choice(str(exc)))
            raise typer.Exit(1)
        except StorageWriteError as exc:
            console.print(err_storage(str(exc)))
            raise typer.Exit(1)
    finally:
        conn.close()

    if warning:
        console.print(warn_long_link(len(url), cfg.share.max_snapshot_url_length))
    typer.echo(url)


@share_app.command("list")
def share_list_cmd(acting_as: _AsOption = "admin", db: _DbOption = None) -> None:
    """List managed share links with access statistics."""
    cfg = load_cfg_or_exit()
    conn = open_db_or_exit(resolve_db(db, cfg))
    try:
        service = build_service(conn, cfg, role=acting_as)
        try:
            links = service.list_links()
        except PermissionError:
            console.print(err_permission(acting_as, "list share links"))
            raise typer.Exit(1)
    finally:
        conn.close()

    if not links:
        console.print("[yellow]No share links.[/]\n  Run:  showroom share create")
        raise typer.Exit(0)

    table = Table(title="Share Links", show_header=True, header_style="bold")
    table.add_column("ID", style="dim")
    table.add_column("Label", style="bold")
    table.add_column("Viewer")
    table.add_column("Expires")
    table.add_column("Accesses", justify="right")
    table.add_column("Last access")
    table.add_column("Status")
    for link in links:
        status = "[red]expired[/]" if link.is_expired else "[green]active[/]"
        table.add_row(
            link.id,
            link.label,
            f"{link.role}/{link.mode}",
            format_ms(link.expires_at),
            str(link.access_count),
            format_ms(link.last_accessed) if link.last_accessed else "",
            status,
        )
    console.print(table)

    active = sum(1 for link in links if not link.is_expired)
    console.print(f"\n  {active}/{len(links)} active")


@share_app.command("revoke")
def share_revoke_cmd(
    link_id: Annotated[str, typer.Argument(help="Link id (sl_...).")],
    acting_as: _AsOption = "admin",
    db: _DbOption = None,
) -> None:
    """Revoke a managed link. Revoked ids never become valid again."""
    cfg = load_cfg_or_exit()
    conn = open_db_or_exit(resolve_db(db, cfg))
    try:
        service = build_service(conn, cfg, role=acting_as)
        try:
            removed = service.revoke_link(link_id)
        except PermissionError:
            console.print(err_permission(acting_as, "revoke share links"))
            raise typer.Exit(1)
    finally:
        conn.close()

    if not removed:
        console.print(err_link_not_found(link_id))
        raise typer.Exit(1)
    console.print(f"[green]✓[/] Revoked {link_id}")


@share_app.command("open")
def share_open_cmd(
    url: Annotated[str, typer.Argument(help="Share URL to open.")],
    db: _DbOption = None,
) -> None:
    """Resolve a share URL the way a visitor's page would and show what it applies."""
    cfg = load_cfg_or_exit()
    conn = open_db_or_exit(resolve_db(db, cfg))
    try:
        service = build_service(conn, cfg)
        try:
            result = service.resolve_inbound_url(url)
        except StorageWriteError as exc:
            console.print(err_storage(str(exc)))
            raise typer.Exit(1)
    finally:
        conn.close()

    if result.error:
        # Non-blocking: the page would still load with its defaults.
        console.print(f"[red]{result.error}[/]")
    if not result.applied:
        if not result.error:
            console.print("[yellow]No share reference in this URL.[/]")
        raise typer.Exit(0)

    console.print(f"[green]✓[/] {result.message}")
    console.print(f"  role:            {result.role}")
    console.print(f"  mode:            {result.mode}")
    console.print(f"  share controls:  {'shown' if result.show_share_controls else 'hidden'}")
    if result.link is not None:
        console.print(f"  accesses:        {result.link.access_count}")

    document = service.document
    if document.form_data:
        table = Table(title="Document", show_header=True, header_style="bold")
        table.add_column("Field", style="bold")
        table.add_column("Value")
        for key, value in document.form_data.items():
            table.add_row(str(key), str(value))
        console.print(table)
    if document.images:
        console.print(f"  images:          {', '.join(sorted(document.images))}")


@share_app.command("sweep")
def share_sweep_cmd(db: _DbOption = None) -> None:
    """Remove every expired managed link now."""
    cfg = load_cfg_or_exit()
    conn = open_db_or_exit(resolve_db(db, cfg))
    try:
        removed = build_service(conn, cfg).sweep()
    finally:
        conn.close()
    console.print(f"[green]✓[/] Removed {removed} expired link(s)")
