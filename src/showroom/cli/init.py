"""showroom init: create the local store and a starter config.

Creates:
  .showroom.db     local store (assets, share links, settings) with schema
  showroom.yaml    project config (share:, images:, storage:)

Re-running init on an existing project brings the schema up to date and keeps
all data and an existing showroom.yaml.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from showroom.config import DEFAULT_DB_NAME, PROJECT_CONFIG_NAME, write_project_config
from showroom.db.schema import open_database
from showroom.settings import DEFAULTS, SettingsStore

console = Console()

_DEFAULT_PROJECT_DIR = Path(".")


def init_cmd(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Directory to initialize. Defaults to current directory."),
    ] = _DEFAULT_PROJECT_DIR,
    base_url: Annotated[
        str | None,
        typer.Option("--base-url", help="Page URL that share links point at."),
    ] = None,
) -> None:
    """Initialize a showroom project: local store + showroom.yaml."""
    project_dir = project_dir.resolve()
    project_dir.mkdir(parents=True, exist_ok=True)
    db_path = project_dir / DEFAULT_DB_NAME

    existed = db_path.exists()
    if existed:
        console.print(f"[yellow]⚠[/]  {db_path} already exists. Existing data is preserved.")

    conn = open_database(db_path)
    try:
        settings = SettingsStore(conn)
        for key, factory in DEFAULTS.items():
            if settings.load_raw(key) is None:
                settings.save(key, factory())
    finally:
        conn.close()
    console.print(f"  [green]✓[/] {DEFAULT_DB_NAME}" + (" (schema up to date)" if existed else ""))

    cfg_path = project_dir / PROJECT_CONFIG_NAME
    if cfg_path.exists():
        console.print(f"  [dim]–[/] {PROJECT_CONFIG_NAME} (kept)")
    else:
        write_project_config(project_dir, base_url)
        console.print(f"  [green]✓[/] {PROJECT_CONFIG_NAME}")

    console.print(f"\n[bold green]✓ Showroom project initialized in {project_dir}.[/]")
    console.print("\nNext steps:")
    console.print("  1. showroom assets upload <file>...            (store logos and renders)")
    console.print("  2. showroom share create --role client         (managed link)")
    console.print("  3. showroom share embed --form proposal.json   (self-contained link)")
