"""Showroom CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from showroom.cli.assets import assets_app
from showroom.cli.backup import backup_app
from showroom.cli.init import init_cmd
from showroom.cli.share import share_app
from showroom.cli.status import status_cmd


def _version_callback(value: bool) -> None:
    if value:
        try:
            ver = importlib.metadata.version("showroom")
        except importlib.metadata.PackageNotFoundError:
            ver = "dev"
        typer.echo(f"showroom {ver}")
        raise typer.Exit()


app = typer.Typer(
    name="showroom",
    help=(
        "Showroom: design asset store and server-free share links.\n\n"
        "  showroom share create  Managed link: short URL, revocable, expiring.\n"
        "  showroom share embed   Self-contained link: the document travels in the URL."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Showroom: design asset store and server-free share links."""


app.command("init")(init_cmd)
app.command("status")(status_cmd)
app.add_typer(assets_app, name="assets")
app.add_typer(share_app, name="share")
app.add_typer(backup_app, name="backup")


if __name__ == "__main__":
    app()
