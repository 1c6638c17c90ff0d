"""Showroom rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from showroom.cli.errors import err_no_db
    console.print(err_no_db(".showroom.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_db(db_path: str = ".showroom.db") -> str:
    """No .showroom.db found."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  showroom init"
    )


def err_config(message: str) -> str:
    """Config file is invalid."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {message}\n"
        "  Fix showroom.yaml (or ~/.showroom/config.yaml) and try again."
    )


def err_storage(message: str) -> str:
    """Local store refused a write."""
    return f"[red]Error:[/] {message}"


def err_file_not_found(path: str) -> str:
    return (
        f"[red]Error:[/] File not found: '{path}'\n"
        "  Check the path and try again."
    )


def err_invalid_json(path: str, detail: str) -> str:
    """A JSON input file does not parse or has the wrong shape."""
    return (
        f"[red]Error:[/] '{path}' is not a usable JSON object: {detail}\n"
        '  Expected an object such as:  {"title": "Kitchen remodel"}'
    )


def err_permission(role: str, action: str) -> str:
    """Permission oracle refused the action for the current role."""
    return (
        f"[red]Error:[/] Role '{role}' may not {action}.\n"
        "  Run the command with --as admin (or agent), or grant 'share' to this role\n"
        "  in the role-config settings."
    )


def err_invalid_choice(detail: str) -> str:
    """Unknown role or mode."""
    return (
        f"[red]Error:[/] {detail}\n"
        "  Use:  --role admin|agent|client  --mode edit|presentation"
    )


def err_asset_not_found(asset_id: str) -> str:
    return (
        f"[yellow]Asset not found:[/] '{asset_id}' is not in the store.\n"
        "  Run:  showroom assets list  to see stored assets."
    )


def err_link_not_found(link_id: str) -> str:
    return (
        f"[yellow]Link not found:[/] '{link_id}' is not an active share link.\n"
        "  Run:  showroom share list  to see active links."
    )


def warn_long_link(length: int, limit: int) -> str:
    """Embedded link exceeds the practical URL length."""
    return (
        f"[yellow]⚠[/] Link is long ({length} chars, limit {limit}). "
        "Some apps may truncate it.\n"
        "  Leave out images, or use:  showroom share create  for a short managed link."
    )
