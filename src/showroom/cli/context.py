"""Shared plumbing for showroom commands: config, database and service wiring."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from showroom.assets.store import AssetStore
from showroom.cli.errors import err_config, err_file_not_found, err_invalid_json, err_no_db
from showroom.config import ConfigError, ShowroomConfig, load_config
from showroom.db.schema import open_database
from showroom.settings import Keys, SettingsStore, share_permission
from showroom.share.compressor import ImageCompressor
from showroom.share.document import DocumentState
from showroom.share.registry import LinkRegistry
from showroom.share.service import ShareService
from showroom.share.snapshots import LocalSnapshotStore

console = Console()


def load_cfg_or_exit() -> ShowroomConfig:
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def resolve_db(db: Path | None, cfg: ShowroomConfig) -> Path:
    """--db wins; otherwise storage.db_path relative to the working directory."""
    return db if db is not None else cfg.db_path_for(Path.cwd())


def open_db_or_exit(db_path: Path) -> sqlite3.Connection:
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)
    return open_database(db_path)


def read_json_object(path: Path) -> dict[str, Any]:
    """Read a JSON object from *path*, exiting with a readable error otherwise."""
    if not path.exists():
        console.print(err_file_not_found(str(path)))
        raise typer.Exit(1)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        console.print(err_invalid_json(str(path), f"not UTF-8 text: {exc}"))
        raise typer.Exit(1)
    except json.JSONDecodeError as exc:
        console.print(err_invalid_json(str(path), str(exc)))
        raise typer.Exit(1)
    if not isinstance(data, dict):
        console.print(err_invalid_json(str(path), "top level is not an object"))
        raise typer.Exit(1)
    return data


def build_service(
    conn: sqlite3.Connection,
    cfg: ShowroomConfig,
    role: str = "admin",
    document: DocumentState | None = None,
) -> ShareService:
    """Wire a ShareService over *conn* using *cfg* and the stored role permissions."""
    settings = SettingsStore(conn, backup_retention=cfg.storage.backup_retention)
    return ShareService(
        registry=LinkRegistry(
            conn,
            default_expiry_ms=cfg.share.default_expiry_ms,
            max_lifetime_ms=cfg.share.max_expiry_ms,
            sweep_interval_ms=cfg.share.sweep_interval_s * 1000,
        ),
        document=document or DocumentState(role=role),
        assets=AssetStore(conn),
        local_snapshots=LocalSnapshotStore(conn),
        compressor=ImageCompressor(
            max_dimension_px=cfg.images.max_dimension_px, quality=cfg.images.quality
        ),
        base_url=cfg.share.base_url,
        max_snapshot_url_length=cfg.share.max_snapshot_url_length,
        can_share=share_permission(settings.load(Keys.ROLES)),
    )


def format_ms(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")
