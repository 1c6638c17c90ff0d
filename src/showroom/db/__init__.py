"""showroom database layer."""

from showroom.db.connection import Database, StorageWriteError, write_guard
from showroom.db.migrations import MIGRATIONS, run_migrations
from showroom.db.models import Asset, ShareLink, now_ms
from showroom.db.schema import initialize, open_database

__all__ = [
    "Database",
    "StorageWriteError",
    "write_guard",
    "initialize",
    "open_database",
    "run_migrations",
    "MIGRATIONS",
    "Asset",
    "ShareLink",
    "now_ms",
]
