"""SQLite connection layer: the local durable store behind every showroom key."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path


class StorageWriteError(RuntimeError):
    """Raised when the local store refuses a write (disk full, read-only, locked).

    The message is meant to be shown to the user as-is; the triggering operation
    has been abandoned and is not retried.
    """


class Database:
    """Per-project SQLite database holding assets, share links and settings."""

    def __init__(self, db_path: Path | str) -> None:
        """Store the database path. Call connect() to open the connection.

        Args:
            db_path: Path to the SQLite database file (created if missing).
        """
        self.db_path = Path(db_path)

    def connect(self) -> sqlite3.Connection:
        """Open a connection with row access by column name and return it."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        return conn


@contextmanager
def write_guard(conn: sqlite3.Connection, action: str) -> Iterator[sqlite3.Connection]:
    """Commit on success; roll back and raise StorageWriteError on a failed write.

    Integrity errors are left alone so callers can treat them as logic errors.
    """
    try:
        yield conn
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise
    except (sqlite3.OperationalError, sqlite3.DatabaseError) as exc:
        conn.rollback()
        raise StorageWriteError(
            f"Could not save {action}: {exc}. "
            "Free up disk space or reduce image sizes, then try again."
        ) from exc
