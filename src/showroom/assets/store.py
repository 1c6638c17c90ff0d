"""Content-addressed asset store.

Every asset is keyed by the SHA-256 hex digest of its bytes, so uploading the
same file twice yields the same id and a single record. Stored payloads are never
rewritten: a put for an existing id returns the stored record untouched, name and
type included.

The `asset:<id>` URL scheme used by documents resolves through ``resolve_ref()``.
"""

from __future__ import annotations

import hashlib
import mimetypes
import sqlite3
from collections.abc import Callable
from pathlib import Path

from showroom.assets.datauri import DEFAULT_MIME, to_data_uri
from showroom.db.connection import StorageWriteError, write_guard
from showroom.db.models import Asset, now_ms

ASSET_SCHEME = "asset:"

_COLUMNS = "id, name, mime_type, size_bytes, created_at, payload"


def content_hash(data: bytes) -> str:
    """Return the content address (SHA-256 hex digest) of *data*."""
    return hashlib.sha256(data).hexdigest()


def asset_ref(asset_id: str) -> str:
    """Return the ``asset:<id>`` reference used inside document image maps."""
    return f"{ASSET_SCHEME}{asset_id}"


class AssetStore:
    """Durable store for binary design assets (logos, renders, floor plans).

    Wraps an open sqlite3.Connection; the connection is owned by the caller.

    Args:
        conn: Connection with the showroom schema initialised.
        clock: Returns the current time in epoch milliseconds (injectable for tests).
    """

    def __init__(self, conn: sqlite3.Connection, clock: Callable[[], int] = now_ms) -> None:
        self._conn = conn
        self._clock = clock

    def put(self, data: bytes, name: str | None = None, mime_type: str | None = None) -> Asset:
        """Store *data* and return its Asset record (idempotent).

        If an asset with the same content hash exists it is returned unchanged.

        Args:
            data: Raw bytes of the upload.
            name: Display name; defaults to ``asset-<first 8 hex chars>``.
            mime_type: MIME type; defaults to ``application/octet-stream``.

        Raises:
            StorageWriteError: If the database refuses the write.
        """
        asset_id = content_hash(data)
        existing = self.get(asset_id)
        if existing is not None:
            return existing

        # Two callers can both miss above; INSERT OR IGNORE keeps the first writer's
        # row and the re-read below returns whichever row won.
        with write_guard(self._conn, f"asset '{name or asset_id[:8]}'"):
            self._conn.execute(
                f"INSERT OR IGNORE INTO assets ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    asset_id,
                    name or f"asset-{asset_id[:8]}",
                    mime_type or DEFAULT_MIME,
                    len(data),
                    self._clock(),
                    sqlite3.Binary(data),
                ),
            )
        stored = self.get(asset_id)
        if stored is None:
            raise StorageWriteError(
                f"Could not save asset '{name or asset_id[:8]}': row missing after write"
            )
        return stored

    def put_file(self, path: Path, mime_type: str | None = None) -> Asset:
        """Read *path* and store its bytes under the file's name."""
        guessed = mime_type or mimetypes.guess_type(path.name)[0]
        return self.put(path.read_bytes(), name=path.name, mime_type=guessed)

    def get(self, asset_id: str) -> Asset | None:
        """Return the asset with *asset_id*, or None if there is no such asset."""
        row = self._conn.execute(
            f"SELECT {_COLUMNS} FROM assets WHERE id = ?", (asset_id,)
        ).fetchone()
        return _row_to_asset(row) if row else None

    def list(self) -> list[Asset]:
        """Return all assets, most recently created first."""
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM assets ORDER BY created_at DESC, rowid DESC"
        ).fetchall()
        return [_row_to_asset(r) for r in rows]

    def count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM assets").fetchone()[0]

    def delete(self, asset_id: str) -> bool:
        """Delete an asset. Returns True if it existed."""
        with write_guard(self._conn, "asset deletion"):
            cur = self._conn.execute("DELETE FROM assets WHERE id = ?", (asset_id,))
        return cur.rowcount > 0

    def resolve_to_displayable(self, asset_id: str) -> str:
        """Return a ``data:`` URI for the asset, or ``""`` if it does not exist."""
        asset = self.get(asset_id)
        if asset is None:
            return ""
        return to_data_uri(asset.payload, asset.mime_type)

    def resolve_ref(self, src: str) -> str:
        """Resolve an ``asset:<id>`` reference to a data URI; pass anything else through."""
        if src and src.startswith(ASSET_SCHEME):
            return self.resolve_to_displayable(src[len(ASSET_SCHEME):])
        return src


def _row_to_asset(row: sqlite3.Row) -> Asset:
    return Asset(
        id=row["id"],
        name=row["name"],
        mime_type=row["mime_type"],
        size_bytes=row["size_bytes"],
        created_at=row["created_at"],
        payload=bytes(row["payload"]),
    )
