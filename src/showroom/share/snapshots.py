"""Local snapshot references for the ``#share=<32-hex-id>`` fragment scheme.

Instead of carrying the whole encoded snapshot, the URL carries a random hex id
and the token stays in the local store.
"""

from __future__ import annotations

import re
import secrets
import sqlite3
from collections.abc import Callable

from showroom.db.connection import write_guard
from showroom.db.models import now_ms

_HEX_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def is_local_snapshot_id(value: str) -> bool:
    return bool(_HEX_ID_RE.match(value or ""))


class LocalSnapshotStore:
    """Maps 32-hex ids to encoded snapshot tokens."""

    def __init__(self, conn: sqlite3.Connection, clock: Callable[[], int] = now_ms) -> None:
        self._conn = conn
        self._clock = clock

    def save(self, token: str) -> str:
        """Store *token* under a new random id and return the id."""
        snapshot_id = secrets.token_hex(16)
        with write_guard(self._conn, "local snapshot"):
            self._conn.execute(
                "INSERT INTO local_snapshots (id, token, created_at) VALUES (?, ?, ?)",
                (snapshot_id, token, self._clock()),
            )
        return snapshot_id

    def load(self, snapshot_id: str) -> str | None:
        """Return the token stored under *snapshot_id*, or None."""
        if not is_local_snapshot_id(snapshot_id):
            return None
        row = self._conn.execute(
            "SELECT token FROM local_snapshots WHERE id = ?", (snapshot_id,)
        ).fetchone()
        return row["token"] if row else None

    def delete(self, snapshot_id: str) -> bool:
        with write_guard(self._conn, "local snapshot removal"):
            cur = self._conn.execute("DELETE FROM local_snapshots WHERE id = ?", (snapshot_id,))
        return cur.rowcount > 0
