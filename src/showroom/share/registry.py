"""Registry of locally issued (managed) share links.

A managed link lives in the local store; the URL carries only its id. Links end
either by expiry (detected lazily, on access or by a sweep) or by revocation.
Both remove the row and tombstone the id so it is never valid, or issued, again.
"""

from __future__ import annotations

import json
import secrets
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from showroom.db.connection import write_guard
from showroom.db.models import ShareLink, now_ms
from showroom.share.roles import (
    DEFAULT_SHARE_MODE,
    DEFAULT_SHARE_ROLE,
    normalize_mode,
    normalize_role,
)

DAY_MS = 24 * 60 * 60 * 1000
DEFAULT_EXPIRY_MS = 7 * DAY_MS
MAX_LIFETIME_MS = 30 * DAY_MS
DEFAULT_SWEEP_INTERVAL_MS = 60_000

REASON_NOT_FOUND = "not found"
REASON_EXPIRED = "expired"

_LINK_ID_PREFIX = "sl_"
_COLUMNS = (
    "id, created_at, expires_at, created_by, role, mode, label, allow_edit, "
    "show_role_indicator, payload, access_count, last_accessed"
)


@dataclass(frozen=True)
class ResolveResult:
    """Outcome of LinkRegistry.resolve().

    ``link`` is set when ``valid``; ``reason`` ("not found" | "expired") otherwise.
    """

    valid: bool
    link: ShareLink | None = None
    reason: str | None = None


def new_link_id() -> str:
    """Return a fresh random link id (128 bits of entropy)."""
    return _LINK_ID_PREFIX + secrets.token_hex(16)


def is_expired(link: ShareLink, now: int) -> bool:
    """A link is expired once *now* is past ``expires_at``.

    A zero-lifetime link is expired from the moment it is created.
    """
    return now > link.expires_at or link.expires_at == link.created_at


class LinkRegistry:
    """Durable catalogue of managed share links.

    Args:
        conn: Connection with the showroom schema initialised.
        clock: Returns the current time in epoch milliseconds.
        default_expiry_ms: Lifetime used when ``create()`` gets no ``expires_in``.
        max_lifetime_ms: Upper clamp for ``expires_in``.
        sweep_interval_ms: Minimum gap between automatic expiry sweeps.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        clock: Callable[[], int] = now_ms,
        default_expiry_ms: int = DEFAULT_EXPIRY_MS,
        max_lifetime_ms: int = MAX_LIFETIME_MS,
        sweep_interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS,
    ) -> None:
        self._conn = conn
        self._clock = clock
        self.default_expiry_ms = default_expiry_ms
        self.max_lifetime_ms = max_lifetime_ms
        self.sweep_interval_ms = sweep_interval_ms
        self._last_sweep: int | None = None

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(
        self,
        role: str = DEFAULT_SHARE_ROLE,
        mode: str = DEFAULT_SHARE_MODE,
        expires_in: int | None = None,
        label: str = "",
        payload: dict[str, Any] | None = None,
        allow_edit: bool = False,
        show_role_indicator: bool = False,
        created_by: str = "admin",
    ) -> ShareLink:
        """Issue and persist a new managed link.

        Args:
            role: Role the viewer is switched to.
            mode: View mode the viewer is switched to.
            expires_in: Lifetime in milliseconds, clamped to ``[0, max_lifetime_ms]``.
            label: Display label; defaults to "<role> link created <date>".
            payload: Optional document state captured with the link.

        Raises:
            ValueError: On unknown role or mode.
            StorageWriteError: If the link cannot be saved.
        """
        self._maybe_sweep()
        role = normalize_role(role)
        mode = normalize_mode(mode)
        lifetime = self.default_expiry_ms if expires_in is None else int(expires_in)
        lifetime = max(0, min(lifetime, self.max_lifetime_ms))

        now = self._clock()
        link = ShareLink(
            id=self._unused_id(),
            created_at=now,
            expires_at=now + lifetime,
            created_by=created_by,
            role=role,
            mode=mode,
            label=label or f"{role} link created {_format_day(now)}",
            allow_edit=allow_edit,
            show_role_indicator=show_role_indicator,
            payload=json.dumps(payload, ensure_ascii=False) if payload is not None else None,
        )
        with write_guard(self._conn, "share link"):
            self._conn.execute(
                f"INSERT INTO share_links ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    link.id,
                    link.created_at,
                    link.expires_at,
                    link.created_by,
                    link.role,
                    link.mode,
                    link.label,
                    int(link.allow_edit),
                    int(link.show_role_indicator),
                    link.payload,
                    link.access_count,
                    link.last_accessed,
                ),
            )
        return link

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, link_id: str) -> ShareLink | None:
        """Return the stored link without touching access statistics or expiry."""
        row = self._conn.execute(
            f"SELECT {_COLUMNS} FROM share_links WHERE id = ?", (link_id,)
        ).fetchone()
        return _row_to_link(row) if row else None

    def resolve(self, link_id: str) -> ResolveResult:
        """Validate *link_id* for a visitor and record the access.

        Expired links are removed on the spot. A valid resolve increments
        ``access_count`` and sets ``last_accessed`` to now. Other expired links
        are swept afterwards when the sweep interval has elapsed.
        """
        link = self.get(link_id)
        if link is None:
            self._maybe_sweep()
            return ResolveResult(valid=False, reason=REASON_NOT_FOUND)

        now = self._clock()
        if is_expired(link, now):
            self._remove(link_id, REASON_EXPIRED)
            self._maybe_sweep()
            return ResolveResult(valid=False, reason=REASON_EXPIRED)

        with write_guard(self._conn, "link access"):
            self._conn.execute(
                "UPDATE share_links SET access_count = access_count + 1, last_accessed = ? "
                "WHERE id = ?",
                (now, link_id),
            )
        link.access_count += 1
        link.last_accessed = now
        self._maybe_sweep()
        return ResolveResult(valid=True, link=link)

    def list(self) -> list[ShareLink]:
        """Return every stored link (newest first) with ``is_expired`` filled in."""
        now = self._clock()
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM share_links ORDER BY created_at DESC, rowid DESC"
        ).fetchall()
        links = [_row_to_link(r) for r in rows]
        for link in links:
            link.is_expired = is_expired(link, now)
        return links

    # ------------------------------------------------------------------
    # Termination
    # ------------------------------------------------------------------

    def revoke(self, link_id: str) -> bool:
        """Delete a link. Returns True if it existed."""
        return self._remove(link_id, "revoked")

    def sweep_expired(self) -> int:
        """Remove every expired link. Returns the number removed."""
        now = self._clock()
        self._last_sweep = now
        expired = [
            r["id"]
            for r in self._conn.execute(
                "SELECT id FROM share_links WHERE expires_at < ? OR expires_at = created_at",
                (now,),
            ).fetchall()
        ]
        for link_id in expired:
            self._remove(link_id, REASON_EXPIRED)
        return len(expired)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _maybe_sweep(self) -> None:
        """Run sweep_expired() if sweep_interval_ms has elapsed since the last sweep."""
        now = self._clock()
        if self._last_sweep is None or now - self._last_sweep >= self.sweep_interval_ms:
            self.sweep_expired()

    def _remove(self, link_id: str, reason: str) -> bool:
        with write_guard(self._conn, "share link removal"):
            cur = self._conn.execute("DELETE FROM share_links WHERE id = ?", (link_id,))
            if cur.rowcount:
                self._conn.execute(
                    "INSERT OR IGNORE INTO retired_link_ids (id, retired_at, reason) "
                    "VALUES (?, ?, ?)",
                    (link_id, self._clock(), reason),
                )
        return cur.rowcount > 0

    def _unused_id(self) -> str:
        """Draw ids until one is unused by live and retired links."""
        while True:
            candidate = new_link_id()
            taken = self._conn.execute(
                "SELECT 1 FROM share_links WHERE id = ? "
                "UNION ALL SELECT 1 FROM retired_link_ids WHERE id = ?",
                (candidate, candidate),
            ).fetchone()
            if taken is None:
                return candidate


def _format_day(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


def _row_to_link(row: sqlite3.Row) -> ShareLink:
    return ShareLink(
        id=row["id"],
        created_at=row["created_at"],
        expires_at=row["expires_at"],
        created_by=row["created_by"],
        role=row["role"],
        mode=row["mode"],
        label=row["label"],
        allow_edit=bool(row["allow_edit"]),
        show_role_indicator=bool(row["show_role_indicator"]),
        payload=row["payload"],
        access_count=row["access_count"],
        last_accessed=row["last_accessed"],
    )
