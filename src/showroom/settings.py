"""Persisted settings keys: admin, feature and role configuration.

Each key is stored as one JSON document in the ``settings`` table and is read
and written independently; there are no cross-key transactions. Every save also
records a timestamped backup copy, of which only the newest ``backup_retention``
per key are kept.

Corrupt stored values are never fatal: load() falls back to the defaults and
emits a UserWarning.
"""

from __future__ import annotations

import json
import sqlite3
import warnings
from collections.abc import Callable
from typing import Any

from showroom.assets.store import asset_ref
from showroom.config import deep_merge
from showroom.db.connection import write_guard
from showroom.db.models import now_ms
from showroom.share.document import DocumentState

DEFAULT_BACKUP_RETENTION = 10


class Keys:
    """Names of the persisted settings keys."""

    ADMIN = "admin-config"
    FEATURES = "feature-config"
    ROLES = "role-config"

    ALL = (ADMIN, FEATURES, ROLES)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


def default_admin_config() -> dict[str, Any]:
    """Return a fresh copy of the default admin configuration."""
    return {
        "version": 1,
        "company": {
            "name": "Showroom Cabinet Co",
            "email": "info@example.com",
            "phone": "",
            "address": "",
            "website": "",
            "logoAssetId": "",
        },
        "templates": {},
        "defaults": {
            "emailRecipient": "info@example.com",
            "currencySymbol": "$",
            "dateFormat": "YYYY-MM-DD",
        },
        "pin": "",
    }


def default_feature_config() -> dict[str, Any]:
    return {
        "roleGating": True,
        "presentationMode": True,
        "shareLinks": True,
        "adminGuard": True,
        "exportControls": True,
    }


def default_role_config() -> dict[str, Any]:
    return {
        "permissions": {
            "admin": {"share": True, "edit": True},
            "agent": {"share": True, "edit": True},
            "client": {"share": False, "edit": False},
        },
    }


DEFAULTS: dict[str, Callable[[], dict[str, Any]]] = {
    Keys.ADMIN: default_admin_config,
    Keys.FEATURES: default_feature_config,
    Keys.ROLES: default_role_config,
}


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SettingsStore:
    """Read and write the persisted settings keys.

    Args:
        conn: Connection with the showroom schema initialised.
        backup_retention: Number of backups kept per key (older ones are pruned).
        clock: Epoch-millisecond clock.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        backup_retention: int = DEFAULT_BACKUP_RETENTION,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._conn = conn
        self.backup_retention = backup_retention
        self._clock = clock

    def load(self, key: str, defaults: dict[str, Any] | None = None) -> dict[str, Any]:
        """Return the stored value for *key* deep-merged over *defaults*.

        *defaults* falls back to the built-in defaults for known keys, and to an
        empty dict otherwise.
        """
        base = defaults if defaults is not None else _defaults_for(key)
        raw = self.load_raw(key)
        if raw is None:
            return base
        try:
            stored = json.loads(raw)
        except json.JSONDecodeError as exc:
            warnings.warn(
                f"Stored settings '{key}' are corrupt ({exc}); using defaults.",
                UserWarning,
                stacklevel=2,
            )
            return base
        if not isinstance(stored, dict):
            warnings.warn(
                f"Stored settings '{key}' are not an object; using defaults.",
                UserWarning,
                stacklevel=2,
            )
            return base
        return deep_merge(base, stored)

    def load_raw(self, key: str) -> str | None:
        row = self._conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def save(self, key: str, value: dict[str, Any]) -> None:
        """Persist *value* under *key* and record a backup copy.

        Raises:
            StorageWriteError: If the database refuses the write.
        """
        text = json.dumps(value, ensure_ascii=False)
        with write_guard(self._conn, f"settings '{key}'"):
            self._conn.execute(
                "INSERT INTO settings (key, value, updated_at) VALUES (?, ?, datetime('now')) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
                "updated_at = excluded.updated_at",
                (key, text),
            )
            self._conn.execute(
                "INSERT INTO settings_backups (key, value, saved_at) VALUES (?, ?, ?)",
                (key, text, self._clock()),
            )
            self._prune_backups(key)

    def reset(self, key: str, defaults: dict[str, Any] | None = None) -> dict[str, Any]:
        """Overwrite *key* with its defaults and return them."""
        value = defaults if defaults is not None else _defaults_for(key)
        self.save(key, value)
        return value

    def backups(self, key: str) -> list[tuple[int, dict[str, Any]]]:
        """Return ``(saved_at, value)`` pairs for *key*, newest first.

        Backups that no longer parse are skipped.
        """
        rows = self._conn.execute(
            "SELECT value, saved_at FROM settings_backups WHERE key = ? "
            "ORDER BY saved_at DESC, rowid DESC",
            (key,),
        ).fetchall()
        result = []
        for row in rows:
            try:
                result.append((row["saved_at"], json.loads(row["value"])))
            except json.JSONDecodeError:
                continue
        return result

    def _prune_backups(self, key: str) -> None:
        self._conn.execute(
            "DELETE FROM settings_backups WHERE key = ? AND rowid NOT IN ("
            "  SELECT rowid FROM settings_backups WHERE key = ? "
            "  ORDER BY saved_at DESC, rowid DESC LIMIT ?"
            ")",
            (key, key, max(0, self.backup_retention)),
        )


def _defaults_for(key: str) -> dict[str, Any]:
    factory = DEFAULTS.get(key)
    return factory() if factory else {}


# ---------------------------------------------------------------------------
# Helpers driven by settings
# ---------------------------------------------------------------------------


def apply_default_logo(document: DocumentState, admin_config: dict[str, Any]) -> bool:
    """Point ``images["logo"]`` at the configured logo asset, if one is set.

    Returns True when the document was changed.
    """
    logo_id = (admin_config.get("company") or {}).get("logoAssetId")
    if not logo_id:
        return False
    document.images["logo"] = asset_ref(logo_id)
    return True


def share_permission(role_config: dict[str, Any]) -> Callable[[str], bool]:
    """Build a ``role -> bool`` share oracle from the role configuration."""
    permissions = role_config.get("permissions") or {}

    def can_share(role: str) -> bool:
        return bool((permissions.get(role) or {}).get("share", False))

    return can_share
