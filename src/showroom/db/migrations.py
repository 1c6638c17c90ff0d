"""Forward-only migration runner for the showroom database schema."""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS assets (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    mime_type   TEXT NOT NULL,
    size_bytes  INTEGER NOT NULL,
    created_at  INTEGER NOT NULL,
    payload     BLOB NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_assets_created_at ON assets(created_at);

CREATE TABLE IF NOT EXISTS share_links (
    id                  TEXT PRIMARY KEY,
    created_at          INTEGER NOT NULL,
    expires_at          INTEGER NOT NULL,
    created_by          TEXT NOT NULL DEFAULT 'admin',
    role                TEXT NOT NULL,
    mode                TEXT NOT NULL,
    label               TEXT NOT NULL,
    allow_edit          INTEGER NOT NULL DEFAULT 0,
    show_role_indicator INTEGER NOT NULL DEFAULT 0,
    payload             TEXT,
    access_count        INTEGER NOT NULL DEFAULT 0,
    last_accessed       INTEGER
);

CREATE TABLE IF NOT EXISTS retired_link_ids (
    id          TEXT PRIMARY KEY,
    retired_at  INTEGER NOT NULL,
    reason      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS settings (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    updated_at  DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS settings_backups (
    key         TEXT NOT NULL,
    value       TEXT NOT NULL,
    saved_at    INTEGER NOT NULL
);
"""

# v2: local snapshots for the #share=<hex> fragment scheme.
_V2_SQL = """
CREATE TABLE IF NOT EXISTS local_snapshots (
    id          TEXT PRIMARY KEY,
    token       TEXT NOT NULL,
    created_at  INTEGER NOT NULL
);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
    (2, _V2_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
