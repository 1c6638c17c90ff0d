"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from showroom.db.connection import Database
from showroom.db.schema import initialize


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".showroom.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def clock():
    return FakeClock()
