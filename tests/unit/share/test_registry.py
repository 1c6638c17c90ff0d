"""Tests for the managed share link registry."""

from __future__ import annotations

import re

import pytest

from showroom.share.registry import (
    DAY_MS,
    DEFAULT_EXPIRY_MS,
    MAX_LIFETIME_MS,
    REASON_EXPIRED,
    REASON_NOT_FOUND,
    LinkRegistry,
    new_link_id,
)


@pytest.fixture
def registry(tmp_db, clock):
    return LinkRegistry(tmp_db, clock=clock)


def _retired(conn, link_id: str):
    return conn.execute(
        "SELECT reason FROM retired_link_ids WHERE id = ?", (link_id,)
    ).fetchone()


# ---------------------------------------------------------------------------
# create()
# ---------------------------------------------------------------------------


def test_new_link_id_format():
    assert re.fullmatch(r"sl_[0-9a-f]{32}", new_link_id())
    assert new_link_id() != new_link_id()


def test_create_defaults(registry, clock):
    link = registry.create()
    assert link.role == "client"
    assert link.mode == "presentation"
    assert link.created_at == clock.now
    assert link.expires_at == clock.now + DEFAULT_EXPIRY_MS
    assert link.access_count == 0
    assert link.last_accessed is None
    assert link.label == "client link created 2023-11-14"


def test_create_persists(registry):
    link = registry.create(role="agent", mode="edit", label="For Sam", payload={"title": "Café"})
    stored = registry.get(link.id)
    assert stored == link
    assert stored.payload_dict == {"title": "Café"}


def test_create_normalizes_legacy_mode(registry):
    assert registry.create(mode="present").mode == "presentation"


@pytest.mark.parametrize("kwargs", [{"role": "owner"}, {"mode": "fullscreen"}])
def test_create_rejects_unknown_values(registry, kwargs):
    with pytest.raises(ValueError):
        registry.create(**kwargs)


def test_create_clamps_lifetime(registry, clock):
    link = registry.create(expires_in=365 * DAY_MS)
    assert link.expires_at == clock.now + MAX_LIFETIME_MS


def test_create_negative_lifetime_clamped_to_zero(registry, clock):
    link = registry.create(expires_in=-5)
    assert link.expires_at == clock.now


def test_create_unique_ids(registry):
    ids = {registry.create().id for _ in range(50)}
    assert len(ids) == 50


# ---------------------------------------------------------------------------
# resolve()
# ---------------------------------------------------------------------------


def test_resolve_unknown(registry):
    result = registry.resolve("sl_" + "0" * 32)
    assert result.valid is False
    assert result.reason == REASON_NOT_FOUND
    assert result.link is None


def test_resolve_zero_lifetime_is_expired(registry):
    link = registry.create(expires_in=0)
    result = registry.resolve(link.id)
    assert result.valid is False
    assert result.reason == REASON_EXPIRED


def test_resolve_expiry_boundary(registry, clock):
    lifetime = 10_000
    link = registry.create(expires_in=lifetime)

    clock.advance(lifetime - 1)
    assert registry.resolve(link.id).valid is True

    clock.advance(2)
    result = registry.resolve(link.id)
    assert result.valid is False
    assert result.reason == REASON_EXPIRED


def test_resolve_valid_at_exact_expiry(registry, clock):
    link = registry.create(expires_in=10_000)
    clock.advance(10_000)
    assert registry.resolve(link.id).valid is True


def test_zero_lifetime_is_listed_expired_and_swept(registry):
    link = registry.create(expires_in=0)
    assert registry.list()[0].is_expired is True
    assert registry.sweep_expired() == 1
    assert registry.get(link.id) is None


def test_expired_link_removed_and_retired(registry, tmp_db, clock):
    link = registry.create(expires_in=1_000)
    clock.advance(1_001)
    registry.resolve(link.id)

    assert registry.get(link.id) is None
    assert _retired(tmp_db, link.id)["reason"] == "expired"
    # Once removed it reads as not found.
    assert registry.resolve(link.id).reason == REASON_NOT_FOUND


def test_access_accounting(registry, clock):
    link = registry.create()
    for _ in range(3):
        clock.advance(1_000)
        result = registry.resolve(link.id)
    assert result.link.access_count == 3
    assert result.link.last_accessed == clock.now

    stored = registry.get(link.id)
    assert stored.access_count == 3
    assert stored.last_accessed == clock.now


# ---------------------------------------------------------------------------
# revoke()
# ---------------------------------------------------------------------------


def test_revoke_is_final(registry, tmp_db, clock):
    link = registry.create()
    assert registry.revoke(link.id) is True

    for _ in range(3):
        clock.advance(DAY_MS)
        assert registry.resolve(link.id).valid is False
    assert _retired(tmp_db, link.id)["reason"] == "revoked"


def test_revoke_unknown(registry):
    assert registry.revoke("sl_missing") is False


def test_retired_ids_are_never_reissued(registry, monkeypatch):
    first = registry.create()
    registry.revoke(first.id)

    candidates = iter([first.id, "sl_" + "a" * 32])
    monkeypatch.setattr("showroom.share.registry.new_link_id", lambda: next(candidates))
    assert registry.create().id == "sl_" + "a" * 32


# ---------------------------------------------------------------------------
# list() / sweep
# ---------------------------------------------------------------------------


def test_list_marks_expired_without_removing(registry, clock):
    short = registry.create(expires_in=1_000, label="short")
    clock.advance(1)
    long = registry.create(label="long")
    clock.advance(5_000)

    links = registry.list()
    assert [l.id for l in links] == [long.id, short.id]
    flags = {l.label: l.is_expired for l in links}
    assert flags == {"short": True, "long": False}


def test_sweep_expired(registry, clock):
    registry.create(expires_in=1_000)
    registry.create(expires_in=2_000)
    keep = registry.create()
    clock.advance(1_500)

    assert registry.sweep_expired() == 1
    clock.advance(1_000)
    assert registry.sweep_expired() == 1
    assert [l.id for l in registry.list()] == [keep.id]


def test_periodic_sweep_runs_on_create_after_interval(tmp_db, clock):
    registry = LinkRegistry(tmp_db, clock=clock, sweep_interval_ms=60_000)
    stale = registry.create(expires_in=1_000)

    clock.advance(30_000)
    registry.create()
    assert registry.get(stale.id) is not None  # interval not yet elapsed

    clock.advance(30_000)
    registry.create()
    assert registry.get(stale.id) is None
