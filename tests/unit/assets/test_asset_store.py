"""Tests for the content-addressed AssetStore."""

from __future__ import annotations

import base64
import hashlib
from pathlib import Path

import pytest

from showroom.assets.store import AssetStore, asset_ref, content_hash
from showroom.db.connection import StorageWriteError
from showroom.db.schema import open_database


@pytest.fixture
def store(tmp_db, clock):
    return AssetStore(tmp_db, clock=clock)


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


def test_content_hash_is_sha256_hex():
    data = b"walnut veneer"
    assert content_hash(data) == hashlib.sha256(data).hexdigest()
    assert len(content_hash(data)) == 64


def test_content_hash_deterministic():
    assert content_hash(b"abc") == content_hash(b"abc")
    assert content_hash(b"abc") != content_hash(b"abd")


def test_asset_ref():
    assert asset_ref("deadbeef") == "asset:deadbeef"


# ---------------------------------------------------------------------------
# put / get
# ---------------------------------------------------------------------------


def test_put_returns_record(store, clock):
    asset = store.put(b"0123456789", name="logo.png", mime_type="image/png")
    assert asset.id == content_hash(b"0123456789")
    assert asset.name == "logo.png"
    assert asset.mime_type == "image/png"
    assert asset.size_bytes == 10
    assert asset.created_at == clock.now
    assert asset.payload == b"0123456789"


def test_put_defaults_name_and_type(store):
    asset = store.put(b"\x00\x01\x02")
    assert asset.name == f"asset-{asset.id[:8]}"
    assert asset.mime_type == "application/octet-stream"


def test_put_same_bytes_twice_single_record(store, clock):
    first = store.put(b"0123456789", name="a.png", mime_type="image/png")
    clock.advance(5_000)
    second = store.put(b"0123456789", name="b.jpg", mime_type="image/jpeg")

    assert second.id == first.id
    # Stored record is never rewritten.
    assert second.name == "a.png"
    assert second.mime_type == "image/png"
    assert second.created_at == first.created_at
    assert store.count() == 1


def test_concurrent_put_same_bytes_single_record(tmp_path: Path, clock, monkeypatch):
    """Two connections both miss the existence check; the first write wins for both."""
    db_path = tmp_path / "shared.db"
    conn_a = open_database(db_path)
    conn_b = open_database(db_path)
    try:
        store_a = AssetStore(conn_a, clock=clock)
        store_b = AssetStore(conn_b, clock=clock)
        real_get = store_b.get
        calls = []

        def get_missing_first(asset_id):
            calls.append(asset_id)
            return None if len(calls) == 1 else real_get(asset_id)

        monkeypatch.setattr(store_b, "get", get_missing_first)

        # store_b has checked and found nothing; store_a writes before store_b does.
        first = store_a.put(b"0123456789", name="a.png", mime_type="image/png")
        clock.advance(1_000)
        second = store_b.put(b"0123456789", name="b.jpg", mime_type="image/jpeg")

        assert second == first
        assert second.name == "a.png"
        assert store_a.count() == 1
        assert store_b.count() == 1
    finally:
        conn_a.close()
        conn_b.close()


def test_put_raises_when_row_missing_after_write(store, monkeypatch):
    monkeypatch.setattr(store, "get", lambda asset_id: None)
    with pytest.raises(StorageWriteError, match="row missing after write"):
        store.put(b"vanishing")


def test_put_empty_bytes(store):
    asset = store.put(b"")
    assert asset.size_bytes == 0
    assert asset.id == hashlib.sha256(b"").hexdigest()


def test_get_missing_returns_none(store):
    assert store.get("0" * 64) is None


def test_put_file_guesses_type(store, tmp_path: Path):
    path = tmp_path / "render.png"
    path.write_bytes(b"not really a png")
    asset = store.put_file(path)
    assert asset.name == "render.png"
    assert asset.mime_type == "image/png"


# ---------------------------------------------------------------------------
# list / count / delete
# ---------------------------------------------------------------------------


def test_list_newest_first(store, clock):
    old = store.put(b"old")
    clock.advance(1_000)
    new = store.put(b"new")
    assert [a.id for a in store.list()] == [new.id, old.id]


def test_list_empty(store):
    assert store.list() == []
    assert store.count() == 0


def test_delete(store):
    asset = store.put(b"bye")
    assert store.delete(asset.id) is True
    assert store.get(asset.id) is None
    assert store.delete(asset.id) is False


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def test_resolve_to_displayable_data_uri(store):
    asset = store.put(b"\x89PNG", mime_type="image/png")
    uri = store.resolve_to_displayable(asset.id)
    assert uri == "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode()


def test_resolve_to_displayable_missing_is_empty(store):
    assert store.resolve_to_displayable("f" * 64) == ""


def test_resolve_ref(store):
    asset = store.put(b"logo", mime_type="image/png")
    assert store.resolve_ref(asset_ref(asset.id)).startswith("data:image/png;base64,")
    assert store.resolve_ref("asset:" + "0" * 64) == ""
    assert store.resolve_ref("https://example.com/x.png") == "https://example.com/x.png"
    assert store.resolve_ref("") == ""


def test_records_survive_reconnect(tmp_path):
    path = tmp_path / "persist.db"
    conn = open_database(path)
    asset = AssetStore(conn).put(b"durable")
    conn.close()

    conn = open_database(path)
    try:
        assert AssetStore(conn).get(asset.id).payload == b"durable"
    finally:
        conn.close()
