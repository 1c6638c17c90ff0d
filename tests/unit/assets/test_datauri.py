"""Tests for data: URI helpers."""

from __future__ import annotations

import pytest

from showroom.assets.datauri import is_data_uri, parse_data_uri, to_data_uri


def test_to_data_uri():
    assert to_data_uri(b"hi", "text/plain") == "data:text/plain;base64,aGk="


def test_to_data_uri_default_mime():
    assert to_data_uri(b"").startswith("data:application/octet-stream;base64,")


def test_parse_base64():
    mime, data = parse_data_uri("data:image/png;base64,aGk=")
    assert mime == "image/png"
    assert data == b"hi"


def test_parse_percent_encoded():
    mime, data = parse_data_uri("data:text/plain,hello%20world")
    assert mime == "text/plain"
    assert data == b"hello world"


def test_parse_with_parameters():
    mime, data = parse_data_uri("data:text/plain;charset=utf-8;base64,aGk=")
    assert mime == "text/plain"
    assert data == b"hi"


def test_parse_missing_mime_defaults():
    mime, _ = parse_data_uri("data:;base64,aGk=")
    assert mime == "application/octet-stream"


@pytest.mark.parametrize("bad", ["", "hello", "data:image/png;base64", "https://x/y.png"])
def test_parse_rejects_non_data_uri(bad):
    with pytest.raises(ValueError):
        parse_data_uri(bad)


def test_parse_rejects_bad_base64():
    with pytest.raises(ValueError):
        parse_data_uri("data:image/png;base64,@@@")


def test_is_data_uri():
    assert is_data_uri("data:image/png;base64,AAAA")
    assert not is_data_uri("asset:abc")
    assert not is_data_uri(None)
