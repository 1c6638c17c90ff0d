"""data: URI helpers shared by the asset store, compressor and backup format."""

from __future__ import annotations

import base64
import binascii
import re
from urllib.parse import unquote_to_bytes

_DATA_URI_RE = re.compile(
    r"^data:(?P<mime>[^;,]*)(?:;[^;,]*)*?(?P<b64>;base64)?,(?P<data>.*)$",
    re.DOTALL,
)

DEFAULT_MIME = "application/octet-stream"


def is_data_uri(value: object) -> bool:
    return isinstance(value, str) and value.startswith("data:")


def to_data_uri(data: bytes, mime_type: str | None = None) -> str:
    """Return ``data:<mime>;base64,<payload>`` for *data*."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type or DEFAULT_MIME};base64,{encoded}"


def parse_data_uri(uri: str) -> tuple[str, bytes]:
    """Split a data URI into ``(mime_type, payload_bytes)``.

    Raises:
        ValueError: If *uri* is not a well-formed data URI.
    """
    match = _DATA_URI_RE.match(uri or "")
    if match is None:
        raise ValueError("Not a data URI")
    mime = match.group("mime") or DEFAULT_MIME
    data = match.group("data")
    if match.group("b64"):
        try:
            return mime, base64.b64decode(data, validate=True)
        except binascii.Error as exc:
            raise ValueError(f"Invalid base64 payload in data URI: {exc}") from exc
    return mime, unquote_to_bytes(data)
