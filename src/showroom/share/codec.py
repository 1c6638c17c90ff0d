"""Snapshot codec: document state <-> URL-safe token.

Token = base64url (no padding) of the UTF-8 bytes of compact JSON. Operating on
UTF-8 bytes keeps multi-byte text ("Café", "東京") intact. The codec is pure and
lossless; it never truncates, and length policy belongs to the caller.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import unquote

SNAPSHOT_VERSION = 1


class SnapshotDecodeError(ValueError):
    """Raised when a token cannot be decoded into a complete Snapshot."""


@dataclass
class Snapshot:
    """Portable copy of the document state carried inside a share link.

    Attributes:
        created_at: Epoch milliseconds when the snapshot was taken.
        role: Role the viewer is placed into (admin | agent | client).
        mode: View mode (edit | presentation).
        label: Human-readable description.
        form_data: Arbitrary JSON-serializable document fields.
        images: None when images were left out; otherwise image key -> "" |
            reference | (compressed) data URI.
        version: Schema tag for forward compatibility.
    """

    created_at: int
    role: str
    mode: str
    label: str = ""
    form_data: dict[str, Any] = field(default_factory=dict)
    images: dict[str, str] | None = None
    version: int = SNAPSHOT_VERSION

    def to_wire(self) -> dict[str, Any]:
        return {
            "v": self.version,
            "createdAt": self.created_at,
            "role": self.role,
            "mode": self.mode,
            "label": self.label,
            "formData": self.form_data,
            "images": self.images,
        }

    @classmethod
    def from_wire(cls, data: Any) -> Snapshot:
        """Build a Snapshot from decoded JSON, validating every field."""
        if not isinstance(data, dict):
            raise SnapshotDecodeError("Snapshot payload is not an object")
        missing = [k for k in ("v", "role", "mode") if k not in data]
        if missing:
            raise SnapshotDecodeError(f"Snapshot payload missing fields: {', '.join(missing)}")

        version = data["v"]
        if not isinstance(version, int) or isinstance(version, bool):
            raise SnapshotDecodeError("Snapshot version must be an integer")
        if version > SNAPSHOT_VERSION:
            raise SnapshotDecodeError(f"Unsupported snapshot version {version}")

        created_at = data.get("createdAt", 0)
        if not isinstance(created_at, (int, float)) or isinstance(created_at, bool):
            raise SnapshotDecodeError("Snapshot createdAt must be a number")

        for key in ("role", "mode", "label"):
            if key in data and not isinstance(data[key], str):
                raise SnapshotDecodeError(f"Snapshot {key} must be a string")

        form_data = data.get("formData", {})
        if form_data is None:
            form_data = {}
        if not isinstance(form_data, dict):
            raise SnapshotDecodeError("Snapshot formData must be an object")

        images = data.get("images")
        if images is not None:
            if not isinstance(images, dict) or not all(
                isinstance(v, str) for v in images.values()
            ):
                raise SnapshotDecodeError("Snapshot images must map keys to strings")

        return cls(
            created_at=created_at,
            role=data["role"],
            mode=data["mode"],
            label=data.get("label", ""),
            form_data=form_data,
            images=images,
            version=version,
        )


class SnapshotCodec:
    """Encode Snapshots to base64url tokens and back."""

    def encode(self, snapshot: Snapshot) -> str:
        """Return the URL-safe token for *snapshot*.

        Raises:
            TypeError: If ``form_data`` holds values JSON cannot represent.
        """
        text = json.dumps(snapshot.to_wire(), ensure_ascii=False, separators=(",", ":"))
        return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")

    def decode(self, token: str) -> Snapshot:
        """Return the Snapshot encoded in *token*.

        Raises:
            SnapshotDecodeError: If the token is empty, truncated, not base64url,
                not UTF-8, not JSON, or not a valid snapshot structure.
        """
        raw = unquote((token or "").strip())
        if not raw:
            raise SnapshotDecodeError("Empty snapshot token")
        if len(raw) % 4 == 1:
            raise SnapshotDecodeError("Snapshot token is truncated")
        padded = raw + "=" * (-len(raw) % 4)
        try:
            blob = base64.b64decode(padded, altchars=b"-_", validate=True)
        except (binascii.Error, ValueError) as exc:
            raise SnapshotDecodeError(f"Snapshot token is not base64url: {exc}") from exc
        try:
            data = json.loads(blob.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SnapshotDecodeError(f"Snapshot token is corrupt: {exc}") from exc
        return Snapshot.from_wire(data)
