"""Domain models for the showroom storage layer."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds (the unit of every stored timestamp)."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Asset:
    id: str  # sha256 hex of payload
    name: str
    mime_type: str
    size_bytes: int
    created_at: int
    payload: bytes = field(repr=False)


@dataclass
class ShareLink:
    id: str
    created_at: int
    expires_at: int
    role: str
    mode: str
    label: str
    created_by: str = "admin"
    allow_edit: bool = False
    show_role_indicator: bool = False
    payload: str | None = None  # JSON text of the captured form data
    access_count: int = 0
    last_accessed: int | None = None
    is_expired: bool = False  # derived; filled in by LinkRegistry.list()

    @property
    def payload_dict(self) -> dict[str, Any] | None:
        return json.loads(self.payload) if self.payload else None
