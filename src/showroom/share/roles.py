"""Viewer roles and view modes carried by share links."""

from __future__ import annotations

ROLES: tuple[str, ...] = ("admin", "agent", "client")
MODES: tuple[str, ...] = ("edit", "presentation")

DEFAULT_SHARE_ROLE = "client"
DEFAULT_SHARE_MODE = "presentation"

# Older links spell presentation mode "present".
_MODE_ALIASES = {"present": "presentation"}


def normalize_role(role: str) -> str:
    """Return *role* lower-cased.

    Raises:
        ValueError: If *role* is not one of ROLES.
    """
    value = (role or "").strip().lower()
    if value not in ROLES:
        raise ValueError(f"Unknown role '{role}'. Expected one of: {', '.join(ROLES)}")
    return value


def normalize_mode(mode: str) -> str:
    """Return *mode* lower-cased, with legacy aliases mapped.

    Raises:
        ValueError: If *mode* is not one of MODES.
    """
    value = (mode or "").strip().lower()
    value = _MODE_ALIASES.get(value, value)
    if value not in MODES:
        raise ValueError(f"Unknown mode '{mode}'. Expected one of: {', '.join(MODES)}")
    return value


def coerce_role(role: str | None, fallback: str = DEFAULT_SHARE_ROLE) -> str:
    """Like normalize_role(), but returns *fallback* for missing or unknown values."""
    try:
        return normalize_role(role or "")
    except ValueError:
        return fallback


def coerce_mode(mode: str | None, fallback: str = DEFAULT_SHARE_MODE) -> str:
    """Like normalize_mode(), but returns *fallback* for missing or unknown values."""
    try:
        return normalize_mode(mode or "")
    except ValueError:
        return fallback
