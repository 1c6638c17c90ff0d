"""Share URL construction and parsing.

URL surface:
  ?share=<link id>&role=<role>&mode=<mode>   managed link (query)
  #snapshot=<base64url token>                embedded snapshot (fragment only)
  #share=<32-hex id>                         local snapshot reference (fragment only)

Snapshot payloads always travel in the fragment, which browsers do not send to
servers or write to access logs.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

SNAPSHOT_FRAGMENT = "snapshot="
SHARE_FRAGMENT = "share="


@dataclass(frozen=True)
class InboundParams:
    """Share-related parameters pulled from an inbound URL."""

    snapshot_token: str | None = None
    local_snapshot_id: str | None = None
    share_id: str | None = None
    role: str | None = None
    mode: str | None = None


def build_url(base_url: str, params: dict[str, str], fragment: str = "") -> str:
    """Return *base_url* with *params* merged into its query and *fragment* set."""
    parts = urlsplit(base_url)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query.update(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), fragment))


def managed_link_url(
    base_url: str, link_id: str, role: str, mode: str, show_role_indicator: bool = False
) -> str:
    params = {"share": link_id, "role": role, "mode": mode}
    if show_role_indicator:
        params["showRoleIndicator"] = "true"
    return build_url(base_url, params)


def embedded_link_url(base_url: str, token: str, role: str, mode: str) -> str:
    return build_url(base_url, {"role": role, "mode": mode}, fragment=SNAPSHOT_FRAGMENT + token)


def local_snapshot_url(base_url: str, snapshot_id: str, role: str, mode: str) -> str:
    return build_url(base_url, {"role": role, "mode": mode}, fragment=SHARE_FRAGMENT + snapshot_id)


def parse_inbound(url: str) -> InboundParams:
    """Extract snapshot token, local snapshot id, managed link id, role and mode."""
    parts = urlsplit(url or "")
    query = dict(parse_qsl(parts.query))
    fragment = parts.fragment

    snapshot_token = None
    local_id = None
    if fragment.startswith(SNAPSHOT_FRAGMENT):
        snapshot_token = fragment[len(SNAPSHOT_FRAGMENT):]
    elif fragment.startswith(SHARE_FRAGMENT):
        local_id = fragment[len(SHARE_FRAGMENT):]

    return InboundParams(
        snapshot_token=snapshot_token,
        local_snapshot_id=local_id,
        share_id=query.get("share") or None,
        role=query.get("role") or None,
        mode=query.get("mode") or None,
    )
