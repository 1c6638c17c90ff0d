"""Share service: the single entry point for creating and opening share links.

Two ways to hand a view of the current document to someone else:

* **Managed link**: stored in the local LinkRegistry; the URL carries only an id
  plus role/mode in the query. Revocable and expiring.
* **Embedded link**: the whole document snapshot (optionally with compressed
  images) is encoded into the URL fragment. Stateless and portable, but bounded
  by practical URL lengths.

A third, local variant stores the encoded snapshot under a random hex id and puts
only ``#share=<id>`` in the URL.

Inbound URLs are resolved in priority order: ``#snapshot=`` (no lookup needed),
then ``#share=``, then ``?share=``.
"""

from __future__ import annotations

import warnings
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from showroom.assets.store import AssetStore
from showroom.db.models import ShareLink, now_ms
from showroom.share.codec import Snapshot, SnapshotCodec, SnapshotDecodeError
from showroom.share.compressor import ImageCompressor
from showroom.share.document import DocumentState
from showroom.share.registry import REASON_EXPIRED, LinkRegistry
from showroom.share.roles import (
    DEFAULT_SHARE_MODE,
    DEFAULT_SHARE_ROLE,
    coerce_mode,
    coerce_role,
    normalize_mode,
    normalize_role,
)
from showroom.share.snapshots import LocalSnapshotStore
from showroom.share.urls import (
    embedded_link_url,
    local_snapshot_url,
    managed_link_url,
    parse_inbound,
)

DEFAULT_BASE_URL = "http://localhost:8000/"
MAX_SNAPSHOT_URL_LENGTH = 1800

SNAPSHOT_APPLIED = "snapshot_applied"
MANAGED_LINK_APPLIED = "managed_link_applied"
NONE = "none"

_REASON_MESSAGES = {
    REASON_EXPIRED: "Link has expired",
}


@dataclass(frozen=True)
class ManagedLink:
    id: str
    url: str
    link: ShareLink


@dataclass(frozen=True)
class EmbeddedLink:
    url: str
    token: str
    snapshot: Snapshot
    warning: str | None = None


@dataclass(frozen=True)
class LocalSnapshotLink:
    id: str
    url: str
    snapshot: Snapshot


@dataclass(frozen=True)
class InboundResult:
    """What resolve_inbound_url() did with a URL.

    Attributes:
        kind: "snapshot_applied", "managed_link_applied" or "none".
        role: Role applied to the document (or requested by the query for "none").
        mode: Mode applied to the document (or requested by the query for "none").
        message: Notification text for a successful load.
        error: Notification text when a share reference was present but unusable.
        link: The managed link record, for "managed_link_applied".
    """

    kind: str
    role: str | None = None
    mode: str | None = None
    message: str = ""
    error: str | None = None
    link: ShareLink | None = None

    @property
    def applied(self) -> bool:
        return self.kind != NONE

    @property
    def show_share_controls(self) -> bool:
        """Visitors arriving through a managed link never see the share controls."""
        return self.kind != MANAGED_LINK_APPLIED


class ShareService:
    """Compose codec, compressor, registry and asset store into share operations.

    Args:
        registry: Managed-link registry.
        document: The live document state; read when creating links, written when
            an inbound link is applied. Owned by the caller.
        assets: Asset store used to flatten ``asset:`` image references.
        local_snapshots: Store backing the ``#share=<hex>`` scheme.
        codec: Snapshot codec.
        compressor: Image compressor for embedded images.
        base_url: Page URL that share links point at.
        max_snapshot_url_length: Length past which embedded links trigger a warning.
        can_share: Permission oracle, ``role -> bool``; allows everything when None.
        on_render: Called with the document after an inbound link is applied.
            Errors raised by it are reported as warnings and otherwise ignored.
        clock: Epoch-millisecond clock.
    """

    def __init__(
        self,
        registry: LinkRegistry,
        document: DocumentState,
        assets: AssetStore | None = None,
        local_snapshots: LocalSnapshotStore | None = None,
        codec: SnapshotCodec | None = None,
        compressor: ImageCompressor | None = None,
        base_url: str = DEFAULT_BASE_URL,
        max_snapshot_url_length: int = MAX_SNAPSHOT_URL_LENGTH,
        can_share: Callable[[str], bool] | None = None,
        on_render: Callable[[DocumentState], Any] | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.registry = registry
        self.document = document
        self.assets = assets
        self.local_snapshots = local_snapshots
        self.codec = codec or SnapshotCodec()
        self.compressor = compressor or ImageCompressor()
        self.base_url = base_url
        self.max_snapshot_url_length = max_snapshot_url_length
        self._can_share = can_share
        self._on_render = on_render
        self._clock = clock

    # ------------------------------------------------------------------
    # Outbound: managed links
    # ------------------------------------------------------------------

    def create_managed_link(
        self,
        role: str = DEFAULT_SHARE_ROLE,
        mode: str = DEFAULT_SHARE_MODE,
        expires_in: int | None = None,
        label: str = "",
        payload: dict[str, Any] | None = None,
        capture_document: bool = True,
        allow_edit: bool = False,
        show_role_indicator: bool = False,
    ) -> ManagedLink:
        """Register a managed link and return its id and URL.

        The current form data is stored with the link unless *payload* is given
        or *capture_document* is False.

        Raises:
            PermissionError: If the current role may not share.
            ValueError: On unknown role or mode.
        """
        self._require_share("create share links")
        if payload is None and capture_document:
            payload = dict(self.document.form_data)
        link = self.registry.create(
            role=role,
            mode=mode,
            expires_in=expires_in,
            label=label,
            payload=payload,
            allow_edit=allow_edit,
            show_role_indicator=show_role_indicator,
            created_by=self.document.role,
        )
        url = managed_link_url(
            self.base_url, link.id, link.role, link.mode, link.show_role_indicator
        )
        return ManagedLink(id=link.id, url=url, link=link)

    def list_links(self) -> list[ShareLink]:
        self._require_share("list share links")
        return self.registry.list()

    def revoke_link(self, link_id: str) -> bool:
        self._require_share("revoke share links")
        return self.registry.revoke(link_id)

    def sweep(self) -> int:
        return self.registry.sweep_expired()

    # ------------------------------------------------------------------
    # Outbound: snapshot links
    # ------------------------------------------------------------------

    def build_snapshot(
        self,
        role: str = DEFAULT_SHARE_ROLE,
        mode: str = DEFAULT_SHARE_MODE,
        label: str = "",
        include_images: bool = False,
        compress_images: bool = True,
    ) -> Snapshot:
        """Capture the current document as a Snapshot.

        Images are left out unless *include_images*; when included, ``asset:``
        references are flattened to data URIs and, unless *compress_images* is
        False, every data URI is re-encoded through the compressor.
        """
        role = normalize_role(role)
        mode = normalize_mode(mode)
        now = self._clock()
        return Snapshot(
            created_at=now,
            role=role,
            mode=mode,
            label=label or f"{role} snapshot",
            form_data=dict(self.document.form_data),
            images=self._snapshot_images(compress_images) if include_images else None,
        )

    def create_embedded_link(
        self,
        role: str = DEFAULT_SHARE_ROLE,
        mode: str = DEFAULT_SHARE_MODE,
        label: str = "",
        include_images: bool = False,
        compress_images: bool = True,
    ) -> EmbeddedLink:
        """Encode the current document into a ``#snapshot=`` URL.

        Links longer than ``max_snapshot_url_length`` are still returned, with a
        UserWarning emitted and the same text in ``EmbeddedLink.warning``.

        Raises:
            PermissionError: If the current role may not share.
        """
        self._require_share("create embedded links")
        snapshot = self.build_snapshot(role, mode, label, include_images, compress_images)
        token = self.codec.encode(snapshot)
        url = embedded_link_url(self.base_url, token, snapshot.role, snapshot.mode)

        warning = None
        if len(url) > self.max_snapshot_url_length:
            warning = f"Link is long ({len(url)} chars). Some apps may truncate it."
            warnings.warn(warning, UserWarning, stacklevel=2)
        return EmbeddedLink(url=url, token=token, snapshot=snapshot, warning=warning)

    def create_local_snapshot_link(
        self,
        role: str = DEFAULT_SHARE_ROLE,
        mode: str = DEFAULT_SHARE_MODE,
        label: str = "",
        include_images: bool = False,
        compress_images: bool = True,
    ) -> LocalSnapshotLink:
        """Store an encoded snapshot locally and return a short ``#share=<hex>`` URL.

        Raises:
            PermissionError: If the current role may not share.
            RuntimeError: If no local snapshot store was configured.
        """
        self._require_share("create snapshot links")
        if self.local_snapshots is None:
            raise RuntimeError("No local snapshot store configured")
        snapshot = self.build_snapshot(role, mode, label, include_images, compress_images)
        snapshot_id = self.local_snapshots.save(self.codec.encode(snapshot))
        url = local_snapshot_url(self.base_url, snapshot_id, snapshot.role, snapshot.mode)
        return LocalSnapshotLink(id=snapshot_id, url=url, snapshot=snapshot)

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def resolve_inbound_url(self, url: str) -> InboundResult:
        """Apply whatever share reference *url* carries to the document.

        Returns an InboundResult; failures (bad token, unknown or expired link)
        come back as ``kind="none"`` with ``error`` set and the document untouched.
        A snapshot token that does not decode still lets a ``?share=`` link in the
        same URL apply; the result then carries both the link and the error.
        """
        params = parse_inbound(url)
        snapshot_error = None

        if params.snapshot_token is not None:
            result = self._apply_token(params.snapshot_token)
            if result.applied:
                return result
            snapshot_error = result.error

        if params.local_snapshot_id:
            token = (
                self.local_snapshots.load(params.local_snapshot_id)
                if self.local_snapshots is not None
                else None
            )
            if token is None:
                return InboundResult(kind=NONE, error="Snapshot link not found")
            return self._apply_token(token)

        if params.share_id:
            resolved = self.registry.resolve(params.share_id)
            if not resolved.valid:
                return InboundResult(
                    kind=NONE, error=_REASON_MESSAGES.get(resolved.reason, "Link not found")
                )
            link = resolved.link
            self.document.apply(link.role, link.mode, form_data=link.payload_dict)
            self._render()
            return InboundResult(
                kind=MANAGED_LINK_APPLIED,
                role=link.role,
                mode=link.mode,
                message=f"Viewing as {link.role} in {link.mode} mode",
                error=snapshot_error,
                link=link,
            )

        return InboundResult(
            kind=NONE,
            role=coerce_role(params.role, "") or None,
            mode=coerce_mode(params.mode, "") or None,
            error=snapshot_error,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_token(self, token: str) -> InboundResult:
        try:
            snapshot = self.codec.decode(token)
        except SnapshotDecodeError:
            return InboundResult(kind=NONE, error="Invalid snapshot link")

        role = coerce_role(snapshot.role)
        mode = coerce_mode(snapshot.mode)
        self.document.apply(role, mode, form_data=snapshot.form_data, images=snapshot.images)
        self._render()
        return InboundResult(
            kind=SNAPSHOT_APPLIED,
            role=role,
            mode=mode,
            message=f"Loaded embedded {role} snapshot",
        )

    def _snapshot_images(self, compress: bool) -> dict[str, str]:
        images = {
            key: self.assets.resolve_ref(src) if src and self.assets is not None else src
            for key, src in self.document.images.items()
        }
        return self.compressor.compress_many(images) if compress else images

    def _render(self) -> None:
        if self._on_render is None:
            return
        try:
            self._on_render(self.document)
        except Exception as exc:
            warnings.warn(f"Render hook failed: {exc}", UserWarning, stacklevel=3)

    def _require_share(self, action: str) -> None:
        if self._can_share is not None and not self._can_share(self.document.role):
            raise PermissionError(
                f"Role '{self.document.role}' does not have permission to {action}"
            )
