"""Share links: snapshot codec, image compression, managed link registry."""

from showroom.share.codec import Snapshot, SnapshotCodec, SnapshotDecodeError
from showroom.share.compressor import ImageCompressor
from showroom.share.document import DocumentState
from showroom.share.registry import LinkRegistry, ResolveResult
from showroom.share.service import (
    EmbeddedLink,
    InboundResult,
    LocalSnapshotLink,
    ManagedLink,
    ShareService,
)
from showroom.share.snapshots import LocalSnapshotStore

__all__ = [
    "DocumentState",
    "EmbeddedLink",
    "ImageCompressor",
    "InboundResult",
    "LinkRegistry",
    "LocalSnapshotLink",
    "LocalSnapshotStore",
    "ManagedLink",
    "ResolveResult",
    "ShareService",
    "Snapshot",
    "SnapshotCodec",
    "SnapshotDecodeError",
]
