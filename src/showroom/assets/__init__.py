"""Content-addressed design asset storage."""

from showroom.assets.datauri import is_data_uri, parse_data_uri, to_data_uri
from showroom.assets.store import ASSET_SCHEME, AssetStore, asset_ref, content_hash

__all__ = [
    "ASSET_SCHEME",
    "AssetStore",
    "asset_ref",
    "content_hash",
    "is_data_uri",
    "parse_data_uri",
    "to_data_uri",
]
