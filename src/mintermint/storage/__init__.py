"""
mintermint/storage - Content-addressed storage for NFT media and metadata.
"""

from .base import ContentStore, StorageError
from .pinata import PinataStore
from .uris import cid_to_uri, uri_to_cid, to_gateway_url

__all__ = [
    "ContentStore",
    "StorageError",
    "PinataStore",
    "cid_to_uri",
    "uri_to_cid",
    "to_gateway_url",
]
