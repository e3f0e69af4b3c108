"""
mintermint/storage/base.py

Interface to the content-addressed storage service.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from ..errors import MarketError


class StorageError(MarketError):
    """Raised by a ContentStore for any storage service fault."""
    pass


class ContentStore(ABC):
    """
    Abstract content-addressed store.

    Uploads return the CID issued by the service. Uploading identical
    bytes twice yields the same CID, so callers may re-issue uploads.
    """

    @abstractmethod
    async def upload_blob(self, data: bytes, filename: str = "asset") -> str:
        """Store a binary blob and return its CID."""
        pass

    @abstractmethod
    async def upload_json(self, document: Dict[str, Any], name: str = "") -> str:
        """Store a JSON document and return its CID."""
        pass

    @abstractmethod
    async def fetch_json(self, uri: str) -> Dict[str, Any]:
        """Dereference an ipfs:// or http(s) URI to a JSON object."""
        pass

    async def close(self) -> None:
        """Release network resources."""
        pass
