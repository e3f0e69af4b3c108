"""
mintermint/storage/pinata.py

Pinata pinning client.

Protocol:
    - Blob:  POST {api}/pinning/pinFileToIPFS   (multipart "file" field)
    - JSON:  POST {api}/pinning/pinJSONToIPFS   ({"pinataContent": doc, ...})
    - Both respond with {"IpfsHash": "<cid>", "PinSize": ..., "Timestamp": ...}
    - Reads go through an HTTP gateway: GET {gateway}/<cid>
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..config import (
    DEFAULT_GATEWAY_URL,
    DEFAULT_HTTP_TIMEOUT,
    PINATA_FILE_ENDPOINT,
    PINATA_JSON_ENDPOINT,
    PinataCredentials,
)
from .base import ContentStore, StorageError
from .uris import to_gateway_url

logger = logging.getLogger("mintermint.storage.pinata")


class PinataStore(ContentStore):
    """
    Async Pinata client.

    Example:
        store = PinataStore(PinataCredentials(jwt="..."))
        cid = await store.upload_blob(image_bytes, "cat.png")
        doc = await store.fetch_json(f"ipfs://{cid}")
        await store.close()
    """

    def __init__(
        self,
        credentials: PinataCredentials,
        gateway_url: str = DEFAULT_GATEWAY_URL,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
        file_endpoint: str = PINATA_FILE_ENDPOINT,
        json_endpoint: str = PINATA_JSON_ENDPOINT,
    ):
        """
        Initialize PinataStore.

        Args:
            credentials: API key/secret or JWT
            gateway_url: Gateway prefix used for reads
            timeout: Total timeout per HTTP request in seconds
            session: Existing aiohttp session (not closed by this store)
            file_endpoint: Override for the blob pinning endpoint
            json_endpoint: Override for the JSON pinning endpoint
        """
        self.credentials = credentials
        self.gateway_url = gateway_url
        self.timeout = timeout
        self.file_endpoint = file_endpoint
        self.json_endpoint = json_endpoint
        self._session = session
        self._owns_session = session is None

        # Stats
        self._blobs_uploaded = 0
        self._documents_uploaded = 0
        self._documents_fetched = 0

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this store created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def _require_credentials(self) -> None:
        if not self.credentials.is_configured():
            raise StorageError(
                "Pinata credentials not configured "
                "(set PINATA_JWT or PINATA_API_KEY and PINATA_SECRET_KEY)"
            )

    async def _read_pin_response(self, response: aiohttp.ClientResponse) -> str:
        """Extract the CID from a pinning response."""
        if response.status != 200:
            text = await response.text()
            raise StorageError(f"Pinata returned HTTP {response.status}: {text[:200]}")
        try:
            data = await response.json(content_type=None)
        except (ValueError, aiohttp.ContentTypeError) as e:
            raise StorageError(f"Pinata returned a malformed response: {e}")
        cid = data.get("IpfsHash") if isinstance(data, dict) else None
        if not cid:
            raise StorageError("Pinata response did not include an IpfsHash")
        return cid

    async def upload_blob(self, data: bytes, filename: str = "asset") -> str:
        """
        Pin a binary blob.

        Args:
            data: Raw bytes (must be non-empty)
            filename: Name recorded by Pinata

        Returns:
            CID of the pinned blob
        """
        if not data:
            raise StorageError("Refusing to upload an empty blob")
        self._require_credentials()

        form = aiohttp.FormData()
        form.add_field("file", data, filename=filename or "asset",
                       content_type="application/octet-stream")

        try:
            async with self._get_session().post(
                self.file_endpoint,
                data=form,
                headers=self.credentials.headers(),
            ) as response:
                cid = await self._read_pin_response(response)
        except asyncio.TimeoutError:
            raise StorageError(f"Timed out uploading {filename} after {self.timeout:g}s")
        except aiohttp.ClientError as e:
            raise StorageError(f"Blob upload failed: {e}")

        self._blobs_uploaded += 1
        logger.info(f"Pinned blob {filename} ({len(data)} bytes) as {cid}")
        return cid

    async def upload_json(self, document: Dict[str, Any], name: str = "") -> str:
        """
        Pin a JSON document.

        Args:
            document: JSON-serializable mapping
            name: Optional display name recorded by Pinata

        Returns:
            CID of the pinned document
        """
        self._require_credentials()

        body: Dict[str, Any] = {"pinataContent": document}
        if name:
            body["pinataMetadata"] = {"name": name}

        try:
            async with self._get_session().post(
                self.json_endpoint,
                json=body,
                headers=self.credentials.headers(),
            ) as response:
                cid = await self._read_pin_response(response)
        except asyncio.TimeoutError:
            raise StorageError(f"Timed out uploading JSON after {self.timeout:g}s")
        except aiohttp.ClientError as e:
            raise StorageError(f"JSON upload failed: {e}")

        self._documents_uploaded += 1
        logger.info(f"Pinned JSON document {name or '(unnamed)'} as {cid}")
        return cid

    async def fetch_json(self, uri: str) -> Dict[str, Any]:
        """
        Fetch a JSON object through the gateway.

        Args:
            uri: ipfs:// locator or http(s) URL

        Returns:
            Parsed JSON object
        """
        try:
            url = to_gateway_url(uri, self.gateway_url)
        except ValueError as e:
            raise StorageError(str(e))
        if not url.startswith(("http://", "https://")):
            raise StorageError(f"Unsupported metadata URI: {uri!r}")

        try:
            async with self._get_session().get(url) as response:
                if response.status != 200:
                    raise StorageError(f"Gateway returned HTTP {response.status} for {url}")
                data = await response.json(content_type=None)
        except asyncio.TimeoutError:
            raise StorageError(f"Timed out fetching {url}")
        except (aiohttp.ClientError, ValueError) as e:
            # ValueError covers malformed JSON and bodies that are not UTF-8
            raise StorageError(f"Failed to fetch {url}: {e}")

        if not isinstance(data, dict):
            raise StorageError(f"Expected a JSON object at {url}, got {type(data).__name__}")

        self._documents_fetched += 1
        logger.debug(f"Fetched metadata from {url}")
        return data

    def get_stats(self) -> Dict[str, Any]:
        """Get client statistics."""
        return {
            "configured": self.credentials.is_configured(),
            "gateway_url": self.gateway_url,
            "blobs_uploaded": self._blobs_uploaded,
            "documents_uploaded": self._documents_uploaded,
            "documents_fetched": self._documents_fetched,
        }

    def __repr__(self) -> str:
        return f"PinataStore(gateway={self.gateway_url!r}, configured={self.credentials.is_configured()})"
