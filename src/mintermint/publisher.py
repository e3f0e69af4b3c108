"""
mintermint/publisher.py

Turns an asset draft into a dereferenceable metadata URI.

Flow (strictly sequential):
1. Upload image bytes -> image CID
2. Upload {name, description, image: ipfs://<image CID>} -> metadata CID
3. Return ipfs://<metadata CID>

A failed image upload aborts before any metadata is written. A failed
metadata upload leaves the image pinned; re-uploading the same bytes later
yields the same CID, so no compensating action is taken.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

from .errors import InvalidDraft, MetadataUploadFailed, UploadFailed
from .storage.base import ContentStore, StorageError
from .storage.uris import cid_to_uri

logger = logging.getLogger("mintermint.publisher")


@dataclass
class AssetDraft:
    """Transient (name, description, image) tuple awaiting publication."""
    name: str
    description: str
    image: bytes
    filename: str = "image"

    @classmethod
    def from_file(cls, path: Union[str, Path], name: str, description: str) -> "AssetDraft":
        """Read the image for a draft from disk."""
        path = Path(path)
        return cls(
            name=name,
            description=description,
            image=path.read_bytes(),
            filename=path.name,
        )

    def validate(self) -> None:
        """Check the text fields. The image is checked by the upload step."""
        missing = [
            label for label, value in (("name", self.name), ("description", self.description))
            if not (value or "").strip()
        ]
        if missing:
            raise InvalidDraft(f"Draft is missing: {', '.join(missing)}")

    def __repr__(self) -> str:
        size = len(self.image) if self.image else 0
        return f"AssetDraft(name={self.name!r}, filename={self.filename!r}, image={size} bytes)"


def build_metadata(name: str, description: str, image_cid: str) -> Dict[str, Any]:
    """Metadata document format read by marketplaces and wallets."""
    return {
        "name": name,
        "description": description,
        "image": cid_to_uri(image_cid),
    }


class AssetPublisher:
    """
    Publishes drafts to a content-addressed store.

    Example:
        publisher = AssetPublisher(PinataStore(credentials))
        uri = await publisher.publish(AssetDraft("A", "d", image_bytes))
        # uri == "ipfs://<metadata cid>"
    """

    def __init__(self, storage: ContentStore):
        self.storage = storage

    async def publish(self, draft: AssetDraft) -> str:
        """
        Publish a draft.

        Args:
            draft: Name, description and image bytes

        Returns:
            ipfs:// metadata URI

        Raises:
            InvalidDraft: Name or description blank
            UploadFailed: Image missing/empty or image upload failed
            MetadataUploadFailed: Metadata upload failed after the image was stored
        """
        draft.validate()
        if not draft.image:
            raise UploadFailed("Image is empty or missing")

        try:
            image_cid = await self.storage.upload_blob(draft.image, draft.filename)
        except StorageError as e:
            logger.error(f"Image upload failed for {draft.name!r}: {e}")
            raise UploadFailed(f"Image upload failed: {e}") from e

        document = build_metadata(draft.name, draft.description, image_cid)
        try:
            metadata_cid = await self.storage.upload_json(document, name=draft.name)
        except StorageError as e:
            logger.error(f"Metadata upload failed for {draft.name!r} (image {image_cid} stays pinned): {e}")
            raise MetadataUploadFailed(f"Metadata upload failed: {e}", image_cid=image_cid) from e

        uri = cid_to_uri(metadata_cid)
        logger.info(f"Published {draft.name!r}: image={image_cid} metadata={uri}")
        return uri
