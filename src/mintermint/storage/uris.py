"""
mintermint/storage/uris.py

Conversions between CIDs, ipfs:// locators and gateway URLs.

The publisher emits ipfs:// URIs; the reconciler inverts them to gateway
URLs. Gateway-qualified URLs (as minted by older front-ends) are
recognised and mapped back to their CID.
"""

from typing import Optional
from urllib.parse import urlparse

from ..config import DEFAULT_GATEWAY_URL, IPFS_SCHEME


def cid_to_uri(cid: str) -> str:
    """Build the canonical ipfs:// locator for a CID."""
    cid = (cid or "").strip()
    if not cid:
        raise ValueError("CID must be a non-empty string")
    return f"{IPFS_SCHEME}{cid}"


def uri_to_cid(uri: str) -> Optional[str]:
    """
    Extract the CID (plus any sub-path) from an ipfs:// or gateway URL.

    Returns:
        CID string, or None if the URI is not content-addressed
    """
    uri = (uri or "").strip()
    if uri.startswith(IPFS_SCHEME):
        rest = uri[len(IPFS_SCHEME):]
        # ipfs://ipfs/<cid> is a common malformed variant
        if rest.startswith("ipfs/"):
            rest = rest[len("ipfs/"):]
        return rest or None

    parsed = urlparse(uri)
    if parsed.scheme in ("http", "https") and "/ipfs/" in parsed.path:
        rest = parsed.path.split("/ipfs/", 1)[1]
        return rest or None
    return None


def to_gateway_url(uri: str, gateway_url: str = DEFAULT_GATEWAY_URL) -> str:
    """
    Resolve a URI to a fetchable HTTP URL.

    ipfs:// locators get the gateway prefix; plain http(s) URLs are
    returned unchanged.
    """
    uri = (uri or "").strip()
    if not gateway_url.endswith("/"):
        gateway_url += "/"
    if uri.startswith(IPFS_SCHEME):
        cid = uri_to_cid(uri)
        if not cid:
            raise ValueError(f"No CID in {uri!r}")
        return gateway_url + cid
    return uri
