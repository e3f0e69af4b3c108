"""
mintermint/catalog.py

Merges on-ledger listing/ownership facts with off-chain metadata into
display-ready records for the "My Assets" and "Marketplace" views.

Both read paths are side-effect free on the ledger. Per-token lookups run
concurrently (bounded by a semaphore) and are gathered back in
enumeration order, so unchanged ledger state always yields the same
sequence. A token whose metadata cannot be resolved is kept with
placeholder metadata and an error note.

Views are replaced wholesale on every refresh; nothing is mutated in
place. Refreshes run one at a time, so the last one to start wins.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from .config import DEFAULT_CATALOG_CONCURRENCY, DEFAULT_GATEWAY_URL
from .errors import LedgerReadError, MarketError, MetadataFetchFailed
from .ledger.marketplace import Listing, MarketplaceLedger
from .storage.base import ContentStore
from .storage.uris import to_gateway_url
from .units import wei_to_eth

if TYPE_CHECKING:
    from .wallet.session import Session, SessionManager

logger = logging.getLogger("mintermint.catalog")

PLACEHOLDER_NAME = "Unavailable"
PLACEHOLDER_DESCRIPTION = "Metadata could not be loaded"


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True)
class TokenMetadata:
    """Display fields of a token's metadata document."""
    name: str
    description: str
    image: str          # As stored, usually ipfs://<cid>
    image_url: str      # Gateway URL for display

    @classmethod
    def from_document(cls, document: Dict[str, Any], gateway_url: str = DEFAULT_GATEWAY_URL) -> "TokenMetadata":
        image = str(document.get("image") or "")
        try:
            image_url = to_gateway_url(image, gateway_url) if image else ""
        except ValueError:
            image_url = ""
        return cls(
            name=str(document.get("name") or ""),
            description=str(document.get("description") or ""),
            image=image,
            image_url=image_url,
        )

    @classmethod
    def placeholder(cls, token_id: int) -> "TokenMetadata":
        return cls(
            name=f"{PLACEHOLDER_NAME} #{token_id}",
            description=PLACEHOLDER_DESCRIPTION,
            image="",
            image_url="",
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "image": self.image,
            "image_url": self.image_url,
        }


@dataclass(frozen=True)
class CatalogEntry:
    """One token as shown in a catalog view."""
    token_id: int
    metadata: TokenMetadata
    is_listed: bool
    price_eth: str
    seller: Optional[str] = None
    token_uri: str = ""
    error: Optional[str] = None     # Set when metadata is a placeholder

    @property
    def has_metadata(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "token_id": self.token_id,
            "metadata": self.metadata.to_dict(),
            "is_listed": self.is_listed,
            "price_eth": self.price_eth,
            "seller": self.seller,
            "token_uri": self.token_uri,
            "error": self.error,
        }


# ============================================================================
# RECONCILER
# ============================================================================

class CatalogReconciler:
    """
    Builds and holds the catalog views.

    Example:
        catalog = CatalogReconciler(sessions, store)
        entries = await catalog.my_assets()
        listings = await catalog.marketplace()
        await catalog.refresh()   # rebuild both cached views
    """

    def __init__(
        self,
        sessions: "SessionManager",
        storage: ContentStore,
        gateway_url: str = DEFAULT_GATEWAY_URL,
        concurrency: int = DEFAULT_CATALOG_CONCURRENCY,
    ):
        self.sessions = sessions
        self.storage = storage
        self.gateway_url = gateway_url
        self.concurrency = max(1, concurrency)

        # Cached views
        self.my_assets_entries: Tuple[CatalogEntry, ...] = ()
        self.marketplace_entries: Tuple[CatalogEntry, ...] = ()
        self.last_refreshed: float = 0.0
        self.last_error: Optional[str] = None
        self._refresh_lock = asyncio.Lock()

    def _ledger(self) -> MarketplaceLedger:
        return self.sessions.require().ledger

    # ========================================================================
    # READ PATHS
    # ========================================================================

    async def my_assets(self, account_address: Optional[str] = None) -> List[CatalogEntry]:
        """
        Entries for every token owned by an account.

        Args:
            account_address: Owner to enumerate (default: session account)

        Returns:
            One entry per owned token, in tokensOfOwner order
        """
        session = self.sessions.require()
        owner = account_address or session.account_address
        return await self._build_my_assets(session.ledger, owner, asyncio.Semaphore(self.concurrency))

    async def marketplace(self) -> List[CatalogEntry]:
        """
        Entries for every active listing.

        Zero-price listing slots are skipped. Order follows getAllListings.
        """
        return await self._build_marketplace(self._ledger(), asyncio.Semaphore(self.concurrency))

    async def _build_my_assets(
        self, ledger: MarketplaceLedger, owner: str, semaphore: asyncio.Semaphore
    ) -> List[CatalogEntry]:
        token_ids = await ledger.tokens_of_owner(owner)
        logger.debug(f"{owner} owns {len(token_ids)} tokens")
        return list(await asyncio.gather(
            *(self._owned_entry(ledger, token_id, semaphore) for token_id in token_ids)
        ))

    async def _build_marketplace(
        self, ledger: MarketplaceLedger, semaphore: asyncio.Semaphore
    ) -> List[CatalogEntry]:
        listings = await ledger.get_all_listings()
        active = [listing for listing in listings if listing.is_active]
        logger.debug(f"{len(active)} active listings of {len(listings)} slots")
        return list(await asyncio.gather(
            *(self._listed_entry(ledger, listing, semaphore) for listing in active)
        ))

    async def _resolve_metadata(
        self, ledger: MarketplaceLedger, token_id: int
    ) -> Tuple[str, TokenMetadata, Optional[str]]:
        """Resolve tokenURI -> document. Failures yield a placeholder."""
        token_uri = ""
        try:
            token_uri = await ledger.token_uri(token_id)
            document = await self.storage.fetch_json(token_uri)
            return token_uri, TokenMetadata.from_document(document, self.gateway_url), None
        except MarketError as e:
            failure = MetadataFetchFailed(token_id, str(e))
            logger.warning(str(failure))
            return token_uri, TokenMetadata.placeholder(token_id), str(failure)

    async def _owned_entry(
        self, ledger: MarketplaceLedger, token_id: int, semaphore: asyncio.Semaphore
    ) -> CatalogEntry:
        async with semaphore:
            token_uri, metadata, error = await self._resolve_metadata(ledger, token_id)
            try:
                listing: Optional[Listing] = await ledger.get_listing(token_id)
            except LedgerReadError as e:
                # Unknown listing state is shown as unlisted
                logger.debug(f"Listing probe failed for token {token_id}: {e}")
                listing = None

        is_listed = listing is not None and listing.is_active
        return CatalogEntry(
            token_id=token_id,
            metadata=metadata,
            is_listed=is_listed,
            price_eth=wei_to_eth(listing.price_wei) if is_listed else "0",
            seller=listing.seller if is_listed else None,
            token_uri=token_uri,
            error=error,
        )

    async def _listed_entry(
        self, ledger: MarketplaceLedger, listing: Listing, semaphore: asyncio.Semaphore
    ) -> CatalogEntry:
        async with semaphore:
            token_uri, metadata, error = await self._resolve_metadata(ledger, listing.token_id)
        return CatalogEntry(
            token_id=listing.token_id,
            metadata=metadata,
            is_listed=True,
            price_eth=wei_to_eth(listing.price_wei),
            seller=listing.seller,
            token_uri=token_uri,
            error=error,
        )

    # ========================================================================
    # CACHED VIEWS
    # ========================================================================

    async def refresh(self) -> bool:
        """
        Rebuild both views for the current session.

        Returns:
            True if both views were replaced. On failure the previous views
            are kept and the error is stored in last_error.
        """
        async with self._refresh_lock:
            session = self.sessions.session
            if not session.connected:
                self.clear()
                return False

            # One semaphore bounds the fan-out of both views together
            semaphore = asyncio.Semaphore(self.concurrency)
            try:
                mine, market = await asyncio.gather(
                    self._build_my_assets(session.ledger, session.account_address, semaphore),
                    self._build_marketplace(session.ledger, semaphore),
                )
            except MarketError as e:
                self.last_error = str(e)
                logger.warning(f"Catalog refresh failed: {e}")
                return False

            if self.sessions.session is not session:
                logger.debug("Session changed during refresh; discarding result")
                return False
            self._replace_views(mine, market)
            return True

    def _replace_views(self, mine: List[CatalogEntry], market: List[CatalogEntry]) -> None:
        self.my_assets_entries = tuple(mine)
        self.marketplace_entries = tuple(market)
        self.last_error = None
        self.last_refreshed = time.time()
        logger.info(
            f"Catalog refreshed: {len(mine)} owned, {len(market)} listed"
        )

    async def on_session_bound(self, session: "Session") -> None:
        """Session listener: refresh once after connect/restore."""
        await self.refresh()

    def clear(self) -> None:
        """Discard both views."""
        self.my_assets_entries = ()
        self.marketplace_entries = ()
        self.last_refreshed = 0.0
        self.last_error = None

    def find_listing(self, token_id: int) -> Optional[CatalogEntry]:
        """Marketplace entry for a token from the last refresh."""
        for entry in self.marketplace_entries:
            if entry.token_id == token_id:
                return entry
        return None

    def get_stats(self) -> Dict[str, Any]:
        return {
            "owned": len(self.my_assets_entries),
            "listed": len(self.marketplace_entries),
            "last_refreshed": self.last_refreshed,
            "last_error": self.last_error,
        }
