"""
mintermint/client.py

MarketplaceClient: one object wiring the session, storage, catalog and
workflows together.

Usage:
    from mintermint import MarketplaceClient, MarketConfig, AssetDraft

    async with MarketplaceClient.from_config(MarketConfig.from_env()) as client:
        await client.connect()
        draft = AssetDraft.from_file("cat.png", "Cat", "A cat")
        minted = await client.create(draft)
        await client.list_token(minted.token_id, "0.5")

        for entry in await client.marketplace():
            print(entry.token_id, entry.metadata.name, entry.price_eth)
"""

import logging
from typing import Any, Dict, List, Optional

from .catalog import CatalogEntry, CatalogReconciler
from .config import MarketConfig
from .publisher import AssetDraft, AssetPublisher
from .storage.base import ContentStore
from .storage.pinata import PinataStore
from .units import PriceLike
from .wallet.providers import LocalAccountProvider, NodeWalletProvider, WalletProvider
from .wallet.session import Session, SessionManager
from .workflows import (
    ListingResult,
    ListingWorkflow,
    MintResult,
    MintWorkflow,
    PurchaseResult,
    TradeWorkflow,
    TxResult,
)

logger = logging.getLogger("mintermint.client")


class MarketplaceClient:
    """
    High-level marketplace client.

    Catalog views are refreshed once a session is bound (unless
    auto_refresh is False) and after every confirmed workflow.
    """

    def __init__(
        self,
        config: MarketConfig,
        provider: Optional[WalletProvider] = None,
        storage: Optional[ContentStore] = None,
        auto_refresh: bool = True,
    ):
        """
        Initialize MarketplaceClient.

        Args:
            config: Marketplace configuration
            provider: Wallet provider (None = no wallet available)
            storage: Content store (default: Pinata with config credentials)
            auto_refresh: Refresh catalog views when a session is bound
        """
        self.config = config
        self.provider = provider
        self.storage = storage if storage is not None else PinataStore(
            config.pinata,
            gateway_url=config.gateway_url,
            timeout=config.http_timeout,
        )

        self.sessions = SessionManager(provider, config)
        self.catalog = CatalogReconciler(
            self.sessions,
            self.storage,
            gateway_url=config.gateway_url,
            concurrency=config.catalog_concurrency,
        )
        self.publisher = AssetPublisher(self.storage)
        self.minting = MintWorkflow(self.sessions, self.catalog)
        self.listings = ListingWorkflow(self.sessions, self.catalog)
        self.trades = TradeWorkflow(self.sessions, self.catalog)

        if auto_refresh:
            self.sessions.add_listener(on_connected=self.catalog.on_session_bound)
        self.sessions.add_listener(on_disconnected=self._on_disconnected)

    @classmethod
    def from_config(cls, config: MarketConfig, **kwargs: Any) -> "MarketplaceClient":
        """Build a client whose provider matches the configuration."""
        if config.private_key:
            provider = LocalAccountProvider.from_url(config.rpc_url, config.private_key)
        else:
            provider = NodeWalletProvider.from_url(config.rpc_url)
        return cls(config, provider=provider, **kwargs)

    # ========================================================================
    # SESSION
    # ========================================================================

    @property
    def session(self) -> Session:
        return self.sessions.session

    async def connect(self) -> Session:
        return await self.sessions.connect()

    async def restore(self) -> Optional[Session]:
        return await self.sessions.restore_if_authorized()

    def disconnect(self) -> None:
        self.sessions.disconnect()

    def _on_disconnected(self) -> None:
        self.catalog.clear()
        self.listings.reset()

    # ========================================================================
    # WORKFLOWS
    # ========================================================================

    async def publish(self, draft: AssetDraft) -> str:
        return await self.publisher.publish(draft)

    async def mint(self, token_uri: str) -> MintResult:
        return await self.minting.mint(token_uri)

    async def create(self, draft: AssetDraft) -> MintResult:
        """Publish a draft and mint it in one go."""
        # Fail before uploading anything if there is no session to mint with
        self.sessions.require()
        token_uri = await self.publisher.publish(draft)
        return await self.minting.mint(token_uri)

    async def list_token(self, token_id: int, price_eth: PriceLike) -> ListingResult:
        return await self.listings.list(token_id, price_eth)

    async def cancel_listing(self, token_id: int) -> TxResult:
        return await self.listings.cancel(token_id)

    async def buy(
        self,
        token_id: int,
        price_eth: PriceLike,
        expected_seller: Optional[str] = None,
    ) -> PurchaseResult:
        return await self.trades.buy(token_id, price_eth, expected_seller)

    # ========================================================================
    # CATALOG
    # ========================================================================

    async def my_assets(self, account_address: Optional[str] = None) -> List[CatalogEntry]:
        return await self.catalog.my_assets(account_address)

    async def marketplace(self) -> List[CatalogEntry]:
        return await self.catalog.marketplace()

    async def refresh(self) -> bool:
        return await self.catalog.refresh()

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def close(self) -> None:
        await self.storage.close()

    async def __aenter__(self) -> "MarketplaceClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def get_stats(self) -> Dict[str, Any]:
        stats = {
            "session": self.sessions.session.to_dict(),
            "catalog": self.catalog.get_stats(),
        }
        if hasattr(self.storage, "get_stats"):
            stats["storage"] = self.storage.get_stats()
        return stats

    def __repr__(self) -> str:
        return f"MarketplaceClient({self.sessions!r}, storage={self.storage!r})"
