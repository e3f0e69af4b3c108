"""
mintermint - Client for an NFT marketplace contract

Built on web3.py and aiohttp with:
- Wallet sessions over a node-managed account or a local signing key
- Asset publishing to IPFS through Pinata (image, then metadata)
- Mint, list, cancel and buy workflows with confirmation waits
- Catalog views of owned tokens and active listings

Usage:
    from mintermint import MarketplaceClient, MarketConfig, AssetDraft

    async with MarketplaceClient.from_config(MarketConfig.from_env()) as client:
        await client.connect()
        minted = await client.create(AssetDraft.from_file("cat.png", "Cat", "A cat"))
        await client.list_token(minted.token_id, "0.5")

CLI Usage:
    mintermint --help
"""

from .client import MarketplaceClient
from .config import MarketConfig, PinataCredentials
from .catalog import CatalogEntry, CatalogReconciler, TokenMetadata
from .publisher import AssetDraft, AssetPublisher, build_metadata
from .units import eth_to_wei, wei_to_eth
from .wallet import (
    LocalAccountProvider,
    NodeWalletProvider,
    Session,
    SessionManager,
    WalletProvider,
)
from .workflows import (
    ListingResult,
    ListingState,
    ListingWorkflow,
    MintResult,
    MintWorkflow,
    PurchaseResult,
    TradeWorkflow,
    TxResult,
)
from .errors import (
    MarketError,
    WalletUnavailable,
    UserRejected,
    SigningContextError,
    WrongNetwork,
    SessionRequired,
    InvalidDraft,
    UploadFailed,
    MetadataUploadFailed,
    MetadataFetchFailed,
    InvalidPrice,
    ListingChanged,
    LedgerReadError,
    TransactionError,
    TransactionRejected,
    TransactionReverted,
    NotSeller,
    InsufficientFunds,
    TransactionTimeout,
)

__version__ = "0.1.0"

__all__ = [
    "MarketplaceClient",
    "MarketConfig",
    "PinataCredentials",
    "CatalogEntry",
    "CatalogReconciler",
    "TokenMetadata",
    "AssetDraft",
    "AssetPublisher",
    "build_metadata",
    "eth_to_wei",
    "wei_to_eth",
    "LocalAccountProvider",
    "NodeWalletProvider",
    "Session",
    "SessionManager",
    "WalletProvider",
    "ListingResult",
    "ListingState",
    "ListingWorkflow",
    "MintResult",
    "MintWorkflow",
    "PurchaseResult",
    "TradeWorkflow",
    "TxResult",
    "MarketError",
    "WalletUnavailable",
    "UserRejected",
    "SigningContextError",
    "WrongNetwork",
    "SessionRequired",
    "InvalidDraft",
    "UploadFailed",
    "MetadataUploadFailed",
    "MetadataFetchFailed",
    "InvalidPrice",
    "ListingChanged",
    "LedgerReadError",
    "TransactionError",
    "TransactionRejected",
    "TransactionReverted",
    "NotSeller",
    "InsufficientFunds",
    "TransactionTimeout",
]
