"""
mintermint/config.py

Configuration constants and data classes for mintermint.
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional
import os


# Pinata pinning API (content-addressed storage service)
PINATA_API_URL = "https://api.pinata.cloud"
PINATA_FILE_ENDPOINT = PINATA_API_URL + "/pinning/pinFileToIPFS"
PINATA_JSON_ENDPOINT = PINATA_API_URL + "/pinning/pinJSONToIPFS"

# Gateway used to dereference ipfs:// locators for display and fetching
DEFAULT_GATEWAY_URL = "https://gateway.pinata.cloud/ipfs/"
IPFS_SCHEME = "ipfs://"

# Local development node (hardhat / anvil)
DEFAULT_RPC_URL = "http://127.0.0.1:8545"

# 1 ETH = 10^18 wei
WEI_PER_ETH = 10 ** 18
ETH_DECIMALS = 18

# Transaction confirmation wait policy
DEFAULT_CONFIRMATION_TIMEOUT = 120.0   # seconds
DEFAULT_POLL_INTERVAL = 2.0            # seconds between receipt polls

# Storage service HTTP timeout
DEFAULT_HTTP_TIMEOUT = 60.0            # seconds

# Max concurrent per-token lookups during catalog reconciliation
DEFAULT_CATALOG_CONCURRENCY = 8

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _env_float(environ: Mapping[str, str], key: str, default: float) -> float:
    value = environ.get(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {value!r}")


def _env_int(environ: Mapping[str, str], key: str) -> Optional[int]:
    value = environ.get(key)
    if value is None or value.strip() == "":
        return None
    try:
        return int(value, 0)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {value!r}")


@dataclass
class PinataCredentials:
    """Credentials for the Pinata pinning API. Opaque to the core."""
    api_key: str = ""
    api_secret: str = ""
    jwt: str = ""

    def is_configured(self) -> bool:
        """Check if either a JWT or a key/secret pair is available."""
        return bool(self.jwt) or bool(self.api_key and self.api_secret)

    def headers(self) -> dict:
        """Authentication headers for a pinning request."""
        if self.jwt:
            return {"Authorization": f"Bearer {self.jwt}"}
        return {
            "pinata_api_key": self.api_key,
            "pinata_secret_api_key": self.api_secret,
        }

    def __repr__(self) -> str:
        return f"PinataCredentials(configured={self.is_configured()})"


@dataclass
class MarketConfig:
    """
    Complete configuration for a marketplace client.

    Usage:
        config = MarketConfig.from_env()
        config = MarketConfig(
            rpc_url="https://sepolia.example.org",
            contract_address="0x...",
        )
    """

    # Ledger
    rpc_url: str = DEFAULT_RPC_URL
    contract_address: str = ""
    chain_id: Optional[int] = None     # None = accept any network

    # Local signing key (used when no node-managed wallet is available)
    private_key: str = field(default="", repr=False)

    # Storage service
    pinata: PinataCredentials = field(default_factory=PinataCredentials)
    gateway_url: str = DEFAULT_GATEWAY_URL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    # Confirmation wait policy
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL

    # Catalog reconciliation
    catalog_concurrency: int = DEFAULT_CATALOG_CONCURRENCY

    def __post_init__(self):
        if not self.gateway_url.endswith("/"):
            self.gateway_url += "/"
        if self.catalog_concurrency < 1:
            raise ValueError("catalog_concurrency must be at least 1")
        if self.confirmation_timeout <= 0:
            raise ValueError("confirmation_timeout must be positive")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MarketConfig":
        """
        Build configuration from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            MarketConfig instance
        """
        env = os.environ if environ is None else environ
        return cls(
            rpc_url=env.get("MINTERMINT_RPC_URL", DEFAULT_RPC_URL),
            contract_address=env.get("MINTERMINT_CONTRACT_ADDRESS", ""),
            chain_id=_env_int(env, "MINTERMINT_CHAIN_ID"),
            private_key=env.get("MINTERMINT_PRIVATE_KEY", ""),
            pinata=PinataCredentials(
                api_key=env.get("PINATA_API_KEY", ""),
                api_secret=env.get("PINATA_SECRET_KEY", ""),
                jwt=env.get("PINATA_JWT", ""),
            ),
            gateway_url=env.get("MINTERMINT_GATEWAY_URL", DEFAULT_GATEWAY_URL),
            confirmation_timeout=_env_float(
                env, "MINTERMINT_CONFIRMATION_TIMEOUT", DEFAULT_CONFIRMATION_TIMEOUT
            ),
            poll_interval=_env_float(env, "MINTERMINT_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            catalog_concurrency=int(
                _env_float(env, "MINTERMINT_CATALOG_CONCURRENCY", DEFAULT_CATALOG_CONCURRENCY)
            ),
        )

    def to_dict(self) -> dict:
        """Non-secret view of the configuration."""
        return {
            "rpc_url": self.rpc_url,
            "contract_address": self.contract_address,
            "chain_id": self.chain_id,
            "local_signer": bool(self.private_key),
            "pinata_configured": self.pinata.is_configured(),
            "gateway_url": self.gateway_url,
            "confirmation_timeout": self.confirmation_timeout,
            "poll_interval": self.poll_interval,
            "catalog_concurrency": self.catalog_concurrency,
        }
