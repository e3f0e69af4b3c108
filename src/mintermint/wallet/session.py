"""
mintermint/wallet/session.py

Owns wallet connection state and the live ledger handle.

Lifecycle:
    connect()               - prompt for accounts, bind, notify listeners
    restore_if_authorized() - bind silently if an account is already authorized
    disconnect()            - clear locally, notify listeners

Listeners registered with add_listener() are how dependent components
(catalog, workflows) refresh on bind and discard cached state on clear.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from web3 import Web3

from ..config import MarketConfig
from ..errors import (
    SessionRequired,
    SigningContextError,
    UserRejected,
    WalletUnavailable,
    WrongNetwork,
)
from ..ledger.marketplace import MarketplaceLedger
from .providers import WalletProvider, is_user_rejection

logger = logging.getLogger("mintermint.wallet.session")

ConnectedListener = Callable[["Session"], Awaitable[None]]
DisconnectedListener = Callable[[], Any]


@dataclass
class Session:
    """
    Wallet session. ledger is set iff account_address is set.
    """
    account_address: Optional[str] = None
    chain_id: Optional[int] = None
    ledger: Optional[MarketplaceLedger] = None

    @property
    def connected(self) -> bool:
        return self.account_address is not None and self.ledger is not None

    def to_dict(self) -> dict:
        return {
            "connected": self.connected,
            "account_address": self.account_address,
            "chain_id": self.chain_id,
            "contract_address": self.ledger.address if self.ledger else None,
        }


class SessionManager:
    """
    Connects a wallet provider and hands out the account-scoped ledger.

    Example:
        manager = SessionManager(NodeWalletProvider.from_url(url), config)
        manager.add_listener(on_connected=catalog.on_session_bound, on_disconnected=catalog.clear)
        session = await manager.connect()
    """

    def __init__(
        self,
        provider: Optional[WalletProvider],
        config: MarketConfig,
        ledger_factory: Callable[..., MarketplaceLedger] = MarketplaceLedger,
    ):
        """
        Initialize SessionManager.

        Args:
            provider: Wallet provider, or None when no wallet is present
            config: Marketplace configuration
            ledger_factory: Builds the ledger handle for a bound account
        """
        self.provider = provider
        self.config = config
        self._ledger_factory = ledger_factory
        self._session = Session()

        # One signing lock per account; a provider handles one prompt at a time
        self._signing_locks: Dict[str, asyncio.Lock] = {}

        self._on_connected: List[ConnectedListener] = []
        self._on_disconnected: List[DisconnectedListener] = []

    @property
    def session(self) -> Session:
        return self._session

    @property
    def connected(self) -> bool:
        return self._session.connected

    def require(self) -> Session:
        """Return the active session or raise SessionRequired."""
        if not self._session.connected:
            raise SessionRequired()
        return self._session

    def add_listener(
        self,
        on_connected: Optional[ConnectedListener] = None,
        on_disconnected: Optional[DisconnectedListener] = None,
    ) -> None:
        if on_connected:
            self._on_connected.append(on_connected)
        if on_disconnected:
            self._on_disconnected.append(on_disconnected)

    def signing_lock(self, account: str) -> asyncio.Lock:
        key = account.lower()
        if key not in self._signing_locks:
            self._signing_locks[key] = asyncio.Lock()
        return self._signing_locks[key]

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def connect(self) -> Session:
        """
        Request account access and bind the session.

        Calling while connected re-binds to the provider's current account.

        Raises:
            WalletUnavailable: No provider
            UserRejected: Provider declined
            SigningContextError: Any other provider fault (incl. WrongNetwork)
        """
        if self.provider is None:
            raise WalletUnavailable("No wallet provider available")

        try:
            accounts = await self.provider.request_accounts()
        except Exception as e:
            if is_user_rejection(e):
                logger.info("Wallet connection rejected by user")
                raise UserRejected("Wallet connection was rejected") from e
            logger.warning(f"Wallet connection failed: {e}")
            raise SigningContextError(f"Wallet connection failed: {e}") from e

        if not accounts:
            raise SigningContextError("Wallet returned no accounts")

        return await self._bind(accounts[0])

    async def restore_if_authorized(self) -> Optional[Session]:
        """
        Bind silently if the provider already authorized an account.

        Never prompts. Leaves the session empty when nothing is authorized.
        """
        if self.provider is None:
            return None
        try:
            accounts = await self.provider.accounts()
        except Exception as e:
            logger.debug(f"Could not query authorized accounts: {e}")
            return None
        if not accounts:
            logger.debug("No previously authorized account")
            return None
        return await self._bind(accounts[0])

    def disconnect(self) -> None:
        """Clear the session locally. Provider authorization is not revoked."""
        previous = self._session.account_address
        self._session = Session()
        for listener in self._on_disconnected:
            try:
                listener()
            except Exception as e:
                logger.warning(f"on_disconnected listener error: {e}")
        if previous:
            logger.info(f"Disconnected {previous}")

    async def _bind(self, account: str) -> Session:
        try:
            chain_id = await self.provider.chain_id()
        except Exception as e:
            raise SigningContextError(f"Could not determine wallet network: {e}") from e

        if self.config.chain_id is not None and chain_id != self.config.chain_id:
            raise WrongNetwork(expected=self.config.chain_id, actual=chain_id)

        account = Web3.to_checksum_address(account)
        ledger = self._ledger_factory(
            w3=self.provider.w3,
            contract_address=self.config.contract_address,
            account=account,
            signer=self.provider,
            signing_lock=self.signing_lock(account),
            confirmation_timeout=self.config.confirmation_timeout,
            poll_interval=self.config.poll_interval,
        )
        self._session = Session(account_address=account, chain_id=chain_id, ledger=ledger)
        logger.info(f"Connected {account} on chain {chain_id}")

        for listener in self._on_connected:
            try:
                await listener(self._session)
            except Exception as e:
                logger.warning(f"on_connected listener error: {e}")
        return self._session

    def __repr__(self) -> str:
        status = self._session.account_address or "disconnected"
        return f"SessionManager({status})"
