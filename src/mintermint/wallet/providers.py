"""
mintermint/wallet/providers.py

Wallet providers: account discovery, network identity and transaction
signing.

Two implementations:
- NodeWalletProvider: accounts managed by the connected node or wallet
  bridge (eth_requestAccounts / eth_accounts / eth_sendTransaction).
- LocalAccountProvider: a private key held in-process; transactions are
  signed with eth_account and sent raw.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from ..errors import error_code, is_user_rejection

logger = logging.getLogger("mintermint.wallet.providers")


class WalletProvider(ABC):
    """
    Abstract wallet provider.

    A provider may reject or time out any request; rejected requests have
    no transaction side effect.
    """

    w3: AsyncWeb3

    @abstractmethod
    async def request_accounts(self) -> List[str]:
        """Ask for account access (may prompt the user)."""
        pass

    @abstractmethod
    async def accounts(self) -> List[str]:
        """Accounts already authorized, without prompting."""
        pass

    async def chain_id(self) -> int:
        """Network identity of the provider."""
        return int(await self.w3.eth.chain_id)

    @abstractmethod
    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        """Sign and broadcast a transaction, returning its hash as hex."""
        pass


class NodeWalletProvider(WalletProvider):
    """
    Provider whose accounts live behind the JSON-RPC endpoint.

    Works with development nodes (hardhat, anvil) and wallet bridges that
    speak EIP-1193 over JSON-RPC.
    """

    def __init__(self, w3: AsyncWeb3):
        self.w3 = w3

    @classmethod
    def from_url(cls, rpc_url: str) -> "NodeWalletProvider":
        return cls(AsyncWeb3(AsyncHTTPProvider(rpc_url)))

    async def request_accounts(self) -> List[str]:
        try:
            result = await self.w3.manager.coro_request("eth_requestAccounts", [])
        except Exception as e:
            if is_user_rejection(e) or error_code(e) != -32601:
                raise
            # Plain nodes do not implement eth_requestAccounts
            logger.debug("eth_requestAccounts unsupported, falling back to eth_accounts")
            result = await self.w3.eth.accounts
        return [Web3.to_checksum_address(a) for a in result or []]

    async def accounts(self) -> List[str]:
        result = await self.w3.eth.accounts
        return [Web3.to_checksum_address(a) for a in result or []]

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        tx_hash = await self.w3.eth.send_transaction(tx)
        return Web3.to_hex(tx_hash)

    def __repr__(self) -> str:
        return f"NodeWalletProvider({self.w3.provider!r})"


class LocalAccountProvider(WalletProvider):
    """
    Provider backed by an in-process private key.

    The key's account is always authorized, so request_accounts() never
    prompts.
    """

    def __init__(self, w3: AsyncWeb3, private_key: str):
        self.w3 = w3
        self._account = Account.from_key(private_key)

    @classmethod
    def from_url(cls, rpc_url: str, private_key: str) -> "LocalAccountProvider":
        return cls(AsyncWeb3(AsyncHTTPProvider(rpc_url)), private_key)

    @property
    def address(self) -> str:
        return self._account.address

    async def request_accounts(self) -> List[str]:
        return [self._account.address]

    async def accounts(self) -> List[str]:
        return [self._account.address]

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        tx = dict(tx)
        if "nonce" not in tx:
            tx["nonce"] = await self.w3.eth.get_transaction_count(self._account.address, "pending")
        signed = self._account.sign_transaction(tx)
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)

    def __repr__(self) -> str:
        return f"LocalAccountProvider({self._account.address})"
