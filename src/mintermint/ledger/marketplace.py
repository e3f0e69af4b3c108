"""
mintermint/ledger/marketplace.py

Account-scoped handle to the marketplace contract.

Reads are plain eth_call queries. Writes are built (which simulates them
and surfaces reverts before anything is signed), signed through the
wallet provider under the account's signing lock, and then confirmed
separately with confirm(). Only the confirmation wait is subject to the
timeout; a submitted transaction cannot be withdrawn.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from web3 import AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TimeExhausted
from web3.logs import DISCARD

from ..config import DEFAULT_CONFIRMATION_TIMEOUT, DEFAULT_POLL_INTERVAL, ZERO_ADDRESS
from ..errors import (
    InsufficientFunds,
    LedgerReadError,
    MarketError,
    TransactionError,
    TransactionRejected,
    TransactionTimeout,
    is_user_rejection,
    revert_error,
)
from .abi import MARKETPLACE_ABI

if TYPE_CHECKING:
    from ..wallet.providers import WalletProvider

logger = logging.getLogger("mintermint.ledger.marketplace")


@dataclass(frozen=True)
class Listing:
    """On-ledger sale offer. A zero price means no listing."""
    token_id: int
    seller: str
    price_wei: int

    @property
    def is_active(self) -> bool:
        return self.price_wei > 0

    def to_dict(self) -> dict:
        return {
            "token_id": self.token_id,
            "seller": self.seller,
            "price_wei": self.price_wei,
        }


def _listing_from_result(token_id: int, result: Any) -> Listing:
    """Decode a Listing struct (seller, price) returned by the contract."""
    if isinstance(result, dict):
        seller, price = result.get("seller"), result.get("price")
    else:
        seller, price = result[0], result[1]
    return Listing(token_id=int(token_id), seller=str(seller or ZERO_ADDRESS), price_wei=int(price or 0))


def _revert_message(exc: ContractLogicError) -> str:
    return getattr(exc, "message", None) or str(exc)


def translate_submit_error(label: str, exc: Exception) -> MarketError:
    """Map a failure while building or sending a transaction to the taxonomy."""
    if isinstance(exc, MarketError):
        return exc
    if isinstance(exc, ContractLogicError):
        return revert_error(_revert_message(exc))
    if is_user_rejection(exc):
        return TransactionRejected(f"{label} was rejected in the wallet")
    if "insufficient funds" in str(exc).lower():
        return InsufficientFunds(str(exc))
    return TransactionError(f"{label} failed: {exc}")


class MarketplaceLedger:
    """
    Marketplace contract bound to one account.

    Example:
        ledger = MarketplaceLedger(w3, "0xContract...", "0xAccount...", signer=provider)
        tx_hash = await ledger.mint("ipfs://Qm...")
        receipt = await ledger.confirm(tx_hash)
        token_id = ledger.minted_token_id(receipt)
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        contract_address: str,
        account: str,
        signer: "WalletProvider",
        signing_lock: Optional[asyncio.Lock] = None,
        confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        contract: Any = None,
    ):
        """
        Initialize MarketplaceLedger.

        Args:
            w3: Async web3 instance
            contract_address: Marketplace contract address
            account: Account that signs transactions
            signer: Wallet provider used to sign and send
            signing_lock: Lock serializing signing requests for the account
            confirmation_timeout: Seconds to wait for a receipt
            poll_interval: Seconds between receipt polls
            contract: Pre-built contract object (default: built from the ABI)
        """
        if not contract_address:
            raise ValueError("Marketplace contract address is not configured")
        self.w3 = w3
        self.address = Web3.to_checksum_address(contract_address)
        self.account = Web3.to_checksum_address(account)
        self.signer = signer
        self.signing_lock = signing_lock or asyncio.Lock()
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval
        self.contract = contract or w3.eth.contract(address=self.address, abi=MARKETPLACE_ABI)

    @property
    def marketplace_address(self) -> str:
        """Operator that must be approved before listing."""
        return self.address

    # ========================================================================
    # READS
    # ========================================================================

    async def _read(self, name: str, *args: Any) -> Any:
        try:
            return await getattr(self.contract.functions, name)(*args).call()
        except ContractLogicError as e:
            raise LedgerReadError(f"{name}{args} reverted: {_revert_message(e)}") from e
        except Exception as e:
            raise LedgerReadError(f"{name}{args} failed: {e}") from e

    async def get_approved(self, token_id: int) -> str:
        return str(await self._read("getApproved", token_id))

    async def get_listing(self, token_id: int) -> Listing:
        return _listing_from_result(token_id, await self._read("listings", token_id))

    async def get_all_listings(self) -> List[Listing]:
        """All listing slots in contract order, including zero-price ones."""
        result = await self._read("getAllListings")
        listings, token_ids = result[0], result[1]
        if len(listings) != len(token_ids):
            raise LedgerReadError(
                f"getAllListings returned {len(listings)} listings for {len(token_ids)} token ids"
            )
        return [_listing_from_result(tid, item) for item, tid in zip(listings, token_ids)]

    async def tokens_of_owner(self, owner: str) -> List[int]:
        result = await self._read("tokensOfOwner", Web3.to_checksum_address(owner))
        return [int(t) for t in result]

    async def token_uri(self, token_id: int) -> str:
        return str(await self._read("tokenURI", token_id))

    # ========================================================================
    # WRITES
    # ========================================================================

    async def _submit(self, label: str, call: Any, value: int = 0) -> str:
        """Build, sign and broadcast one transaction. Returns its hash."""
        params: Dict[str, Any] = {"from": self.account}
        if value:
            params["value"] = value

        async with self.signing_lock:
            try:
                tx = await call.build_transaction(params)
                tx_hash = await self.signer.send_transaction(tx)
            except Exception as e:
                error = translate_submit_error(label, e)
                logger.warning(f"{label} not submitted: {error}")
                raise error from e

        logger.info(f"{label} submitted: {tx_hash}")
        return tx_hash

    async def mint(self, token_uri: str) -> str:
        return await self._submit("mintNFT", self.contract.functions.mintNFT(token_uri))

    async def approve(self, operator: str, token_id: int) -> str:
        return await self._submit(
            f"approve({token_id})",
            self.contract.functions.approve(Web3.to_checksum_address(operator), token_id),
        )

    async def create_listing(self, token_id: int, price_wei: int) -> str:
        return await self._submit(
            f"listing({token_id})",
            self.contract.functions.listing(token_id, price_wei),
        )

    async def cancel_listing(self, token_id: int) -> str:
        return await self._submit(
            f"cancelListing({token_id})",
            self.contract.functions.cancelListing(token_id),
        )

    async def buy(self, token_id: int, price_wei: int) -> str:
        return await self._submit(
            f"buyNFT({token_id})",
            self.contract.functions.buyNFT(token_id),
            value=price_wei,
        )

    # ========================================================================
    # CONFIRMATION
    # ========================================================================

    async def confirm(self, tx_hash: str) -> Dict[str, Any]:
        """
        Wait for a transaction to be mined.

        Args:
            tx_hash: Hash returned by a write method

        Returns:
            Transaction receipt

        Raises:
            TransactionTimeout: No receipt within confirmation_timeout
            TransactionReverted: Receipt status is 0
            TransactionError: The node failed while polling for the receipt
        """
        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.confirmation_timeout,
                poll_latency=self.poll_interval,
            )
        except TimeExhausted:
            logger.warning(f"No receipt for {tx_hash} after {self.confirmation_timeout:g}s")
            raise TransactionTimeout(tx_hash, self.confirmation_timeout)
        except Exception as e:
            logger.warning(f"Lost track of {tx_hash} while waiting for its receipt: {e}")
            raise TransactionError(f"Could not confirm {tx_hash}: {e}", tx_hash) from e

        if receipt["status"] != 1:
            reason = await self._replay_revert_reason(tx_hash, receipt)
            logger.warning(f"Transaction {tx_hash} reverted: {reason or '(no reason)'}")
            raise revert_error(reason, tx_hash)

        logger.info(f"Transaction {tx_hash} confirmed in block {receipt['blockNumber']}")
        return receipt

    async def _replay_revert_reason(self, tx_hash: str, receipt: Dict[str, Any]) -> str:
        """Re-run a reverted transaction as a call to recover its reason."""
        try:
            tx = await self.w3.eth.get_transaction(tx_hash)
            await self.w3.eth.call(
                {
                    "from": tx["from"],
                    "to": tx["to"],
                    "data": tx["input"],
                    "value": tx.get("value", 0),
                },
                receipt["blockNumber"] - 1,
            )
        except ContractLogicError as e:
            return _revert_message(e)
        except Exception as e:
            logger.debug(f"Could not replay {tx_hash}: {e}")
        return ""

    def minted_token_id(self, receipt: Dict[str, Any]) -> Optional[int]:
        """
        Token id from the mint's Transfer(0x0 -> account) event.

        Returns:
            Token id, or None if the receipt carries no mint event
        """
        events = self.contract.events.Transfer().process_receipt(receipt, errors=DISCARD)
        for event in events:
            args = event["args"]
            if args["from"] == ZERO_ADDRESS and str(args["to"]).lower() == self.account.lower():
                return int(args["tokenId"])
        return None

    def __repr__(self) -> str:
        return f"MarketplaceLedger(contract={self.address}, account={self.account})"
