"""
mintermint/workflows/listing.py

Places and cancels sale listings.

State machine per token:

    UNLISTED -> PENDING_APPROVAL -> APPROVED -> PENDING_LISTING -> LISTED
    LISTED   -> PENDING_CANCEL   -> UNLISTED

Approval and listing are two separate transactions; the listing is only
submitted once the approval is confirmed, otherwise it would revert. A
failed step falls back to the last confirmed state.
"""

import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Optional

from ..errors import MarketError
from ..units import PriceLike, positive_price_wei, wei_to_eth
from .base import LedgerWorkflow, TxResult

logger = logging.getLogger("mintermint.workflows.listing")


class ListingState(Enum):
    UNLISTED = "unlisted"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    PENDING_LISTING = "pending_listing"
    LISTED = "listed"
    PENDING_CANCEL = "pending_cancel"


@dataclass
class ListingResult:
    """Outcome of a confirmed listing."""
    token_id: int
    price_wei: int
    price_eth: str
    listing_tx: str
    approval_tx: Optional[str] = None    # None when approval already existed

    def to_dict(self) -> dict:
        return asdict(self)


class ListingWorkflow(LedgerWorkflow):
    """
    Example:
        workflow = ListingWorkflow(sessions, catalog)
        await workflow.list(7, "0.25")
        await workflow.cancel(7)
    """

    def __init__(self, sessions, catalog=None):
        super().__init__(sessions, catalog)
        self._states: Dict[int, ListingState] = {}

    def state(self, token_id: int) -> ListingState:
        return self._states.get(token_id, ListingState.UNLISTED)

    def _transition(self, token_id: int, state: ListingState) -> None:
        previous = self.state(token_id)
        self._states[token_id] = state
        logger.debug(f"Token {token_id}: {previous.value} -> {state.value}")

    def reset(self) -> None:
        self._states.clear()

    async def list(self, token_id: int, price_eth: PriceLike) -> ListingResult:
        """
        List a token for sale, approving the marketplace first if needed.

        Args:
            token_id: Token to list
            price_eth: Positive ETH amount as a decimal string

        Raises:
            SessionRequired, InvalidPrice, TransactionRejected,
            TransactionReverted, TransactionTimeout
        """
        ledger = self._ledger()
        price_wei = positive_price_wei(price_eth)
        start_state = self.state(token_id)

        approval_tx: Optional[str] = None
        approved = await ledger.get_approved(token_id)
        if approved.lower() != ledger.marketplace_address.lower():
            self._transition(token_id, ListingState.PENDING_APPROVAL)
            try:
                approval_tx = await ledger.approve(ledger.marketplace_address, token_id)
                await ledger.confirm(approval_tx)
            except MarketError:
                self._transition(token_id, start_state)
                raise
            logger.info(f"Marketplace approved for token {token_id}")
        self._transition(token_id, ListingState.APPROVED)

        self._transition(token_id, ListingState.PENDING_LISTING)
        try:
            listing_tx = await ledger.create_listing(token_id, price_wei)
            await ledger.confirm(listing_tx)
        except MarketError:
            self._transition(token_id, ListingState.APPROVED)
            raise
        self._transition(token_id, ListingState.LISTED)
        logger.info(f"Listed token {token_id} at {wei_to_eth(price_wei)} ETH")

        await self._refresh()
        return ListingResult(
            token_id=token_id,
            price_wei=price_wei,
            price_eth=wei_to_eth(price_wei),
            listing_tx=listing_tx,
            approval_tx=approval_tx,
        )

    async def cancel(self, token_id: int) -> TxResult:
        """
        Cancel a listing.

        Raises:
            SessionRequired, NotSeller, TransactionRejected,
            TransactionReverted, TransactionTimeout
        """
        ledger = self._ledger()
        previous = self._states.get(token_id, ListingState.LISTED)

        self._transition(token_id, ListingState.PENDING_CANCEL)
        try:
            tx_hash = await ledger.cancel_listing(token_id)
            receipt = await ledger.confirm(tx_hash)
        except MarketError:
            self._transition(token_id, previous)
            raise
        self._transition(token_id, ListingState.UNLISTED)
        logger.info(f"Cancelled listing for token {token_id}")

        await self._refresh()
        return TxResult(tx_hash=tx_hash, block_number=receipt.get("blockNumber"))
