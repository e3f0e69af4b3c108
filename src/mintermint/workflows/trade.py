"""
mintermint/workflows/trade.py

Buys a listed token.

The listing is re-read right before the payment is submitted; if it is
gone, or its price or seller differ from what the caller expects, the
purchase is aborted without sending anything.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Optional

from ..errors import ListingChanged
from ..units import PriceLike, positive_price_wei, wei_to_eth
from .base import LedgerWorkflow

logger = logging.getLogger("mintermint.workflows.trade")


@dataclass
class PurchaseResult:
    """Outcome of a confirmed purchase."""
    token_id: int
    seller: str
    price_wei: int
    price_eth: str
    tx_hash: str
    block_number: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)


class TradeWorkflow(LedgerWorkflow):
    """
    Example:
        entry = catalog.find_listing(7)
        await TradeWorkflow(sessions, catalog).buy(7, entry.price_eth, entry.seller)
    """

    async def buy(
        self,
        token_id: int,
        price_eth: PriceLike,
        expected_seller: Optional[str] = None,
    ) -> PurchaseResult:
        """
        Pay for a listed token.

        Args:
            token_id: Token to buy
            price_eth: Listing price the caller saw
            expected_seller: Seller the caller saw (optional)

        Raises:
            SessionRequired, InvalidPrice, ListingChanged, InsufficientFunds,
            TransactionRejected, TransactionReverted, TransactionTimeout
        """
        ledger = self._ledger()
        price_wei = positive_price_wei(price_eth)

        listing = await ledger.get_listing(token_id)
        seller_differs = (
            expected_seller is not None
            and listing.seller.lower() != expected_seller.lower()
        )
        if not listing.is_active or listing.price_wei != price_wei or seller_differs:
            error = ListingChanged(
                token_id,
                expected_price_wei=price_wei,
                actual_price_wei=listing.price_wei,
                expected_seller=expected_seller,
                actual_seller=listing.seller,
            )
            logger.warning(str(error))
            raise error

        tx_hash = await ledger.buy(token_id, price_wei)
        receipt = await ledger.confirm(tx_hash)
        logger.info(f"Bought token {token_id} from {listing.seller} for {wei_to_eth(price_wei)} ETH")

        await self._refresh()
        return PurchaseResult(
            token_id=token_id,
            seller=listing.seller,
            price_wei=price_wei,
            price_eth=wei_to_eth(price_wei),
            tx_hash=tx_hash,
            block_number=receipt.get("blockNumber"),
        )
