"""
mintermint/workflows/mint.py

Mints a token for a published metadata URI.

The minted token id is taken from the ERC-721 Transfer(0x0 -> minter)
event of the confirmed receipt. When the receipt carries no such event
the id is reported as unknown rather than guessed from an ownership query.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Optional

from .base import LedgerWorkflow

logger = logging.getLogger("mintermint.workflows.mint")


@dataclass
class MintResult:
    """Outcome of a confirmed mint."""
    token_uri: str
    tx_hash: str
    token_id: Optional[int] = None
    block_number: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)


class MintWorkflow(LedgerWorkflow):
    """
    Example:
        result = await MintWorkflow(sessions, catalog).mint("ipfs://Qm...")
        print(result.token_id)
    """

    async def mint(self, token_uri: str) -> MintResult:
        """
        Mint a token and wait for confirmation.

        Args:
            token_uri: Metadata URI returned by the publisher

        Returns:
            MintResult with the token id when the receipt reveals it

        Raises:
            SessionRequired, TransactionRejected, TransactionReverted,
            TransactionTimeout
        """
        ledger = self._ledger()
        if not (token_uri or "").strip():
            raise ValueError("token_uri must be a non-empty URI")

        tx_hash = await ledger.mint(token_uri)
        receipt = await ledger.confirm(tx_hash)

        token_id = ledger.minted_token_id(receipt)
        if token_id is None:
            logger.warning(f"Mint {tx_hash} confirmed but emitted no Transfer event for {ledger.account}")
        else:
            logger.info(f"Minted token {token_id} for {ledger.account} ({token_uri})")

        await self._refresh()
        return MintResult(
            token_uri=token_uri,
            tx_hash=tx_hash,
            token_id=token_id,
            block_number=receipt.get("blockNumber"),
        )
