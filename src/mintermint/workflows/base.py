"""
mintermint/workflows/base.py

Shared plumbing for the mutating workflows.
"""

from dataclasses import dataclass, asdict
from typing import Optional, TYPE_CHECKING

from ..ledger.marketplace import MarketplaceLedger

if TYPE_CHECKING:
    from ..catalog import CatalogReconciler
    from ..wallet.session import SessionManager


@dataclass
class TxResult:
    """A confirmed transaction."""
    tx_hash: str
    block_number: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)


class LedgerWorkflow:
    """
    Base class for workflows that send transactions.

    Every workflow requires a connected session and refreshes the catalog
    after its last transaction is confirmed.
    """

    def __init__(
        self,
        sessions: "SessionManager",
        catalog: Optional["CatalogReconciler"] = None,
    ):
        self.sessions = sessions
        self.catalog = catalog

    def _ledger(self) -> MarketplaceLedger:
        """Ledger handle of the active session (raises SessionRequired)."""
        return self.sessions.require().ledger

    async def _refresh(self) -> None:
        if self.catalog is not None:
            await self.catalog.refresh()

    def reset(self) -> None:
        """Discard cached state (called on disconnect)."""
        pass
