"""
mintermint/workflows - Mint, listing and trade workflows.
"""

from .base import LedgerWorkflow, TxResult
from .mint import MintWorkflow, MintResult
from .listing import ListingWorkflow, ListingResult, ListingState
from .trade import TradeWorkflow, PurchaseResult

__all__ = [
    "LedgerWorkflow",
    "TxResult",
    "MintWorkflow",
    "MintResult",
    "ListingWorkflow",
    "ListingResult",
    "ListingState",
    "TradeWorkflow",
    "PurchaseResult",
]
