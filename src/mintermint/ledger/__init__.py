"""
mintermint/ledger - Marketplace contract access.
"""

from .abi import MARKETPLACE_ABI
from .marketplace import Listing, MarketplaceLedger, translate_submit_error

__all__ = [
    "MARKETPLACE_ABI",
    "Listing",
    "MarketplaceLedger",
    "translate_submit_error",
]
