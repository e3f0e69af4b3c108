"""
mintermint/wallet - Wallet providers and session management.
"""

from .providers import (
    WalletProvider,
    NodeWalletProvider,
    LocalAccountProvider,
    is_user_rejection,
)
from .session import Session, SessionManager

__all__ = [
    "WalletProvider",
    "NodeWalletProvider",
    "LocalAccountProvider",
    "is_user_rejection",
    "Session",
    "SessionManager",
]
