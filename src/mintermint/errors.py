"""
mintermint/errors.py

Typed failures surfaced by the orchestration core.

Upload and transaction failures abort the initiating workflow and reach
the caller as one of these exceptions. Metadata fetch failures during
catalog reconciliation are recorded per entry instead of raised.
"""

import re
from enum import Enum
from typing import Any, List, Optional, Tuple


class MarketError(Exception):
    """Base class for all mintermint failures."""
    pass


# ============================================================================
# WALLET / SESSION
# ============================================================================

class WalletUnavailable(MarketError):
    """No wallet provider is present."""
    pass


class UserRejected(MarketError):
    """The wallet provider declined the account request."""
    pass


class SigningContextError(MarketError):
    """Any other wallet provider fault."""
    pass


class WrongNetwork(SigningContextError):
    """The wallet is connected to a different chain than configured."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Wallet is on chain {actual}, expected chain {expected}")


class SessionRequired(MarketError):
    """A workflow needing a connected wallet ran without one."""

    def __init__(self, message: str = "Connect a wallet first"):
        super().__init__(message)


# ============================================================================
# PUBLISHING
# ============================================================================

class InvalidDraft(MarketError, ValueError):
    """The asset draft is missing required fields."""
    pass


class UploadFailed(MarketError):
    """The image upload to the storage service failed."""
    pass


class MetadataUploadFailed(MarketError):
    """The metadata upload failed after the image was stored."""

    def __init__(self, message: str, image_cid: str = ""):
        self.image_cid = image_cid
        super().__init__(message)


class MetadataFetchFailed(MarketError):
    """A token's metadata document could not be resolved."""

    def __init__(self, token_id: int, reason: str):
        self.token_id = token_id
        self.reason = reason
        super().__init__(f"Metadata for token {token_id} unavailable: {reason}")


# ============================================================================
# PRICING / LISTINGS
# ============================================================================

class InvalidPrice(MarketError, ValueError):
    """A price is not a positive, exactly representable ETH amount."""
    pass


class ListingChanged(MarketError):
    """The on-ledger listing no longer matches what the caller expects."""

    def __init__(
        self,
        token_id: int,
        expected_price_wei: int,
        actual_price_wei: int,
        expected_seller: Optional[str] = None,
        actual_seller: Optional[str] = None,
    ):
        self.token_id = token_id
        self.expected_price_wei = expected_price_wei
        self.actual_price_wei = actual_price_wei
        self.expected_seller = expected_seller
        self.actual_seller = actual_seller
        if actual_price_wei == 0:
            detail = "is no longer listed"
        elif actual_price_wei != expected_price_wei:
            detail = f"price is {actual_price_wei} wei, expected {expected_price_wei} wei"
        else:
            detail = f"seller is {actual_seller}, expected {expected_seller}"
        super().__init__(f"Listing for token {token_id} changed: {detail}")


class LedgerReadError(MarketError):
    """A read-only ledger query failed."""
    pass


# ============================================================================
# TRANSACTIONS
# ============================================================================

class RevertCode(Enum):
    """Domain codes that revert reasons are mapped to."""
    NOT_SELLER = "not_seller"
    INVALID_PRICE = "invalid_price"
    LISTING_CHANGED = "listing_changed"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    UNKNOWN = "unknown"


class TransactionError(MarketError):
    """Base class for failures of a mutating ledger call."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        self.tx_hash = tx_hash
        super().__init__(message)


class TransactionRejected(TransactionError):
    """The wallet declined to sign the transaction."""
    pass


class TransactionReverted(TransactionError):
    """The ledger rejected the call after it was signed or simulated."""

    code = RevertCode.UNKNOWN

    def __init__(self, reason: str, tx_hash: Optional[str] = None, code: Optional[RevertCode] = None):
        self.reason = reason
        if code is not None:
            self.code = code
        super().__init__(f"Transaction reverted: {reason or 'no reason given'}", tx_hash)


class NotSeller(TransactionReverted):
    code = RevertCode.NOT_SELLER


class InsufficientFunds(TransactionReverted):
    code = RevertCode.INSUFFICIENT_FUNDS


class TransactionTimeout(TransactionError):
    """Confirmation did not arrive within the configured wait policy."""

    def __init__(self, tx_hash: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Transaction {tx_hash} not confirmed after {timeout:g}s; "
            f"it may still be mined later",
            tx_hash,
        )


# ============================================================================
# REVERT REASON MAPPING
# ============================================================================

# First match wins
REVERT_PATTERNS: List[Tuple[re.Pattern, RevertCode]] = [
    (re.compile(r"not\s+(the\s+)?seller|only\s+(the\s+)?seller", re.I), RevertCode.NOT_SELLER),
    (re.compile(r"insufficient\s+(funds|balance)", re.I), RevertCode.INSUFFICIENT_FUNDS),
    (re.compile(r"not\s+(listed|for\s+sale)|no\s+listing|incorrect\s+price|price\s+mismatch|"
                r"wrong\s+price|must\s+send|cannot\s+buy\s+your\s+own", re.I), RevertCode.LISTING_CHANGED),
    (re.compile(r"price\s+must|invalid\s+price|price.*(zero|greater)", re.I), RevertCode.INVALID_PRICE),
]

_REVERT_CLASSES = {
    RevertCode.NOT_SELLER: NotSeller,
    RevertCode.INSUFFICIENT_FUNDS: InsufficientFunds,
}


def clean_revert_reason(message: Any) -> str:
    """Strip node boilerplate from a revert message."""
    text = str(message or "").strip()
    text = re.sub(r"^(\('|\")?", "", text)
    for prefix in ("execution reverted:", "execution reverted", "VM Exception while processing transaction:",
                   "reverted with reason string", "revert"):
        if text.lower().startswith(prefix.lower()):
            text = text[len(prefix):].strip()
    return text.strip(" '\"()")


def map_revert_reason(reason: str) -> RevertCode:
    """
    Map a revert reason to a domain code.

    Args:
        reason: Revert reason text as reported by the node

    Returns:
        Matching RevertCode, or RevertCode.UNKNOWN
    """
    for pattern, code in REVERT_PATTERNS:
        if pattern.search(reason or ""):
            return code
    return RevertCode.UNKNOWN


def revert_error(reason: Any, tx_hash: Optional[str] = None) -> TransactionReverted:
    """Build the most specific TransactionReverted for a revert reason."""
    text = clean_revert_reason(reason)
    code = map_revert_reason(text)
    cls = _REVERT_CLASSES.get(code, TransactionReverted)
    if cls is TransactionReverted:
        return TransactionReverted(text, tx_hash, code=code)
    return cls(text, tx_hash)


# ============================================================================
# PROVIDER ERROR INSPECTION
# ============================================================================

# EIP-1193 "User Rejected Request"
USER_REJECTED_CODE = 4001

_REJECTION_PHRASES = ("user rejected", "user denied", "rejected by user", "request rejected")


def error_code(exc: BaseException) -> Optional[int]:
    """Extract a JSON-RPC error code from a provider exception."""
    code = getattr(exc, "code", None)
    if isinstance(code, int):
        return code
    rpc_response = getattr(exc, "rpc_response", None)
    if isinstance(rpc_response, dict):
        err = rpc_response.get("error") or {}
        if isinstance(err, dict) and isinstance(err.get("code"), int):
            return err["code"]
    for arg in getattr(exc, "args", ()):
        if isinstance(arg, dict) and isinstance(arg.get("code"), int):
            return arg["code"]
    return None


def is_user_rejection(exc: BaseException) -> bool:
    """Check if a provider exception means the user declined the request."""
    if error_code(exc) == USER_REJECTED_CODE:
        return True
    message = str(exc).lower()
    return any(phrase in message for phrase in _REJECTION_PHRASES)
