"""
mintermint/units.py

Exact conversion between decimal ETH strings and integer wei.

Prices never pass through float: "0.1" ETH is exactly
100000000000000000 wei.
"""

from decimal import Decimal, InvalidOperation, localcontext
from typing import Union

from .config import ETH_DECIMALS, WEI_PER_ETH
from .errors import InvalidPrice

PriceLike = Union[str, int, Decimal]


def eth_to_wei(amount: PriceLike) -> int:
    """
    Convert an ETH amount to wei without rounding.

    Args:
        amount: Decimal string ("0.5"), int, or Decimal. Floats are rejected.

    Returns:
        Amount in wei

    Raises:
        InvalidPrice: If the amount is malformed, negative, or finer than 1 wei
    """
    if isinstance(amount, bool) or isinstance(amount, float):
        raise InvalidPrice(f"Price must be given as a decimal string, not {type(amount).__name__}")
    try:
        value = Decimal(str(amount).strip()) if not isinstance(amount, Decimal) else amount
    except (InvalidOperation, ValueError):
        raise InvalidPrice(f"Invalid price: {amount!r}")
    if not value.is_finite():
        raise InvalidPrice(f"Invalid price: {amount!r}")
    if value < 0:
        raise InvalidPrice(f"Price cannot be negative: {amount}")

    with localcontext() as ctx:
        # Enough precision to shift every digit without rounding
        ctx.prec = max(ctx.prec, len(value.as_tuple().digits) + ETH_DECIMALS)
        wei = value.scaleb(ETH_DECIMALS)
    if wei != wei.to_integral_value():
        raise InvalidPrice(f"Price {amount} has more than {ETH_DECIMALS} decimal places")
    return int(wei)


def wei_to_eth(wei: int) -> str:
    """
    Format wei as a decimal ETH string.

    Always keeps at least one fractional digit: 10**18 -> "1.0",
    5 * 10**17 -> "0.5".
    """
    wei = int(wei)
    sign = "-" if wei < 0 else ""
    whole, frac = divmod(abs(wei), WEI_PER_ETH)
    frac_str = f"{frac:0{ETH_DECIMALS}d}".rstrip("0") or "0"
    return f"{sign}{whole}.{frac_str}"


def positive_price_wei(amount: PriceLike) -> int:
    """Convert to wei and require a strictly positive result."""
    wei = eth_to_wei(amount)
    if wei <= 0:
        raise InvalidPrice(f"Price must be greater than zero, got {amount}")
    return wei
