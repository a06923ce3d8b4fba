# app/x402/pricing.py
"""
Price handling for x402 payment responses.

Prices travel through the shop as USD amounts and through the payment gate
as "$<amount>" labels. The facilitator works in the token's smallest unit,
so the gate converts labels to integer atomic amounts before building the
payment requirements.

Conversion uses Decimal so that amounts like $0.57 map to exactly 570000
units of a 6-decimal token.
"""
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

logger = logging.getLogger(__name__)

# USDC (and the other supported stablecoins) use 6 decimals
DEFAULT_TOKEN_DECIMALS = 6

PriceLike = Union[str, int, float, Decimal]


def format_price_label(amount: PriceLike) -> str:
    """
    Format a USD amount as a gate price label.

    Trailing zeros are dropped: 0.7 -> "$0.7", 1.25 -> "$1.25", 2.0 -> "$2".
    """
    text = f"{Decimal(str(amount)):f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"${text}"


def parse_price(price: PriceLike) -> Decimal:
    """
    Parse a price label or number into a Decimal USD amount.

    Args:
        price: "$0.01", "0.01", 0.01 or Decimal("0.01")

    Returns:
        The amount in USD

    Raises:
        ValueError: If the value is not numeric or not strictly positive
    """
    raw = price.strip().lstrip("$") if isinstance(price, str) else str(price)
    try:
        amount = Decimal(raw)
    except InvalidOperation as e:
        raise ValueError(f"Invalid price: {price!r}") from e

    if not amount.is_finite() or amount <= 0:
        raise ValueError(f"Price must be a positive amount, got {price!r}")
    return amount


def usd_to_atomic_units(price: PriceLike, decimals: int = DEFAULT_TOKEN_DECIMALS) -> int:
    """
    Convert a USD price to the token's smallest unit.

    $1.00 = 1,000,000 units for a 6-decimal token. Sub-unit remainders are
    rounded half up.
    """
    amount = parse_price(price)
    units = (amount * (Decimal(10) ** decimals)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(units)
