# app/services/cart.py
"""
Cart subtotal calculation.

The calculator never rejects a cart line: an id missing from the catalog is
priced at zero under the name UNKNOWN, and a quantity that is not a
non-negative number becomes 0.
"""
import json
import logging
import math
from typing import Any, Iterable, List, Mapping, Optional

from app.api.models.shop import Cart, LineItem, Product
from app.services.catalog import get_product

logger = logging.getLogger(__name__)

UNKNOWN_PRODUCT_NAME = "UNKNOWN"


class CartInputError(ValueError):
    """Raised when the submitted items cannot be read as a list of cart lines."""


class InvalidItemsFormatError(CartInputError):
    """The items value is a string that is not valid JSON."""


class ItemsNotAListError(CartInputError):
    """The items value decoded to something other than a list."""


def parse_cart_items(raw: Any) -> List[Any]:
    """
    Normalize the ``items`` value of a checkout request.

    Clients send either a JSON array or, from HTML forms and query strings,
    a string holding one.

    Raises:
        InvalidItemsFormatError: If a string value is not valid JSON
        ItemsNotAListError: If the value is not (or does not decode to) a list
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidItemsFormatError(f"Invalid items format: {e}") from e

    if not isinstance(raw, list):
        raise ItemsNotAListError("items array required")

    return raw


def coerce_quantity(value: Any) -> int:
    """Clamp a client-supplied quantity to a non-negative integer."""
    try:
        qty = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(qty) or qty <= 0:
        return 0
    return int(qty)


def calculate_cart(
    items: Iterable[Any],
    catalog: Optional[Mapping[str, Product]] = None
) -> Cart:
    """
    Price a sequence of cart lines against the catalog.

    Args:
        items: Sequence of ``{"id": ..., "qty": ...}`` mappings, in display order
        catalog: Product lookup table. Uses the static catalog if not provided.

    Returns:
        Cart with one line item per input entry and the subtotal rounded to cents
    """
    subtotal = 0.0
    line_items: List[LineItem] = []

    for item in items:
        if isinstance(item, Mapping):
            product_id = item.get("id")
            qty = coerce_quantity(item.get("qty"))
        else:
            product_id = None
            qty = 0

        product = get_product(product_id, catalog)
        unit_price = product.priceUSD if product else 0.0
        line_total = unit_price * qty
        subtotal += line_total

        line_items.append(LineItem(
            id=product_id,
            name=product.name if product else UNKNOWN_PRODUCT_NAME,
            unitPriceUSD=unit_price,
            qty=qty,
            lineTotalUSD=round(line_total, 6),
        ))

    cart = Cart(subtotal=round(subtotal, 2), lineItems=line_items)
    logger.debug(f"Calculated cart: {len(line_items)} lines, subtotal ${cart.subtotal}")
    return cart
