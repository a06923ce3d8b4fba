# app/api/models/shop.py
from pydantic import BaseModel, Field
from typing import Any, List, Optional


class Product(BaseModel):
    """A purchasable catalog item. Prices are in USD."""
    id: str = Field(..., description="Unique product identifier.")
    name: str = Field(..., description="Display name.")
    priceUSD: float = Field(..., description="Unit price in USD.")

    class Config:
        frozen = True


class ProductsResponse(BaseModel):
    products: List[Product]


class CheckoutRequest(BaseModel):
    """Body of POST /checkout, sent as JSON or as an HTML form."""
    items: Any = Field(None, description="Cart lines, or a JSON string holding them.")
    network: Optional[str] = Field(None, description="Network to pay on. Defaults to the configured network.")
    token: Optional[str] = Field(None, description="Token symbol or contract address.")


class LineItem(BaseModel):
    """One priced line of a cart, in input order."""
    id: Any = Field(None, description="Product id as sent by the client (may be unknown).")
    name: str = Field(..., description="Product name, or UNKNOWN for ids not in the catalog.")
    unitPriceUSD: float = Field(..., description="Unit price, 0 for unknown products.")
    qty: int = Field(..., ge=0, description="Quantity after clamping to a non-negative integer.")
    lineTotalUSD: float = Field(..., description="unitPriceUSD * qty rounded to 6 decimals.")


class Cart(BaseModel):
    subtotal: float = Field(..., description="Sum of line totals rounded to cents.")
    lineItems: List[LineItem]


class PaymentInfo(BaseModel):
    """Payment details echoed back after the gate accepted a payment."""
    status: str = Field(..., description="settled, or pending when settlement has not confirmed yet.")
    network: str
    recipient: str
    timestamp: str
    txHash: Optional[str] = None
    explorerUrl: Optional[str] = None


class CheckoutResponse(BaseModel):
    ok: bool = True
    message: str
    subtotal: float
    lineItems: List[LineItem]
    orderId: Optional[str] = None
    payment: Optional[PaymentInfo] = None


class ConfigResponse(BaseModel):
    """Public merchant configuration for the storefront debug panel."""
    merchantAddress: str
    facilitatorUrl: str
    defaultNetwork: str
