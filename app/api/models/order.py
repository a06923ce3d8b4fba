# app/api/models/order.py
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class OrderStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class Order(BaseModel):
    """
    A completed checkout.

    Orders are written once, after the payment gate accepted the payment,
    and never updated afterwards.
    """
    orderId: str
    status: OrderStatus
    items: List[Any] = Field(default_factory=list, description="Cart items exactly as submitted.")
    totalUSD: float
    network: str
    token: Optional[str] = None
    txHash: Optional[str] = None
    timestamp: str = Field(..., description="ISO-8601 UTC creation time.")

    class Config:
        frozen = True
        use_enum_values = True


class PendingOrderStatus(BaseModel):
    """Placeholder returned for order ids the server has never recorded."""
    orderId: str
    status: OrderStatus = OrderStatus.PENDING
    message: str = "Order not yet tracked on server"

    class Config:
        use_enum_values = True
