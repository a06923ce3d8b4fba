# app/services/orders.py
"""
Order storage.

Orders are written once, after the payment gate accepted the payment, and
read back by the receipt page and the order-status API. The in-memory store
lives as long as the process: it starts empty, is never persisted and has
no eviction or size bound.
"""
import logging
import secrets
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Union

from fastapi import Request

from app.api.models.order import Order, PendingOrderStatus

logger = logging.getLogger(__name__)


class OrderAlreadyExistsError(ValueError):
    """Raised when an order id is written a second time."""


def generate_order_id() -> str:
    """
    Generate an order id: ``order-<epoch ms>-<8 hex chars>``.

    The random suffix keeps ids distinct for orders created in the same
    millisecond.
    """
    return f"order-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


class OrderStore(ABC):
    """Write-once mapping from order id to Order."""

    @abstractmethod
    def create(self, order: Order) -> str:
        """
        Insert a new order.

        Returns:
            The order id

        Raises:
            OrderAlreadyExistsError: If the id was already written
        """

    @abstractmethod
    def get(self, order_id: str) -> Optional[Order]:
        """Return the stored order, or None if the id is unknown."""

    def lookup(self, order_id: str) -> Union[Order, PendingOrderStatus]:
        """
        Return the stored order, or a pending placeholder for unknown ids.

        Clients may hold order references the server never recorded (e.g.
        kept in browser storage); those degrade to "pending" instead of an
        error.
        """
        order = self.get(order_id)
        if order is not None:
            return order
        return PendingOrderStatus(orderId=order_id)


class InMemoryOrderStore(OrderStore):
    """Process-lifetime dict-backed store."""

    def __init__(self):
        self._orders: Dict[str, Order] = {}

    def create(self, order: Order) -> str:
        if order.orderId in self._orders:
            raise OrderAlreadyExistsError(f"Order {order.orderId} already exists")
        self._orders[order.orderId] = order
        logger.info(f"Order {order.orderId} recorded: ${order.totalUSD} on {order.network} ({order.status})")
        return order.orderId

    def get(self, order_id: str) -> Optional[Order]:
        return self._orders.get(order_id)

    def __len__(self) -> int:
        return len(self._orders)


def get_order_store(request: Request) -> OrderStore:
    """
    FastAPI dependency returning the application's order store.

    Created empty at startup by the lifespan hook, or on first use.
    """
    store = getattr(request.app.state, "order_store", None)
    if store is None:
        store = InMemoryOrderStore()
        request.app.state.order_store = store
    return store
