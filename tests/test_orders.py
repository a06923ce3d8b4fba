# tests/test_orders.py
"""
Tests for the order store and the order endpoints.
"""
import pytest

from app.api.models.order import Order, OrderStatus, PendingOrderStatus
from app.services.orders import InMemoryOrderStore, OrderAlreadyExistsError, generate_order_id

from conftest import TX_HASH


def make_order(order_id: str = "order-1700000000000-deadbeef", **overrides) -> Order:
    fields = {
        "orderId": order_id,
        "status": OrderStatus.SUCCESS,
        "items": [{"id": "p1", "qty": 2}],
        "totalUSD": 0.2,
        "network": "base-sepolia",
        "token": None,
        "txHash": TX_HASH,
        "timestamp": "2025-01-01T00:00:00.000Z",
    }
    fields.update(overrides)
    return Order(**fields)


class TestOrderIds:

    def test_format(self):
        order_id = generate_order_id()
        prefix, millis, suffix = order_id.split("-")
        assert prefix == "order"
        assert millis.isdigit()
        assert len(suffix) == 8

    def test_unique(self):
        assert len({generate_order_id() for _ in range(200)}) == 200


class TestInMemoryOrderStore:

    def test_create_and_get(self):
        store = InMemoryOrderStore()
        order = make_order()
        assert store.create(order) == order.orderId
        assert store.get(order.orderId) == order
        assert len(store) == 1

    def test_get_unknown(self):
        assert InMemoryOrderStore().get("order-nope") is None

    def test_write_once(self):
        """An id can only be written once; the first record is kept."""
        store = InMemoryOrderStore()
        store.create(make_order())
        with pytest.raises(OrderAlreadyExistsError):
            store.create(make_order(totalUSD=9.99))
        assert store.get("order-1700000000000-deadbeef").totalUSD == 0.2

    def test_orders_are_immutable(self):
        order = make_order()
        with pytest.raises(Exception):
            order.status = OrderStatus.FAILED

    def test_lookup_unknown_is_pending(self):
        result = InMemoryOrderStore().lookup("order-from-browser")
        assert isinstance(result, PendingOrderStatus)
        assert result.status == "pending"
        assert result.message == "Order not yet tracked on server"


class TestOrderPage:
    """Test GET /order/{order_id}."""

    def test_unknown_order(self, client):
        response = client.get("/order/order-missing")
        assert response.status_code == 404
        assert response.text == "Order not found"

    def test_receipt(self, client, order_store):
        order_store.create(make_order())

        response = client.get("/order/order-1700000000000-deadbeef")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        page = response.text
        assert "Order Confirmed!" in page
        assert "DEADBEEF" in page
        assert "$0.20" in page
        assert "Base Sepolia" in page
        assert "USDC" in page
        assert TX_HASH in page
        assert f"https://sepolia.basescan.org/tx/{TX_HASH}" in page

    def test_pending_receipt(self, client, order_store):
        order_store.create(make_order(status=OrderStatus.PENDING, txHash=None, token="USDC"))

        page = client.get("/order/order-1700000000000-deadbeef").text

        assert "Settlement Pending" in page
        assert "basescan" not in page

    def test_receipt_is_stable(self, client, order_store):
        order_store.create(make_order())
        first = client.get("/order/order-1700000000000-deadbeef").text
        second = client.get("/order/order-1700000000000-deadbeef").text
        assert first == second


class TestOrderStatusApi:
    """Test GET /api/order-status/{order_id}."""

    def test_known_order(self, client, order_store):
        order_store.create(make_order())

        response = client.get("/api/order-status/order-1700000000000-deadbeef")

        assert response.status_code == 200
        body = response.json()
        assert body["orderId"] == "order-1700000000000-deadbeef"
        assert body["status"] == "success"
        assert body["txHash"] == TX_HASH
        assert body["items"] == [{"id": "p1", "qty": 2}]

    def test_unknown_order(self, client):
        response = client.get("/api/order-status/order-123")
        assert response.status_code == 200
        assert response.json() == {
            "orderId": "order-123",
            "status": "pending",
            "message": "Order not yet tracked on server",
        }
