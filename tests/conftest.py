# tests/conftest.py
"""
Shared fixtures.

The app refuses to start without FACILITATOR_URL and ADDRESS, so they are
set here before any test module imports app.main.
"""
import json
import os

os.environ["FACILITATOR_URL"] = "https://facilitator.test"
os.environ["ADDRESS"] = "0x1234567890abcdef1234567890abcdef12345678"
os.environ["NETWORK"] = "base-sepolia"
os.environ["AUDIT_LOG_ENABLED"] = "false"

import pytest
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient
from x402.encoding import safe_base64_encode
from x402.types import SettleResponse, VerifyResponse

from app.main import app
from app.services.orders import InMemoryOrderStore, get_order_store
from app.x402.middleware import get_facilitator_client

PAYER = "0xabcdefabcdefabcdefabcdefabcdefabcdefabcd"
PAY_TO = os.environ["ADDRESS"]
TX_HASH = "0x" + "ab" * 32


def create_valid_payment_header(
    payer: str = PAYER,
    amount: str = "700000",
    network: str = "base-sepolia"
) -> str:
    """Create a well-formed base64-encoded X-PAYMENT header."""
    payload = {
        "x402Version": 1,
        "scheme": "exact",
        "network": network,
        "payload": {
            "signature": "0x" + "ab" * 65,
            "authorization": {
                "from": payer,
                "to": PAY_TO,
                "value": amount,
                "validAfter": "0",  # SDK expects strings
                "validBefore": "9999999999",
                "nonce": "0x" + "00" * 32,
            }
        }
    }
    return safe_base64_encode(json.dumps(payload).encode("utf-8"))


def make_facilitator(
    is_valid: bool = True,
    settle_success: bool = True,
    transaction: str = TX_HASH,
) -> MagicMock:
    """Facilitator double with async verify/settle, like the SDK client."""
    facilitator = MagicMock()
    facilitator.verify = AsyncMock(return_value=VerifyResponse(
        is_valid=is_valid,
        invalid_reason=None,
        payer=PAYER if is_valid else None,
    ))
    if settle_success:
        settle_response = SettleResponse(success=True, transaction=transaction, network="base-sepolia", payer=PAYER)
    else:
        settle_response = SettleResponse(success=False, error_reason="insufficient_funds", network="base-sepolia")
    facilitator.settle = AsyncMock(return_value=settle_response)
    return facilitator


@pytest.fixture
def payment_header() -> str:
    return create_valid_payment_header()


@pytest.fixture
def facilitator() -> MagicMock:
    return make_facilitator()


@pytest.fixture
def order_store() -> InMemoryOrderStore:
    return InMemoryOrderStore()


@pytest.fixture
def client(facilitator, order_store):
    """TestClient on the real app with the facilitator and order store swapped in."""
    app.dependency_overrides[get_facilitator_client] = lambda: facilitator
    app.dependency_overrides[get_order_store] = lambda: order_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
