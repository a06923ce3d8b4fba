# tests/test_premium_api.py
"""
Tests for the free and pay-per-call data APIs.
"""
import pytest

from app.x402.middleware import X_PAYMENT_HEADER

from conftest import create_valid_payment_header


def test_weather_is_free(client, facilitator):
    response = client.get("/weather")
    assert response.status_code == 200
    assert response.json() == {"report": {"weather": "sunny", "temperature": 70}}
    facilitator.verify.assert_not_called()


@pytest.mark.parametrize("path,amount", [
    ("/api/premium/weather", "10000"),
    ("/api/premium/market", "50000"),
    ("/api/premium/ai", "100000"),
])
def test_premium_requires_payment(client, path, amount):
    response = client.get(path)
    assert response.status_code == 402
    body = response.json()
    assert body["x402Version"] == 1
    assert body["accepts"][0]["maxAmountRequired"] == amount
    assert body["accepts"][0]["resource"].endswith(path)


def test_paid_weather(client, facilitator):
    response = client.get(
        "/api/premium/weather",
        headers={X_PAYMENT_HEADER: create_valid_payment_header(amount="10000")},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["premium"] is True
    assert body["current"]["conditions"] == "Partly Cloudy"
    facilitator.settle.assert_awaited_once()


def test_paid_ai_echoes_prompt(client):
    response = client.get(
        "/api/premium/ai",
        params={"prompt": "What is x402?"},
        headers={X_PAYMENT_HEADER: create_valid_payment_header(amount="100000")},
    )

    assert response.status_code == 200
    assert response.json()["prompt"] == "What is x402?"


def test_paid_ai_default_prompt(client):
    response = client.get(
        "/api/premium/ai",
        headers={X_PAYMENT_HEADER: create_valid_payment_header(amount="100000")},
    )
    assert response.json()["prompt"] == "Hello"
