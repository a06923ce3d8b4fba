# app/api/endpoints/premium.py
"""
Simulated data APIs: one free endpoint and three paid per call.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from x402.facilitator import FacilitatorClient

from app.core.config import settings
from app.x402.middleware import authorize, get_facilitator_client

logger = logging.getLogger(__name__)
router = APIRouter()

# Per-call prices of the premium endpoints
PREMIUM_PRICES = {
    "/api/premium/weather": "$0.01",
    "/api/premium/market": "$0.05",
    "/api/premium/ai": "$0.10",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


async def _paid_api_call(
    request: Request,
    path: str,
    facilitator: FacilitatorClient,
    build_payload: Callable[[Request], Dict[str, Any]],
    network: Optional[str],
    token: Optional[str],
) -> Response:
    async def respond(request: Request) -> Response:
        return JSONResponse(content=build_payload(request))

    gate = authorize(
        pay_to=settings.ADDRESS,
        route_key=f"GET {path}",
        price=PREMIUM_PRICES[path],
        network=network or settings.NETWORK,
        token=token or None,
        facilitator_client=facilitator,
        description=f"Premium API call {path}",
    )
    return await gate(request, respond)


@router.get("/weather")
async def weather() -> Dict[str, Any]:
    """Example free resource."""
    return {"report": {"weather": "sunny", "temperature": 70}}


def _premium_weather(_request: Request) -> Dict[str, Any]:
    return {
        "premium": True,
        "location": "San Francisco, CA",
        "current": {
            "temperature": 72,
            "humidity": 65,
            "windSpeed": 12,
            "conditions": "Partly Cloudy",
            "uvIndex": 6,
        },
        "forecast": [
            {"day": "Today", "high": 75, "low": 58, "conditions": "Sunny"},
            {"day": "Tomorrow", "high": 72, "low": 55, "conditions": "Cloudy"},
            {"day": "Wednesday", "high": 68, "low": 52, "conditions": "Rain"},
        ],
        "alerts": [],
        "lastUpdated": _now(),
    }


def _premium_market(_request: Request) -> Dict[str, Any]:
    return {
        "premium": True,
        "timestamp": _now(),
        "assets": [
            {"symbol": "BTC", "price": 97500.42, "change24h": 2.3},
            {"symbol": "ETH", "price": 3420.18, "change24h": -1.2},
            {"symbol": "FIL", "price": 5.82, "change24h": 4.7},
        ],
        "marketCap": "3.2T",
        "volume24h": "142B",
    }


def _premium_ai(request: Request) -> Dict[str, Any]:
    prompt = request.query_params.get("prompt") or "Hello"
    return {
        "premium": True,
        "prompt": prompt,
        "response": (
            f'AI Response to "{prompt}": This is a simulated AI response. '
            "In a real implementation, this would call an actual AI model. "
            "The x402 protocol enables pay-per-call API monetization!"
        ),
        "model": "gpt-4-simulated",
        "tokens": 42,
        "timestamp": _now(),
    }


@router.get("/api/premium/weather")
async def premium_weather(
    request: Request,
    network: Optional[str] = None,
    token: Optional[str] = None,
    facilitator: FacilitatorClient = Depends(get_facilitator_client),
) -> Response:
    """Detailed weather data ($0.01)."""
    return await _paid_api_call(request, "/api/premium/weather", facilitator, _premium_weather, network, token)


@router.get("/api/premium/market")
async def premium_market(
    request: Request,
    network: Optional[str] = None,
    token: Optional[str] = None,
    facilitator: FacilitatorClient = Depends(get_facilitator_client),
) -> Response:
    """Market data ($0.05)."""
    return await _paid_api_call(request, "/api/premium/market", facilitator, _premium_market, network, token)


@router.get("/api/premium/ai")
async def premium_ai(
    request: Request,
    network: Optional[str] = None,
    token: Optional[str] = None,
    facilitator: FacilitatorClient = Depends(get_facilitator_client),
) -> Response:
    """Simulated AI completion ($0.10)."""
    return await _paid_api_call(request, "/api/premium/ai", facilitator, _premium_ai, network, token)
