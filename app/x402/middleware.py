# app/x402/middleware.py
"""
x402 payment gate for shop routes.

Prices in the shop are dynamic (a cart subtotal, a piece of content), so
instead of one app-wide middleware with a fixed table of protected paths,
each route handler computes its price and calls ``authorize()`` to get a
PaymentGate for this request. The gate is then invoked like an HTTP
middleware with the handler's continuation:

    gate = authorize(pay_to, "POST /checkout", "$0.7", "base-sepolia")
    return await gate(request, continue_checkout)

The gate:
1. Returns 402 Payment Required when no X-PAYMENT header is present
2. Verifies the X-PAYMENT header via the facilitator
3. Exposes a lazy settlement handle on ``request.state.payment``
4. Invokes the continuation
5. Settles (bounded wait) and adds X-PAYMENT-RESPONSE, X-PAYMENT-TX-HASH
   and X-PAYMENT-TX-EXPLORER headers to a successful response

Uses the official x402 Python SDK for payment handling.
"""
import json
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from fastapi import Request, Response
from starlette.responses import JSONResponse

from x402.types import PaymentRequirements, PaymentPayload, SettleResponse
from x402.facilitator import FacilitatorClient
from x402.encoding import safe_base64_decode, safe_base64_encode

from app.core.config import settings
from app.x402.audit import (
    log_error,
    log_payment_failed,
    log_payment_required_sent,
    log_payment_settled,
    log_payment_verified,
)
from app.x402.networks import resolve_asset
from app.x402.pricing import usd_to_atomic_units
from app.x402.settlement import SettlementHandle, SettlementResult

logger = logging.getLogger(__name__)

# x402 protocol constants
X402_VERSION = 1
X_PAYMENT_HEADER = "X-PAYMENT"
X_PAYMENT_RESPONSE_HEADER = "X-PAYMENT-RESPONSE"
X_PAYMENT_TX_HASH_HEADER = "X-PAYMENT-TX-HASH"
X_PAYMENT_TX_EXPLORER_HEADER = "X-PAYMENT-TX-EXPLORER"

Continuation = Callable[[Request], Awaitable[Response]]


@dataclass
class PaymentContext:
    """What the gate learned about an accepted payment, for the route handler."""
    route_key: str
    price: str
    network: str
    token: Optional[str]
    payer: Optional[str]
    requirements: PaymentRequirements
    settlement: SettlementHandle


def get_payment_context(request: Request) -> Optional[PaymentContext]:
    """The PaymentContext attached by the gate, None outside a gated call."""
    return getattr(request.state, "payment", None)


def get_facilitator_client(request: Request) -> FacilitatorClient:
    """
    FastAPI dependency returning the application's facilitator client.

    Created at startup by the lifespan hook, or on first use when the app
    runs without one (e.g. a TestClient used outside a ``with`` block).
    """
    client = getattr(request.app.state, "facilitator_client", None)
    if client is None:
        client = create_facilitator_client()
        request.app.state.facilitator_client = client
    return client


def create_facilitator_client(facilitator_url: Optional[str] = None) -> FacilitatorClient:
    url = str(facilitator_url or settings.FACILITATOR_URL).rstrip("/")
    logger.info(f"x402: Using facilitator at {url}")
    return FacilitatorClient({"url": url})


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    # Check for forwarded headers first
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP in the chain
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    # Fall back to direct connection
    if request.client:
        return request.client.host

    return "unknown"


def create_payment_requirements(
    request: Request,
    price: str,
    network: str,
    pay_to: str,
    token: Optional[str] = None,
    description: str = "Shop purchase"
) -> PaymentRequirements:
    """
    Create PaymentRequirements for an x402 402 response.

    Args:
        request: The incoming request (its URL is the paid resource)
        price: Price label such as "$0.7"
        network: Network identifier
        pay_to: Merchant address receiving the payment
        token: Optional token symbol or contract address
        description: Description of the resource/operation

    Raises:
        ValueError: If the price is invalid or the network/token is unsupported
    """
    asset = resolve_asset(network, token)
    amount = usd_to_atomic_units(price, decimals=asset.decimals)

    return PaymentRequirements(
        scheme="exact",
        network=network,
        max_amount_required=str(amount),
        resource=str(request.url),
        description=description,
        mime_type="application/json",
        pay_to=pay_to,
        max_timeout_seconds=settings.PAYMENT_MAX_TIMEOUT_SECONDS,
        asset=asset.address,
        extra=asset.eip712_domain()
    )


def create_402_response(
    payment_requirements: PaymentRequirements,
    error_message: str = "Payment required"
) -> JSONResponse:
    """
    Create an HTTP 402 Payment Required response.

    Args:
        payment_requirements: The payment requirements to include
        error_message: Error message for the response

    Returns:
        JSONResponse with 402 status and payment details
    """
    response_body = {
        "x402Version": X402_VERSION,
        "error": error_message,
        "accepts": [payment_requirements.model_dump(by_alias=True)]
    }

    return JSONResponse(
        status_code=402,
        content=response_body,
        headers={"Content-Type": "application/json"}
    )


def decode_payment_header(header_value: str) -> Optional[PaymentPayload]:
    """
    Decode the X-PAYMENT header into a PaymentPayload.

    Args:
        header_value: Base64-encoded payment payload

    Returns:
        PaymentPayload if successfully decoded, None otherwise
    """
    try:
        # safe_base64_decode returns str, not bytes
        decoded_str = safe_base64_decode(header_value)
        if decoded_str is None:
            logger.warning("Failed to decode X-PAYMENT header: invalid base64")
            return None

        payload_dict = json.loads(decoded_str)
        return PaymentPayload.model_validate(payload_dict)

    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse X-PAYMENT header JSON: {e}")
        return None
    except Exception as e:
        logger.warning(f"Failed to decode X-PAYMENT header: {e}")
        return None


def encode_payment_response(settle_response: SettleResponse) -> str:
    """
    Encode a settlement response for the X-PAYMENT-RESPONSE header.

    Returns:
        Base64-encoded JSON string
    """
    response_dict = settle_response.model_dump(by_alias=True)
    response_json = json.dumps(response_dict)
    return safe_base64_encode(response_json.encode("utf-8"))


class PaymentGate:
    """
    Payment-before-access policy for a single priced route.

    Instances are cheap and built per request by ``authorize()``. One
    verification attempt is made per request; there are no retries.
    """

    def __init__(
        self,
        pay_to: str,
        route_key: str,
        price: str,
        network: str,
        token: Optional[str] = None,
        facilitator_client: Optional[FacilitatorClient] = None,
        facilitator_url: Optional[str] = None,
        description: Optional[str] = None,
        settlement_timeout: Optional[float] = None,
    ):
        self.pay_to = pay_to
        self.route_key = route_key
        self.price = price
        self.network = network
        self.token = token
        self.description = description or f"Payment for {route_key}"
        self._facilitator_client = facilitator_client
        self._facilitator_url = facilitator_url
        self._settlement_timeout = settlement_timeout

    @property
    def facilitator_client(self) -> FacilitatorClient:
        """Lazy initialization of facilitator client."""
        if self._facilitator_client is None:
            self._facilitator_client = create_facilitator_client(self._facilitator_url)
        return self._facilitator_client

    @property
    def settlement_timeout(self) -> float:
        if self._settlement_timeout is not None:
            return self._settlement_timeout
        return settings.SETTLEMENT_TIMEOUT_SECONDS

    def _payment_required(
        self,
        requirements: PaymentRequirements,
        client_ip: str,
        error_message: str
    ) -> JSONResponse:
        log_payment_required_sent(
            client_ip=client_ip,
            price=self.price,
            network=self.network,
            asset=requirements.asset,
            resource=requirements.resource,
            reason=error_message,
        )
        return create_402_response(requirements, error_message)

    async def __call__(self, request: Request, call_next: Continuation) -> Response:
        client_ip = get_client_ip(request)
        logger.info(f"x402: {self.route_key} from {client_ip} priced {self.price} on {self.network}")

        try:
            requirements = create_payment_requirements(
                request=request,
                price=self.price,
                network=self.network,
                pay_to=self.pay_to,
                token=self.token,
                description=self.description,
            )
        except ValueError as e:
            logger.warning(f"x402: Cannot build payment requirements for {self.route_key}: {e}")
            return JSONResponse(
                status_code=400,
                content={"error": "Unsupported payment option", "detail": str(e)}
            )

        payment_header = request.headers.get(X_PAYMENT_HEADER)
        if not payment_header:
            logger.info(f"x402: No X-PAYMENT header, returning 402 for {self.price}")
            return self._payment_required(requirements, client_ip, "X-PAYMENT header is required")

        payment_payload = decode_payment_header(payment_header)
        if payment_payload is None:
            logger.warning(f"x402: Invalid X-PAYMENT header from {client_ip}")
            return self._payment_required(requirements, client_ip, "Invalid X-PAYMENT header format")

        try:
            verify_response = await self.facilitator_client.verify(payment_payload, requirements)
        except Exception as e:
            logger.error(f"x402: Facilitator verification failed: {e}")
            log_error(client_ip, "facilitator_verify", str(e), {"route": self.route_key})
            return JSONResponse(
                status_code=502,
                content={"error": "Payment verification failed", "detail": str(e)}
            )

        if not verify_response.is_valid:
            reason = verify_response.invalid_reason or "Unknown reason"
            logger.warning(f"x402: Payment verification failed: {reason}")
            log_payment_verified(client_ip, verify_response.payer, False, reason)
            log_payment_failed(client_ip, reason, "verify", verify_response.payer)
            return self._payment_required(
                requirements, client_ip, f"Payment verification failed: {reason}"
            )

        payer = verify_response.payer
        logger.info(f"x402: Payment verified for payer {payer}")
        log_payment_verified(client_ip, payer, True)

        facilitator = self.facilitator_client
        settlement = SettlementHandle(
            lambda: facilitator.settle(payment_payload, requirements),
            network=self.network,
        )
        request.state.payment = PaymentContext(
            route_key=self.route_key,
            price=self.price,
            network=self.network,
            token=self.token,
            payer=payer,
            requirements=requirements,
            settlement=settlement,
        )

        response = await call_next(request)

        # Failed responses are never settled (unless the handler already started it)
        if response.status_code >= 400:
            return response

        # A continuation that already waited has acted on that outcome
        result = settlement.observed
        if result is None:
            result = await settlement.wait(self.settlement_timeout)
        return self._apply_settlement(response, result, requirements, client_ip, payer)

    def _apply_settlement(
        self,
        response: Response,
        result: SettlementResult,
        requirements: PaymentRequirements,
        client_ip: str,
        payer: Optional[str]
    ) -> Response:
        if result.failed:
            log_payment_failed(client_ip, result.error_reason or "Unknown reason", "settle", payer)
            return self._payment_required(
                requirements, client_ip, f"Payment settlement failed: {result.error_reason}"
            )

        if not result.settled:
            # Timed out: the response goes out without settlement headers
            return response

        log_payment_settled(client_ip, payer, result.transaction, result.network or self.network)

        if result.response is not None:
            response.headers[X_PAYMENT_RESPONSE_HEADER] = encode_payment_response(result.response)
        if result.transaction:
            response.headers[X_PAYMENT_TX_HASH_HEADER] = result.transaction
            explorer_url = result.explorer_url
            if explorer_url:
                response.headers[X_PAYMENT_TX_EXPLORER_HEADER] = explorer_url
        return response


def authorize(
    pay_to: str,
    route_key: str,
    price: str,
    network: str,
    token: Optional[str] = None,
    facilitator_url: Optional[str] = None,
    facilitator_client: Optional[FacilitatorClient] = None,
    description: Optional[str] = None,
) -> PaymentGate:
    """
    Build the payment gate for one priced route.

    Args:
        pay_to: Merchant address receiving the payment
        route_key: "METHOD /path" identifying the paid resource, for logs
        price: Price label, e.g. "$0.7"
        network: Network the payment must be made on
        token: Optional token symbol or contract address
        facilitator_url: Facilitator base URL (defaults to FACILITATOR_URL)
        facilitator_client: Pre-built client, takes precedence over the URL
        description: Human-readable description placed in the 402 challenge

    Returns:
        An async callable ``(request, call_next) -> Response``
    """
    return PaymentGate(
        pay_to=pay_to,
        route_key=route_key,
        price=price,
        network=network,
        token=token,
        facilitator_client=facilitator_client,
        facilitator_url=facilitator_url,
        description=description,
    )
