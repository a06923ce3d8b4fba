# app/api/endpoints/shop.py
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse, Response
from pydantic import ValidationError
from x402.facilitator import FacilitatorClient

from app.api.models.order import Order, OrderStatus
from app.api.models.shop import Cart, CheckoutRequest, CheckoutResponse, ConfigResponse, PaymentInfo, ProductsResponse
from app.core.config import settings
from app.presentation.pages import render_payment_failed, wants_json
from app.services.cart import (
    InvalidItemsFormatError,
    ItemsNotAListError,
    calculate_cart,
    parse_cart_items,
)
from app.services.catalog import PRODUCTS
from app.services.orders import OrderStore, generate_order_id, get_order_store
from app.x402.audit import log_order_created
from app.x402.middleware import (
    X_PAYMENT_HEADER,
    authorize,
    create_402_response,
    get_client_ip,
    get_facilitator_client,
    get_payment_context,
)
from app.x402.pricing import format_price_label
from app.x402.settlement import SettlementStatus

logger = logging.getLogger(__name__)
router = APIRouter()


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


async def _read_checkout_body(request: Request) -> Dict[str, Any]:
    """
    Read a checkout body sent either as JSON or as an HTML form.

    Raises:
        ValueError: If a JSON body cannot be decoded or is not an object
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        return dict(form)

    raw = await request.body()
    if not raw.strip():
        return {}
    body = json.loads(raw)
    if not isinstance(body, dict):
        raise ValueError("JSON body must be an object")
    return body


@router.get("/products", response_model=ProductsResponse)
async def list_products() -> ProductsResponse:
    """Return the product catalog."""
    return ProductsResponse(products=list(PRODUCTS))


@router.get("/api/config", response_model=ConfigResponse)
async def get_config() -> ConfigResponse:
    """Merchant configuration shown in the storefront debug panel."""
    return ConfigResponse(
        merchantAddress=settings.ADDRESS,
        facilitatorUrl=str(settings.FACILITATOR_URL),
        defaultNetwork=settings.NETWORK,
    )


@router.post("/checkout")
async def checkout(
    request: Request,
    facilitator: FacilitatorClient = Depends(get_facilitator_client),
) -> Response:
    """
    Pay for a cart.

    Expects body: { items: [ { id: 'p1', qty: 2 }, ... ], network?, token? }

    A cart worth $0 is accepted without payment. Otherwise the request goes
    through the payment gate priced at the cart subtotal: without a valid
    X-PAYMENT header the gate answers 402, with one the receipt is returned.
    """
    try:
        body = await _read_checkout_body(request)
    except ValueError as e:
        logger.warning(f"Rejected checkout body: {e}")
        return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})

    try:
        checkout_request = CheckoutRequest.model_validate(body)
    except ValidationError as e:
        problems = [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()]
        logger.warning(f"Rejected checkout fields: {problems}")
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid checkout request", "detail": problems}
        )

    try:
        items = parse_cart_items(checkout_request.items)
    except InvalidItemsFormatError:
        return JSONResponse(status_code=400, content={"error": "Invalid items format"})
    except ItemsNotAListError:
        return JSONResponse(status_code=400, content={"error": "items array required"})

    network = checkout_request.network or request.query_params.get("network") or settings.NETWORK
    token = checkout_request.token or request.query_params.get("token") or None

    cart = calculate_cart(items)

    if cart.subtotal == 0:
        logger.info("Checkout of a $0.00 cart, no payment required")
        return JSONResponse(content=CheckoutResponse(
            message="No payment required for $0.00",
            subtotal=cart.subtotal,
            lineItems=cart.lineItems,
        ).model_dump(exclude_none=True))

    async def complete_checkout(request: Request) -> Response:
        payment = get_payment_context(request)
        outcome = await payment.settlement.wait(settings.SETTLEMENT_TIMEOUT_SECONDS)
        if outcome.status is SettlementStatus.FAILED:
            return create_402_response(
                payment.requirements, f"Payment settlement failed: {outcome.error_reason}"
            )

        receipt = CheckoutResponse(
            message="Purchase successful!",
            subtotal=cart.subtotal,
            lineItems=cart.lineItems,
            payment=PaymentInfo(
                status="settled" if outcome.settled else "pending",
                network=network,
                recipient=settings.ADDRESS,
                timestamp=_utc_timestamp(),
                txHash=outcome.transaction,
                explorerUrl=outcome.explorer_url,
            ),
        )
        return JSONResponse(content=receipt.model_dump(exclude={"orderId"}))

    gate = authorize(
        pay_to=settings.ADDRESS,
        route_key="POST /checkout",
        price=format_price_label(cart.subtotal),
        network=network,
        token=token,
        facilitator_client=facilitator,
        description=f"Cart checkout ({len(cart.lineItems)} items)",
    )
    return await gate(request, complete_checkout)


def _record_order(
    request: Request,
    store: OrderStore,
    items: list,
    cart: Cart,
    network: str,
    token: Optional[str],
    settled: bool,
    tx_hash: Optional[str],
) -> Order:
    status = OrderStatus.SUCCESS if settled else OrderStatus.PENDING
    order = Order(
        orderId=generate_order_id(),
        status=status,
        items=items,
        totalUSD=cart.subtotal,
        network=network,
        token=token,
        txHash=tx_hash,
        timestamp=_utc_timestamp(),
    )
    store.create(order)

    payment = get_payment_context(request)
    log_order_created(
        client_ip=get_client_ip(request),
        order_id=order.orderId,
        total_usd=order.totalUSD,
        status=order.status,
        network=network,
        transaction_hash=tx_hash,
        wallet_address=payment.payer if payment else None,
    )
    return order


@router.get("/checkout-page")
async def checkout_page(
    request: Request,
    items: Optional[str] = None,
    network: Optional[str] = None,
    token: Optional[str] = None,
    store: OrderStore = Depends(get_order_store),
    facilitator: FacilitatorClient = Depends(get_facilitator_client),
) -> Response:
    """
    Browser checkout: pay, record the order, then show it.

    On success the order is stored and the browser is redirected to
    /order/{orderId} (or, for fetch calls sending Accept: application/json,
    the order is returned as JSON). A rejected payment or a failed
    settlement renders the payment-failed page and records nothing.
    """
    if not items:
        return PlainTextResponse("Missing items", status_code=400)

    try:
        parsed_items = parse_cart_items(items)
    except InvalidItemsFormatError:
        return PlainTextResponse("Invalid items format", status_code=400)
    except ItemsNotAListError:
        return PlainTextResponse("items must be an array", status_code=400)

    selected_network = network or settings.NETWORK
    selected_token = token or None
    cart = calculate_cart(parsed_items)

    if cart.subtotal == 0:
        return PlainTextResponse("No items to purchase")

    async def complete_checkout(request: Request) -> Response:
        payment = get_payment_context(request)
        outcome = await payment.settlement.wait(settings.SETTLEMENT_TIMEOUT_SECONDS)
        if outcome.status is SettlementStatus.FAILED:
            logger.warning(f"Checkout settlement failed, no order recorded: {outcome.error_reason}")
            return render_payment_failed(request)

        tx_hash = outcome.transaction if outcome.settled else None
        order = _record_order(
            request, store, parsed_items, cart, selected_network, selected_token,
            outcome.settled, tx_hash
        )

        if wants_json(request):
            return JSONResponse(content=CheckoutResponse(
                message="Payment verified and settled" if outcome.settled else "Payment verified, settlement pending",
                subtotal=cart.subtotal,
                lineItems=cart.lineItems,
                orderId=order.orderId,
                payment=PaymentInfo(
                    status=order.status,
                    network=selected_network,
                    recipient=settings.ADDRESS,
                    timestamp=order.timestamp,
                    txHash=tx_hash,
                    explorerUrl=outcome.explorer_url,
                ),
            ).model_dump())

        return RedirectResponse(url=f"/order/{order.orderId}", status_code=302)

    gate = authorize(
        pay_to=settings.ADDRESS,
        route_key="GET /checkout-page",
        price=format_price_label(cart.subtotal),
        network=selected_network,
        token=selected_token,
        facilitator_client=facilitator,
        description=f"Cart checkout ({len(cart.lineItems)} items)",
    )
    response = await gate(request, complete_checkout)

    # A payment was offered but the gate turned it down: show the friendly page
    rejected = response.status_code == 402 and request.headers.get(X_PAYMENT_HEADER)
    if rejected and not wants_json(request) and not isinstance(response, HTMLResponse):
        return render_payment_failed(request)
    return response
