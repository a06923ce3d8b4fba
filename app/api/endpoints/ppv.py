# app/api/endpoints/ppv.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from x402.facilitator import FacilitatorClient

from app.api.models.ppv import PPVListResponse
from app.core.config import settings
from app.presentation.pages import render_payment_failed, render_ppv_success
from app.services.catalog import PPV_CONTENT, get_ppv_content
from app.x402.audit import log_content_unlocked
from app.x402.middleware import authorize, get_client_ip, get_facilitator_client, get_payment_context
from app.x402.pricing import format_price_label

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/ppv", response_model=PPVListResponse)
async def list_ppv_content() -> PPVListResponse:
    """List the pay-per-view catalog."""
    return PPVListResponse(content=list(PPV_CONTENT))


@router.get("/ppv/{content_id}", response_class=HTMLResponse)
async def unlock_ppv_content(
    request: Request,
    content_id: str = Path(..., description="Pay-per-view content id"),
    network: Optional[str] = None,
    token: Optional[str] = None,
    facilitator: FacilitatorClient = Depends(get_facilitator_client),
) -> Response:
    """
    Pay to unlock a song or video.

    Content is shown as soon as the payment is verified. The page waits for
    settlement (bounded by SETTLEMENT_TIMEOUT_SECONDS) only to display the
    transaction; if it has not landed by then the transaction is shown as
    pending.
    """
    content = get_ppv_content(content_id)
    if content is None:
        return PlainTextResponse("Content not found", status_code=404)

    selected_network = network or settings.NETWORK

    async def render_unlocked(request: Request) -> Response:
        payment = get_payment_context(request)
        outcome = await payment.settlement.wait(settings.SETTLEMENT_TIMEOUT_SECONDS)
        if outcome.failed:
            logger.warning(f"[PPV] Settlement failed for {content_id}: {outcome.error_reason}")
            return render_payment_failed(request)

        if outcome.transaction:
            logger.info(f"[PPV] Unlocked {content_id} with tx {outcome.transaction}")
        else:
            logger.info(f"[PPV] Unlocked {content_id}, settlement still pending")

        log_content_unlocked(
            client_ip=get_client_ip(request),
            content_id=content_id,
            transaction_hash=outcome.transaction,
            wallet_address=payment.payer,
        )
        return render_ppv_success(
            request,
            content,
            tx_hash=outcome.transaction,
            explorer_url=outcome.explorer_url,
        )

    gate = authorize(
        pay_to=settings.ADDRESS,
        route_key=f"GET /ppv/{content_id}",
        price=format_price_label(content.priceUSD),
        network=selected_network,
        token=token or None,
        facilitator_client=facilitator,
        description=f"Unlock {content.name}",
    )
    return await gate(request, render_unlocked)
