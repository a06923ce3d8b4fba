"""
Server-rendered HTML pages.

Pages are Jinja2 templates kept next to this module and rendered through
Starlette's Jinja2Templates, which autoescapes every substituted value.
"""
from pathlib import Path
from typing import Optional
from urllib.parse import quote, urlparse

from fastapi import Request
from fastapi.responses import HTMLResponse
from starlette.templating import Jinja2Templates

from app.api.models.order import Order, OrderStatus
from app.api.models.ppv import PPVContent, PPVContentType
from app.x402.networks import default_token_symbol, explorer_tx_url, network_display_name

TEMPLATE_DIR = Path(__file__).parent / "templates"

PENDING_TX_LABEL = "Pending..."

SOUNDCLOUD_PLAYER_URL = "https://w.soundcloud.com/player/"
YOUTUBE_EMBED_URL = "https://www.youtube.com/embed/"


def short_tx_hash(tx_hash: str) -> str:
    """0x12345678...9abcdef0 style abbreviation used in page text."""
    if len(tx_hash) <= 21:
        return tx_hash
    return f"{tx_hash[:10]}...{tx_hash[-8:]}"


templates = Jinja2Templates(directory=str(TEMPLATE_DIR))
templates.env.filters["short_tx"] = short_tx_hash


def wants_json(request: Request) -> bool:
    """True when the client asked for JSON (fetch calls) rather than a page."""
    return "application/json" in request.headers.get("accept", "")


def render_payment_failed(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "payment_failed.html", {}, status_code=402)


def render_order_receipt(request: Request, order: Order) -> HTMLResponse:
    """Receipt page for a stored order."""
    if order.status == OrderStatus.PENDING:
        headline = "Order Received, Settlement Pending"
    else:
        headline = "Order Confirmed!"

    return templates.TemplateResponse(
        request,
        "order_receipt.html",
        {
            "order": order,
            "headline": headline,
            "short_id": order.orderId[-8:],
            "network_name": network_display_name(order.network),
            "token": order.token or default_token_symbol(order.network) or "-",
            "explorer_url": explorer_tx_url(order.network, order.txHash),
        },
    )


def _youtube_video_id(url: str) -> str:
    if "watch?v=" in url:
        return url.split("watch?v=", 1)[1].split("&")[0]
    if "youtu.be/" in url:
        return url.split("youtu.be/", 1)[1].split("?")[0]
    return urlparse(url).path.rstrip("/").split("/")[-1]


def build_embed_url(content: PPVContent) -> Optional[str]:
    """Player URL for a piece of pay-per-view content, None for unknown types."""
    if content.type == PPVContentType.SONG:
        return (
            f"{SOUNDCLOUD_PLAYER_URL}?url={quote(content.url, safe='')}"
            "&color=%235162FF&auto_play=true&hide_related=true&show_comments=false"
            "&show_user=true&show_reposts=false&show_teaser=false"
        )
    if content.type == PPVContentType.VIDEO:
        return f"{YOUTUBE_EMBED_URL}{quote(_youtube_video_id(content.url), safe='')}?autoplay=1"
    return None


def render_ppv_success(
    request: Request,
    content: PPVContent,
    tx_hash: Optional[str] = None,
    explorer_url: Optional[str] = None,
) -> HTMLResponse:
    """
    Unlock page for paid content.

    Without a transaction hash (settlement not confirmed in time) the
    transaction is shown as pending; the content is shown either way.
    """
    return templates.TemplateResponse(
        request,
        "ppv_success.html",
        {
            "content": content,
            "embed_url": build_embed_url(content),
            "tx_hash": tx_hash,
            "explorer_url": explorer_url,
            "pending_label": PENDING_TX_LABEL,
        },
    )
