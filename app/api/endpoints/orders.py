# app/api/endpoints/orders.py
import logging
from typing import Union

from fastapi import APIRouter, Depends, Path, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, Response

from app.api.models.order import Order, PendingOrderStatus
from app.presentation.pages import render_order_receipt
from app.services.orders import OrderStore, get_order_store

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/order/{order_id}", response_class=HTMLResponse)
async def view_order(
    request: Request,
    order_id: str = Path(..., description="Order id returned by checkout"),
    store: OrderStore = Depends(get_order_store),
) -> Response:
    """Order receipt page."""
    order = store.get(order_id)
    if order is None:
        logger.info(f"Receipt requested for unknown order {order_id}")
        return PlainTextResponse("Order not found", status_code=404)
    return render_order_receipt(request, order)


@router.get("/api/order-status/{order_id}", response_model=Union[Order, PendingOrderStatus])
async def order_status(
    order_id: str = Path(..., description="Order id returned by checkout"),
    store: OrderStore = Depends(get_order_store),
) -> Union[Order, PendingOrderStatus]:
    """
    Status of an order.

    Ids the server never recorded (e.g. orders only kept client-side) are
    reported as pending rather than as an error.
    """
    return store.lookup(order_id)
