"""
Order endpoints.

    POST /api/orders                      place an order (public)
    GET  /api/orders                      all orders newest first (admin)
    GET  /api/orders/stats                dashboard aggregates (admin)
    GET  /api/orders/track/{trackingId}   customer tracking (public)
    GET  /api/orders/whatsapp/{number}    latest order for a number (public)
    GET  /api/orders/{id}                 order by internal id
    PUT  /api/orders/{id}/status          status / paid update (admin)
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from orderdesk.api.deps import get_lifecycle_service, get_lookup_service
from orderdesk.core.exceptions import NotFoundError
from orderdesk.core.security import require_admin
from orderdesk.models import OrderStatus, OrderType, User
from orderdesk.schemas import (
    ErrorResponse,
    OrderCreate,
    OrderEnvelope,
    OrderResponse,
    OrderStats,
    OrderStatusUpdate,
)
from orderdesk.services.orders import OrderLifecycleService, OrderLookupService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])


def parse_order_id(order_id: str) -> int:
    """Ids that are not integers cannot name an order."""
    if not (order_id.isascii() and order_id.isdigit()):
        raise NotFoundError("Order not found")
    return int(order_id)


@router.post(
    "",
    response_model=OrderEnvelope,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Place Order",
)
async def place_order(
    order_data: OrderCreate,
    service: OrderLifecycleService = Depends(get_lifecycle_service),
) -> OrderEnvelope:
    """
    Place a dine-in or home-delivery order.

    Dine-in needs `tableNumber`; home delivery needs `customerName`,
    `customerPhone` and `deliveryAddress`. Both need `whatsappNumber`,
    at least one item and `total`.
    """
    order = await service.place(order_data)
    return OrderEnvelope(
        msg="Order placed successfully",
        order=OrderResponse.model_validate(order),
    )


@router.get(
    "",
    response_model=List[OrderResponse],
    summary="List Orders",
)
async def list_orders(
    status: Optional[OrderStatus] = Query(None),
    order_type: Optional[OrderType] = Query(None, alias="orderType"),
    search: Optional[str] = Query(None, max_length=100),
    lookup: OrderLookupService = Depends(get_lookup_service),
    _: User = Depends(require_admin),
) -> List[OrderResponse]:
    """Every order, newest first. Filters are optional."""
    orders = await lookup.list_all(status=status, order_type=order_type, search=search)
    return [OrderResponse.model_validate(order) for order in orders]


@router.get(
    "/stats",
    response_model=OrderStats,
    summary="Dashboard Statistics",
)
async def order_stats(
    lookup: OrderLookupService = Depends(get_lookup_service),
    _: User = Depends(require_admin),
) -> OrderStats:
    return await lookup.stats()


@router.get(
    "/track/{tracking_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Track Order",
)
async def track_order(
    tracking_id: str,
    lookup: OrderLookupService = Depends(get_lookup_service),
) -> OrderResponse:
    """Customer lookup; the tracking id itself is the credential."""
    order = await lookup.get_by_tracking_id(tracking_id)
    return OrderResponse.model_validate(order)


@router.get(
    "/whatsapp/{number}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Latest Order for a WhatsApp Number",
)
async def track_by_whatsapp(
    number: str,
    lookup: OrderLookupService = Depends(get_lookup_service),
) -> OrderResponse:
    order = await lookup.get_by_whatsapp_number(number)
    return OrderResponse.model_validate(order)


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_order(
    order_id: str,
    lookup: OrderLookupService = Depends(get_lookup_service),
) -> OrderResponse:
    """Get a specific order by ID."""
    order = await lookup.get_by_id(parse_order_id(order_id))
    return OrderResponse.model_validate(order)


@router.put(
    "/{order_id}/status",
    response_model=OrderEnvelope,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Update Status / Payment",
)
async def update_order_status(
    order_id: str,
    update: OrderStatusUpdate,
    service: OrderLifecycleService = Depends(get_lifecycle_service),
    admin: User = Depends(require_admin),
) -> OrderEnvelope:
    logger.debug(f"{admin.email} updating order {order_id}: {update.model_dump(exclude_none=True)}")
    order = await service.update_status(parse_order_id(order_id), update)
    return OrderEnvelope(msg="Order updated", order=OrderResponse.model_validate(order))
