"""
Order Lifecycle Service

Places orders and applies status/payment updates. Every committed change
is pushed to the broadcaster and handed to the side-effect dispatcher
(WhatsApp message + ledger export via Celery).
"""

import logging
from typing import Any, Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.core.config import Settings, get_settings
from orderdesk.core.exceptions import NotFoundError, TrackingIdExhausted, ValidationError
from orderdesk.models import (
    DineIn,
    Fulfillment,
    HomeDelivery,
    Order,
    OrderStatus,
    OrderType,
    utcnow,
)
from orderdesk.schemas import OrderCreate, OrderResponse, OrderStatusUpdate
from orderdesk.services.broadcast import NEW_ORDER, ORDER_UPDATED, OrderBroadcaster
from orderdesk.services.orders.tracking import TrackingIdGenerator
from orderdesk.services.orders.transitions import check_transition, parse_status
from orderdesk.utils import digits_only

logger = logging.getLogger(__name__)

Dispatcher = Callable[[str, dict[str, Any]], None]


def serialize_order(order: Order) -> dict[str, Any]:
    """JSON-ready camelCase payload, as sent over REST and the event channel."""
    return OrderResponse.model_validate(order).model_dump(mode="json", by_alias=True)


def build_fulfillment(data: OrderCreate) -> Fulfillment:
    """
    Turn the flat request into the variant for its order type.

    Raises:
        ValidationError: a field required by the order type is missing
    """
    if data.order_type == OrderType.DINE_IN:
        if not data.table_number:
            raise ValidationError("Table number is required for dine-in orders")
        if not data.whatsapp_number:
            raise ValidationError("WhatsApp number is required")
        return DineIn(table_number=data.table_number, whatsapp_number=data.whatsapp_number)

    if not (data.customer_name and data.customer_phone and data.delivery_address):
        raise ValidationError(
            "Name, phone, and address are required for home delivery orders"
        )
    if not data.whatsapp_number:
        raise ValidationError("WhatsApp number is required")
    return HomeDelivery(
        customer_name=data.customer_name,
        customer_phone=data.customer_phone,
        delivery_address=data.delivery_address,
        whatsapp_number=data.whatsapp_number,
    )


class OrderLifecycleService:
    """Creates orders and moves them through their status workflow."""

    def __init__(
        self,
        db: AsyncSession,
        broadcaster: OrderBroadcaster,
        dispatcher: Optional[Dispatcher] = None,
        tracking: Optional[TrackingIdGenerator] = None,
        settings: Optional[Settings] = None,
    ):
        if dispatcher is None:
            from orderdesk.tasks import queue_order_side_effects
            dispatcher = queue_order_side_effects

        self.db = db
        self.broadcaster = broadcaster
        self.dispatcher = dispatcher
        self.tracking = tracking or TrackingIdGenerator()
        self.settings = settings or get_settings()

    # =========================================================================
    # PLACE
    # =========================================================================

    def _check_total(self, data: OrderCreate) -> tuple[float, bool]:
        computed = round(sum(item.line_total for item in data.items), 2)
        mismatch = abs(data.total - computed) > self.settings.total_tolerance
        if mismatch:
            if self.settings.strict_totals:
                raise ValidationError(
                    f"Total {data.total:.2f} does not match the item sum {computed:.2f}"
                )
            logger.warning(
                f"Submitted total {data.total:.2f} differs from item sum {computed:.2f}; "
                "order will be flagged"
            )
        return computed, mismatch

    async def place(self, data: OrderCreate) -> Order:
        """
        Validate, mint a tracking id, persist with status=pending/paid=false
        and notify listeners.

        Raises:
            ValidationError: missing order type, items, total or a field the
                order type requires
            TrackingIdExhausted: no free tracking id could be committed
        """
        if data.order_type is None:
            raise ValidationError("Order type is required")
        if not data.items:
            raise ValidationError("Order items are required")
        if data.total is None:
            raise ValidationError("Total amount is required")

        fulfillment = build_fulfillment(data)
        whatsapp_digits = digits_only(fulfillment.whatsapp_number)
        if not whatsapp_digits:
            raise ValidationError("WhatsApp number must contain digits")

        computed_total, mismatch = self._check_total(data)
        items = [item.model_dump(by_alias=True) for item in data.items]

        retries = self.settings.tracking_id_insert_retries
        for attempt in range(retries + 1):
            tracking_id = await self.tracking.generate(self.db)
            order = Order(
                tracking_id=tracking_id,
                order_type=fulfillment.order_type,
                whatsapp_number=fulfillment.whatsapp_number,
                whatsapp_digits=whatsapp_digits,
                items=items,
                total=data.total,
                computed_total=computed_total,
                total_mismatch=mismatch,
                status=OrderStatus.PENDING,
                paid=False,
            )
            if isinstance(fulfillment, DineIn):
                order.table_number = fulfillment.table_number
            else:
                order.customer_name = fulfillment.customer_name
                order.customer_phone = fulfillment.customer_phone
                order.delivery_address = fulfillment.delivery_address

            self.db.add(order)
            try:
                await self.db.commit()
                break
            except IntegrityError:
                # Another placement committed the same tracking id first
                await self.db.rollback()
                logger.warning(
                    f"Tracking id {tracking_id} taken concurrently "
                    f"(attempt {attempt + 1}/{retries + 1})"
                )
        else:
            raise TrackingIdExhausted("Could not allocate a tracking id, please try again")

        await self.db.refresh(order)
        logger.info(
            f"Order #{order.tracking_id} placed ({order.order_type.value}, "
            f"{len(items)} item(s), total {order.total:.2f})"
        )

        payload = serialize_order(order)
        await self.broadcaster.order_created(payload)
        self.dispatcher(NEW_ORDER, payload)
        return order

    # =========================================================================
    # UPDATE
    # =========================================================================

    async def update_status(self, order_id: int, update: OrderStatusUpdate) -> Order:
        """
        Apply a partial status/paid update.

        Raises:
            NotFoundError: unknown order id
            ValidationError: unknown status, or a transition the workflow forbids
        """
        order = await self.db.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order not found")

        changes = []
        if update.status:
            target = parse_status(update.status)
            if self.settings.enforce_status_transitions:
                check_transition(order.order_type, order.status, target)
            if target != order.status:
                changes.append(f"status {order.status.value} → {target.value}")
            order.status = target

        if update.paid is not None:
            if update.paid != order.paid:
                changes.append(f"paid={update.paid}")
            order.paid = update.paid

        order.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(order)

        logger.info(f"Order #{order.tracking_id} updated: {', '.join(changes) or 'no change'}")

        payload = serialize_order(order)
        await self.broadcaster.order_updated(payload)
        self.dispatcher(ORDER_UPDATED, payload)
        return order
