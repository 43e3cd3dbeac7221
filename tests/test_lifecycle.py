"""Placing orders and moving them through their workflow."""

import pytest
from sqlalchemy import func, select

from orderdesk.core.config import get_settings
from orderdesk.core.exceptions import NotFoundError, TrackingIdExhausted, ValidationError
from orderdesk.models import DineIn, HomeDelivery, Order, OrderStatus, OrderType
from orderdesk.schemas import OrderStatusUpdate
from orderdesk.services.broadcast import NEW_ORDER, ORDER_UPDATED
from orderdesk.services.orders import OrderLifecycleService, serialize_order

from tests.conftest import RecordingListener


class ScriptedGenerator:
    """Hands out a fixed sequence of ids without checking the store."""

    def __init__(self, ids):
        self.ids = list(ids)

    async def generate(self, db):
        return self.ids.pop(0)


def service_with(db, broadcaster, **overrides):
    settings = get_settings().model_copy(update=overrides)
    return OrderLifecycleService(db, broadcaster, dispatcher=lambda e, p: None, settings=settings)


# =============================================================================
# PLACE
# =============================================================================

async def test_place_dine_in(lifecycle, make_order, dispatched):
    order = await lifecycle.place(make_order())

    assert order.id is not None
    assert len(order.tracking_id) == 4 and order.tracking_id.isdigit()
    assert order.order_type == OrderType.DINE_IN
    assert order.status == OrderStatus.PENDING
    assert order.paid is False
    assert order.table_number == "T5"
    assert order.whatsapp_digits == "9998887776"
    assert order.customer_name is None
    assert order.total == 200
    assert order.computed_total == 200
    assert order.total_mismatch is False
    assert order.fulfillment == DineIn(table_number="T5", whatsapp_number="9998887776")

    assert [event for event, _ in dispatched] == [NEW_ORDER]
    assert dispatched[0][1]["trackingId"] == order.tracking_id


async def test_place_home_delivery(lifecycle, make_order):
    order = await lifecycle.place(make_order("home-delivery"))

    assert order.order_type == OrderType.HOME_DELIVERY
    assert order.table_number is None
    assert order.fulfillment == HomeDelivery(
        customer_name="Meera",
        customer_phone="9876543210",
        delivery_address="12 MG Road",
        whatsapp_number="9876543210",
    )
    assert order.items[0] == {"menuItem": 3, "name": "Veg Biryani", "price": 220.0, "qty": 1}
    assert order.computed_total == 340


async def test_place_ignores_client_status_and_paid(lifecycle, make_order):
    order = await lifecycle.place(make_order(status="served", paid=True))
    assert order.status == OrderStatus.PENDING
    assert order.paid is False


async def test_place_broadcasts_new_order(lifecycle, broadcaster, make_order):
    listener = RecordingListener()
    broadcaster.register(listener)

    order = await lifecycle.place(make_order())

    assert listener.events == [NEW_ORDER]
    assert listener.messages[0]["order"]["trackingId"] == order.tracking_id
    assert listener.messages[0]["order"]["status"] == "pending"


@pytest.mark.parametrize("overrides,message", [
    ({"orderType": None}, "Order type is required"),
    ({"items": []}, "Order items are required"),
    ({"total": None}, "Total amount is required"),
    ({"tableNumber": None}, "Table number is required for dine-in orders"),
    ({"tableNumber": "   "}, "Table number is required for dine-in orders"),
    ({"whatsappNumber": None}, "WhatsApp number is required"),
    ({"whatsappNumber": "call me"}, "WhatsApp number must contain digits"),
])
async def test_place_dine_in_validation(lifecycle, make_order, dispatched, overrides, message):
    with pytest.raises(ValidationError) as exc:
        await lifecycle.place(make_order(**overrides))

    assert exc.value.message == message
    assert exc.value.status_code == 400
    assert dispatched == []


@pytest.mark.parametrize("missing", ["customerName", "customerPhone", "deliveryAddress"])
async def test_place_home_delivery_requires_contact(lifecycle, make_order, missing):
    with pytest.raises(ValidationError, match="Name, phone, and address are required"):
        await lifecycle.place(make_order("home-delivery", **{missing: ""}))


async def test_failed_placement_stores_nothing(db, lifecycle, make_order):
    with pytest.raises(ValidationError):
        await lifecycle.place(make_order(tableNumber=None))

    count = await db.execute(select(func.count(Order.id)))
    assert count.scalar() == 0


async def test_total_mismatch_is_flagged(lifecycle, make_order):
    order = await lifecycle.place(make_order(total=150))

    assert order.total == 150
    assert order.computed_total == 200
    assert order.total_mismatch is True


async def test_total_within_tolerance_is_not_flagged(lifecycle, make_order):
    items = [{"name": "Tea", "price": 33.33, "qty": 3}]
    order = await lifecycle.place(make_order(items=items, total=99.99))
    assert order.total_mismatch is False


async def test_strict_totals_rejects_mismatch(db, broadcaster, make_order):
    service = service_with(db, broadcaster, strict_totals=True)

    with pytest.raises(ValidationError, match="does not match the item sum 200.00"):
        await service.place(make_order(total=150))


async def test_place_retries_tracking_id_taken_concurrently(db, broadcaster, make_order):
    service = service_with(db, broadcaster)
    service.tracking = ScriptedGenerator(["1234", "1234", "5678"])

    first = await service.place(make_order())
    first_tracking_id = first.tracking_id
    second = await service.place(make_order(tableNumber="T6"))

    assert first_tracking_id == "1234"
    assert second.tracking_id == "5678"
    assert second.table_number == "T6"
    count = await db.execute(select(func.count(Order.id)))
    assert count.scalar() == 2


async def test_place_gives_up_after_insert_retries(db, broadcaster, make_order):
    service = service_with(db, broadcaster, tracking_id_insert_retries=1)
    service.tracking = ScriptedGenerator(["1234", "1234", "1234"])

    await service.place(make_order())
    with pytest.raises(TrackingIdExhausted):
        await service.place(make_order())


# =============================================================================
# UPDATE
# =============================================================================

async def test_update_status(lifecycle, make_order, dispatched):
    order = await lifecycle.place(make_order())
    created_at = order.created_at

    updated = await lifecycle.update_status(order.id, OrderStatusUpdate(status="preparing"))

    assert updated.status == OrderStatus.PREPARING
    assert updated.paid is False
    assert updated.tracking_id == order.tracking_id
    assert updated.created_at == created_at
    assert updated.updated_at >= created_at
    assert [event for event, _ in dispatched] == [NEW_ORDER, ORDER_UPDATED]
    assert dispatched[-1][1]["status"] == "preparing"


@pytest.mark.parametrize("kind", ["dine-in", "home-delivery"])
async def test_update_status_leaves_other_fields_unchanged(lifecycle, make_order, kind):
    order = await lifecycle.place(make_order(kind))
    before = serialize_order(order)

    updated = await lifecycle.update_status(order.id, OrderStatusUpdate(status="ready"))
    after = serialize_order(updated)

    assert after["status"] == "ready"
    for key in ("status", "updatedAt"):
        before.pop(key)
        after.pop(key)
    assert after == before
    assert {"items", "total", "whatsappNumber", "tableNumber", "orderType"} <= set(after)


async def test_status_and_paid_are_independent(lifecycle, make_order):
    order = await lifecycle.place(make_order())

    order = await lifecycle.update_status(order.id, OrderStatusUpdate(paid=True))
    assert order.status == OrderStatus.PENDING
    assert order.paid is True

    order = await lifecycle.update_status(order.id, OrderStatusUpdate(status="ready"))
    assert order.status == OrderStatus.READY
    assert order.paid is True


async def test_paid_can_change_after_terminal_status(lifecycle, make_order):
    order = await lifecycle.place(make_order())
    await lifecycle.update_status(order.id, OrderStatusUpdate(status="served"))

    order = await lifecycle.update_status(order.id, OrderStatusUpdate(paid=True))
    assert order.status == OrderStatus.SERVED
    assert order.paid is True


async def test_empty_update_only_touches_timestamp(lifecycle, make_order, dispatched):
    order = await lifecycle.place(make_order())
    updated = await lifecycle.update_status(order.id, OrderStatusUpdate())

    assert updated.status == OrderStatus.PENDING
    assert updated.paid is False
    assert dispatched[-1][0] == ORDER_UPDATED


async def test_update_broadcasts_order_updated(lifecycle, broadcaster, make_order):
    order = await lifecycle.place(make_order())
    listener = RecordingListener()
    broadcaster.register(listener)

    await lifecycle.update_status(order.id, OrderStatusUpdate(status="ready", paid=True))

    assert listener.events == [ORDER_UPDATED]
    assert listener.messages[0]["order"]["status"] == "ready"
    assert listener.messages[0]["order"]["paid"] is True


async def test_update_unknown_order(lifecycle):
    with pytest.raises(NotFoundError, match="Order not found"):
        await lifecycle.update_status(999, OrderStatusUpdate(status="ready"))


async def test_update_rejects_unknown_status(lifecycle, make_order, dispatched):
    order = await lifecycle.place(make_order())

    with pytest.raises(ValidationError, match="Invalid status: done"):
        await lifecycle.update_status(order.id, OrderStatusUpdate(status="done"))
    assert len(dispatched) == 1


async def test_any_known_status_accepted_by_default(lifecycle, make_order):
    order = await lifecycle.place(make_order())

    order = await lifecycle.update_status(order.id, OrderStatusUpdate(status="served"))
    order = await lifecycle.update_status(order.id, OrderStatusUpdate(status="pending"))
    assert order.status == OrderStatus.PENDING

    order = await lifecycle.update_status(order.id, OrderStatusUpdate(status="delivered"))
    assert order.status == OrderStatus.DELIVERED

    with pytest.raises(ValidationError, match="Invalid status"):
        await lifecycle.update_status(order.id, OrderStatusUpdate(status="eaten"))


async def test_workflow_rejects_regression(db, broadcaster, make_order):
    service = service_with(db, broadcaster, enforce_status_transitions=True)
    order = await service.place(make_order())
    await service.update_status(order.id, OrderStatusUpdate(status="served"))

    with pytest.raises(ValidationError, match="can no longer change status"):
        await service.update_status(order.id, OrderStatusUpdate(status="preparing"))


async def test_workflow_rejects_status_of_other_order_type(db, broadcaster, make_order):
    service = service_with(db, broadcaster, enforce_status_transitions=True)
    order = await service.place(make_order())

    with pytest.raises(ValidationError, match="does not apply to dine-in"):
        await service.update_status(order.id, OrderStatusUpdate(status="delivered"))


async def test_workflow_delivery_flow(db, broadcaster, make_order):
    service = service_with(db, broadcaster, enforce_status_transitions=True)
    order = await service.place(make_order("home-delivery"))
    for status in ["preparing", "ready", "out-for-delivery", "delivered"]:
        order = await service.update_status(order.id, OrderStatusUpdate(status=status))
    assert order.status == OrderStatus.DELIVERED
