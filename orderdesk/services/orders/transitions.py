"""
Order status workflow.

Dine-in:        pending → preparing → ready → served
Home delivery:  pending → preparing → ready → out-for-delivery → delivered

Forward moves may skip steps, ``cancelled`` is reachable from any
non-terminal status and re-sending the current status is a no-op.
"""

from orderdesk.core.exceptions import ValidationError
from orderdesk.models import OrderStatus, OrderType

FLOWS: dict[OrderType, tuple[OrderStatus, ...]] = {
    OrderType.DINE_IN: (
        OrderStatus.PENDING,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.SERVED,
    ),
    OrderType.HOME_DELIVERY: (
        OrderStatus.PENDING,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.DELIVERED,
    ),
}

TERMINAL_STATUSES = frozenset(
    {OrderStatus.SERVED, OrderStatus.DELIVERED, OrderStatus.CANCELLED}
)


def parse_status(value: str) -> OrderStatus:
    """Map a raw status string onto the enum; unknown values are rejected."""
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid status: {value}")


def allowed_transitions(order_type: OrderType, current: OrderStatus) -> set[OrderStatus]:
    """Statuses an order of ``order_type`` may move to from ``current``."""
    if current in TERMINAL_STATUSES:
        return set()
    flow = FLOWS[order_type]
    if current not in flow:
        # Stored while the workflow was switched off
        return {OrderStatus.CANCELLED}
    position = flow.index(current)
    return set(flow[position + 1:]) | {OrderStatus.CANCELLED}


def check_transition(order_type: OrderType, current: OrderStatus, target: OrderStatus) -> None:
    """
    Validate a status change.

    Raises:
        ValidationError: the move is a regression, leaves a terminal status,
            or uses a status that does not belong to the order type
    """
    if target == current:
        return
    if target != OrderStatus.CANCELLED and target not in FLOWS[order_type]:
        raise ValidationError(
            f"Status '{target.value}' does not apply to {order_type.value} orders"
        )
    if current in TERMINAL_STATUSES:
        raise ValidationError(
            f"Order is already {current.value} and can no longer change status"
        )
    if target not in allowed_transitions(order_type, current):
        raise ValidationError(
            f"Cannot move {order_type.value} order from '{current.value}' to '{target.value}'"
        )
