"""
Order Services

    - tracking: 4-digit tracking id generator
    - transitions: status workflow per order type
    - lifecycle: place orders, update status/payment
    - lookup: read paths by id, tracking id, WhatsApp number; dashboard list/stats
"""

from orderdesk.services.orders.lifecycle import OrderLifecycleService, serialize_order
from orderdesk.services.orders.lookup import OrderLookupService
from orderdesk.services.orders.tracking import TrackingIdGenerator

__all__ = [
    "OrderLifecycleService",
    "OrderLookupService",
    "TrackingIdGenerator",
    "serialize_order",
]
