"""
Shared FastAPI dependencies.

The broadcaster lives on ``app.state`` and the side-effect dispatcher is a
dependency so tests can swap either with ``app.dependency_overrides``.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.database import get_db
from orderdesk.services.broadcast import OrderBroadcaster
from orderdesk.services.orders import OrderLifecycleService, OrderLookupService
from orderdesk.services.orders.lifecycle import Dispatcher


def get_broadcaster(request: Request) -> OrderBroadcaster:
    return request.app.state.broadcaster


def get_dispatcher() -> Dispatcher:
    from orderdesk.tasks import queue_order_side_effects
    return queue_order_side_effects


def get_lifecycle_service(
    db: AsyncSession = Depends(get_db),
    broadcaster: OrderBroadcaster = Depends(get_broadcaster),
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> OrderLifecycleService:
    return OrderLifecycleService(db, broadcaster, dispatcher=dispatcher)


def get_lookup_service(db: AsyncSession = Depends(get_db)) -> OrderLookupService:
    return OrderLookupService(db)
