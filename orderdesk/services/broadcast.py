"""
Order Event Broadcaster

Process-local registry of connected real-time listeners (WebSockets in
production, anything with an async ``send_json`` in tests). Delivery is
best-effort and at-most-once: a listener that connects after an event
fired never sees it and must re-fetch over REST.

One broadcaster is created per application and injected where needed;
nothing here is module-global.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Protocol

from orderdesk.core.config import BroadcastScope, get_settings

logger = logging.getLogger(__name__)

NEW_ORDER = "newOrder"
ORDER_UPDATED = "orderUpdated"


class Listener(Protocol):
    async def send_json(self, data: Any) -> None:
        ...


class OrderBroadcaster:
    """Fan-out of newOrder / orderUpdated events to connected listeners."""

    def __init__(self, scope: Optional[BroadcastScope] = None):
        self.scope = scope or get_settings().broadcast_scope
        self._listeners: set[Listener] = set()
        self._rooms: dict[str, set[Listener]] = {}
        self._closed = False

    # =========================================================================
    # REGISTRY
    # =========================================================================

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def register(self, listener: Listener) -> None:
        if self._closed:
            raise RuntimeError("broadcaster is closed")
        self._listeners.add(listener)
        logger.info(f"Listener connected ({self.listener_count} active)")

    def unregister(self, listener: Listener) -> None:
        self._listeners.discard(listener)
        for room in list(self._rooms):
            self._drop_from_room(room, listener)
        logger.info(f"Listener disconnected ({self.listener_count} active)")

    def join(self, listener: Listener, room: str) -> None:
        """Subscribe a registered listener to an order room (id or tracking id)."""
        if listener not in self._listeners:
            raise ValueError("listener is not registered")
        self._rooms.setdefault(str(room), set()).add(listener)
        logger.debug(f"Listener joined order room {room}")

    def leave(self, listener: Listener, room: str) -> None:
        self._drop_from_room(str(room), listener)

    def room_members(self, room: str) -> set[Listener]:
        return set(self._rooms.get(str(room), ()))

    def _drop_from_room(self, room: str, listener: Listener) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(listener)
        if not members:
            del self._rooms[room]

    def _in_any_room(self, listener: Listener) -> bool:
        return any(listener in members for members in self._rooms.values())

    # =========================================================================
    # DELIVERY
    # =========================================================================

    async def _send(self, targets: Iterable[Listener], message: dict[str, Any]) -> int:
        delivered = 0
        dead = []
        for listener in list(targets):
            try:
                await listener.send_json(message)
                delivered += 1
            except Exception as e:
                # Closed sockets surface as assorted transport errors
                logger.warning(f"Dropping listener after failed send: {e!r}")
                dead.append(listener)
        for listener in dead:
            self.unregister(listener)
        return delivered

    @staticmethod
    def _message(event: str, order: dict[str, Any]) -> dict[str, Any]:
        return {
            "event": event,
            "order": order,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def order_created(self, order: dict[str, Any]) -> int:
        """Send newOrder to every listener. Returns the number reached."""
        delivered = await self._send(self._listeners, self._message(NEW_ORDER, order))
        logger.info(f"{NEW_ORDER} #{order.get('trackingId')} → {delivered} listener(s)")
        return delivered

    async def order_updated(self, order: dict[str, Any]) -> int:
        """Send orderUpdated to every listener, or to the order's rooms in room scope."""
        if self.scope == BroadcastScope.ROOM:
            targets = self.room_members(order.get("id")) | self.room_members(order.get("trackingId"))
            targets |= {l for l in self._listeners if not self._in_any_room(l)}
        else:
            targets = set(self._listeners)
        delivered = await self._send(targets, self._message(ORDER_UPDATED, order))
        logger.info(f"{ORDER_UPDATED} #{order.get('trackingId')} → {delivered} listener(s)")
        return delivered

    async def close(self) -> None:
        """Forget every listener; used on application shutdown."""
        self._closed = True
        self._listeners.clear()
        self._rooms.clear()
        logger.info("Broadcaster closed")
