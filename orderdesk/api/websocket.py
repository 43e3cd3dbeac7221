"""
Real-time order channel.

Clients connect to /ws/orders and receive every newOrder / orderUpdated
event. They may send {"event": "joinOrder", "orderId": ...} to follow a
single order (id or tracking id) and {"event": "leaveOrder", ...} to stop.
"""

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["WebSocket"])


@router.websocket("/orders")
async def order_events(websocket: WebSocket):
    broadcaster = websocket.app.state.broadcaster
    await websocket.accept()
    broadcaster.register(websocket)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                logger.debug(f"Ignoring non-JSON message: {raw[:50]!r}")
                continue
            if not isinstance(message, dict):
                continue
            event = message.get("event")
            room = message.get("orderId")
            if room is None:
                continue
            if event == "joinOrder":
                broadcaster.join(websocket, str(room))
                await websocket.send_json({"event": "joinedOrder", "orderId": str(room)})
            elif event == "leaveOrder":
                broadcaster.leave(websocket, str(room))
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.unregister(websocket)
