"""
Real-time order events over WebSocket.

Clients connect to ``/ws?token=<access token>`` and receive every order
event. They may also join named groups (``preparation``, ``expedition``,
``delivery``) to get the extra group-scoped deliveries:

    {"action": "join", "group": "preparation"}
    {"action": "leave", "group": "preparation"}

Any listener may flag an order as running late; the alert goes to everyone:

    {"action": "late_order", "order_id": 42, "data": {"minutes": 50}}
"""

import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from pizzeria.api.deps import account_from_token
from pizzeria.core.errors import AuthenticationError
from pizzeria.database import get_db
from pizzeria.services.notifications import (
    BaseBroadcaster,
    ConnectionHub,
    get_broadcaster,
    get_hub,
    order_late_event,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Real-time"])


@router.websocket("/ws")
async def order_events(
    websocket: WebSocket,
    token: str = Query(""),
    db: AsyncSession = Depends(get_db),
    hub: ConnectionHub = Depends(get_hub),
    broadcaster: BaseBroadcaster = Depends(get_broadcaster),
):
    try:
        account = await account_from_token(db, token)
    except AuthenticationError as e:
        logger.warning(f"WebSocket rejected: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return
    finally:
        await db.close()

    await websocket.accept()
    hub.connect(websocket)
    logger.info(f"Listener connected: account #{account.id} ({hub.connection_count} total)")
    await websocket.send_json({
        "event": "connected",
        "data": {"account_id": account.id, "role": account.role.value},
    })

    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                await _send_error(websocket, "Invalid JSON")
                continue

            action = message.get("action") if isinstance(message, dict) else None

            if action in ("join", "leave"):
                group = message.get("group")
                if not isinstance(group, str) or not group:
                    await _send_error(websocket, "Group required")
                elif action == "join":
                    hub.join(websocket, group)
                    await websocket.send_json({"event": "joined", "group": group})
                else:
                    hub.leave(websocket, group)
                    await websocket.send_json({"event": "left", "group": group})

            elif action == "late_order":
                order_id = message.get("order_id")
                if not isinstance(order_id, int) or isinstance(order_id, bool):
                    await _send_error(websocket, "order_id required")
                    continue
                data = message.get("data")
                data = dict(data) if isinstance(data, dict) else {}
                data["reported_by"] = account.id
                logger.info(f"Order #{order_id} reported late by account #{account.id}")
                await broadcaster.publish(order_late_event(order_id, data))

            else:
                await _send_error(websocket, "Unknown action")
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(websocket)
        logger.info(f"Listener disconnected: account #{account.id}")


async def _send_error(websocket: WebSocket, message: str) -> None:
    await websocket.send_json({"event": "error", "data": {"message": message}})
