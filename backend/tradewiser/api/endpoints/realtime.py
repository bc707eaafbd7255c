"""Websocket endpoint for live entity updates"""

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def websocket_updates(websocket: WebSocket):
    """
    Live updates for the logged-in user

    Authenticated by the session cookie. Clients may send "ping" (plain text or
    {"type": "ping"}) to keep the connection alive.
    """
    user_id = websocket.session.get("user_id")
    if not user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    manager = websocket.app.state.broadcast_service.manager
    await manager.connect(user_id, websocket)
    try:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_text("pong")
                continue
            try:
                payload = json.loads(message)
            except ValueError:
                logger.debug(f"Ignoring non-JSON websocket message from user {user_id}")
                continue
            if isinstance(payload, dict) and payload.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(user_id, websocket)
