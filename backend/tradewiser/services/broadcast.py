"""
Real-time entity updates pushed to websocket clients

Delivery is best-effort: a failed send drops that socket and is logged, it never
fails the request that triggered the update.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Open websockets grouped by user id"""

    def __init__(self):
        self._connections: Dict[int, Set[WebSocket]] = defaultdict(set)

    async def connect(self, user_id: int, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections[user_id].add(websocket)
        logger.info(f"🔌 Websocket connected: user={user_id} ({self.connection_count(user_id)} open)")

    def disconnect(self, user_id: int, websocket: WebSocket) -> None:
        sockets = self._connections.get(user_id)
        if not sockets:
            return
        sockets.discard(websocket)
        if not sockets:
            del self._connections[user_id]
        logger.info(f"🔌 Websocket disconnected: user={user_id}")

    def connection_count(self, user_id: int = None) -> int:
        if user_id is not None:
            return len(self._connections.get(user_id, ()))
        return sum(len(s) for s in self._connections.values())

    async def send_to_user(self, user_id: int, message: Dict[str, Any]) -> int:
        """Send to every socket of the user, returns how many sends succeeded"""
        delivered = 0
        stale: List[WebSocket] = []
        for websocket in list(self._connections.get(user_id, ())):
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Websocket send failed for user {user_id}, dropping socket: {e}")
                stale.append(websocket)
        for websocket in stale:
            self.disconnect(user_id, websocket)
        return delivered


class BroadcastService:
    """Broadcasts entity updates to the owning user's websocket clients"""

    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    async def broadcast_entity_update(self, user_id: int, entity_type: str, entity_id: int, data: Any) -> int:
        message = {
            "type": "entity_update",
            "entityType": entity_type,
            "entityId": entity_id,
            "data": jsonable_encoder(data),
            "timestamp": datetime.utcnow().isoformat()
        }
        return await self.manager.send_to_user(user_id, message)

    async def broadcast_receipt_update(self, user_id: int, receipt_id: int, data: Any) -> int:
        return await self.broadcast_entity_update(user_id, "receipt", receipt_id, data)

    async def broadcast_loan_update(self, user_id: int, loan_id: int, data: Any) -> int:
        return await self.broadcast_entity_update(user_id, "loan", loan_id, data)

    async def broadcast_commodity_update(self, user_id: int, commodity_id: int, data: Any) -> int:
        return await self.broadcast_entity_update(user_id, "commodity", commodity_id, data)

    async def broadcast_warehouse_update(self, user_id: int, warehouse_id: int, data: Any) -> int:
        return await self.broadcast_entity_update(user_id, "warehouse", warehouse_id, data)

    async def broadcast_process_update(self, user_id: int, process_id: int, data: Any) -> int:
        message = {
            "type": "process_update",
            "processId": process_id,
            "data": jsonable_encoder(data),
            "timestamp": datetime.utcnow().isoformat()
        }
        return await self.manager.send_to_user(user_id, message)
