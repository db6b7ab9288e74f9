"""WebSocket connection manager"""

import asyncio
from typing import Any, Dict

from fastapi import WebSocket
from starlette.websockets import WebSocketState
import structlog

from ..middleware.metrics import record_websocket_connection, record_websocket_disconnection

logger = structlog.get_logger(__name__)


class ConnectionManager:
    """Manages WebSocket connections"""
    
    def __init__(self):
        self.active_connections: Dict[str, Dict[str, Any]] = {}
    
    async def connect(self, websocket: WebSocket, connection_id: str):
        """Accept a new WebSocket connection"""
        await websocket.accept()
        
        loop = asyncio.get_running_loop()
        self.active_connections[connection_id] = {
            "websocket": websocket,
            "connected_at": loop.time(),
            "client": f"{websocket.client.host}:{websocket.client.port}" if websocket.client else None,
        }
        
        logger.info("WebSocket connection established", connection_id=connection_id)
        record_websocket_connection()
    
    async def disconnect(self, connection_id: str):
        """Forget a connection, closing the socket if it is still open"""
        connection_info = self.active_connections.pop(connection_id, None)
        if connection_info is None:
            return
        
        websocket = connection_info["websocket"]
        if (websocket.application_state == WebSocketState.CONNECTED
                and websocket.client_state == WebSocketState.CONNECTED):
            try:
                await websocket.close()
            except RuntimeError as e:
                logger.debug("WebSocket already closed", connection_id=connection_id, error=str(e))
        
        record_websocket_disconnection()
        logger.info("WebSocket connection closed", connection_id=connection_id)
    
    async def disconnect_all(self):
        for connection_id in list(self.active_connections.keys()):
            await self.disconnect(connection_id)
    
    async def send_event(self, connection_id: str, event: str, payload: Dict[str, Any]):
        """Send one outbound event as {"type", "payload"}"""
        connection_info = self.active_connections.get(connection_id)
        if connection_info is None:
            logger.debug("Dropping event for closed connection", connection_id=connection_id, event_name=event)
            return
        
        websocket = connection_info["websocket"]
        try:
            await websocket.send_json({"type": event, "payload": payload})
        except Exception as e:
            logger.error("Failed to send message",
                         connection_id=connection_id, event_name=event, error=str(e))
            await self.disconnect(connection_id)
    
    def get_connection_count(self) -> int:
        return len(self.active_connections)
