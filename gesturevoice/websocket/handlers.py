"""WebSocket message handling"""

import asyncio
import json
from functools import partial
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect
import structlog

from ..config import settings
from ..errors import ERROR_MESSAGES, ErrorCode
from ..session_coordinator import SessionCoordinator
from .manager import ConnectionManager

logger = structlog.get_logger(__name__)


class WebSocketHandler:
    """Bridges a WebSocket to the session coordinator.

    Every inbound message is dispatched as its own task, so a slow
    gesture job never blocks speech or playback events from the same
    client. The coordinator's busy flags decide what gets dropped.
    """
    
    def __init__(self, coordinator: SessionCoordinator, connection_manager: ConnectionManager,
                 max_message_size: int = None):
        self.coordinator = coordinator
        self.connection_manager = connection_manager
        self.max_message_size = max_message_size or settings.ws_max_message_size
        self._dispatches: Set[asyncio.Task] = set()
    
    async def handle_connection(self, websocket: WebSocket, connection_id: str):
        """Handle a WebSocket connection lifecycle"""
        emitter = partial(self.connection_manager.send_event, connection_id)
        session = await self.coordinator.connect(connection_id, emitter)
        if session is None:
            return
        
        try:
            while True:
                data = await websocket.receive()
                
                if data["type"] == "websocket.disconnect":
                    break
                
                text = data.get("text")
                if text is None and data.get("bytes") is not None:
                    text = data["bytes"].decode("utf-8", errors="replace")
                if text is None:
                    continue
                
                message = self._parse(text, connection_id)
                if message is None:
                    await self._send_error(connection_id, ErrorCode.INVALID_MESSAGE)
                    continue
                
                self._spawn_dispatch(connection_id, message)
        
        except WebSocketDisconnect:
            logger.info("WebSocket disconnected", connection_id=connection_id)
        finally:
            await self.coordinator.disconnect(connection_id)
    
    def _parse(self, text: str, connection_id: str) -> Optional[Dict[str, Any]]:
        if len(text) > self.max_message_size:
            logger.warning("Message too large", connection_id=connection_id, size=len(text))
            return None
        try:
            message = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("Invalid JSON message", connection_id=connection_id)
            return None
        
        if not isinstance(message, dict) or not isinstance(message.get("type"), str):
            logger.warning("Message missing event type", connection_id=connection_id)
            return None
        return message
    
    def _spawn_dispatch(self, connection_id: str, message: Dict[str, Any]):
        if not self.coordinator.accepting:
            logger.debug("Shutting down, ignoring message", connection_id=connection_id)
            return
        task = asyncio.create_task(
            self.coordinator.dispatch(connection_id, message["type"], message.get("payload"))
        )
        self._dispatches.add(task)
        task.add_done_callback(self._dispatch_done)
    
    def _dispatch_done(self, task: asyncio.Task):
        self._dispatches.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Dispatch task failed", error=str(task.exception()))
    
    async def _send_error(self, connection_id: str, code: ErrorCode):
        await self.connection_manager.send_event(connection_id, "error", {
            "message": ERROR_MESSAGES[code],
            "code": code.value,
        })
    
    async def drain(self):
        """Cancel dispatches still running at shutdown"""
        tasks = list(self._dispatches)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
