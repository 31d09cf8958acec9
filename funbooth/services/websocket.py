from fastapi import WebSocket, WebSocketDisconnect
import json
import logging
from typing import List

logger = logging.getLogger(__name__)


class WebSocketManager:
    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

    async def broadcast(self, message: dict):
        payload = json.dumps(message)
        for connection in list(self.active_connections):
            try:
                await connection.send_text(payload)
            except (WebSocketDisconnect, RuntimeError, ConnectionError) as exc:
                logger.info("Dropping websocket connection: %s", exc)
                self.disconnect(connection)

    async def notify(self, level: str, message: str):
        await self.broadcast({"type": "notification", "level": level, "message": message})


websocket_manager = WebSocketManager()
