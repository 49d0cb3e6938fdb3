"""
DrowsyGuard WebSocket Manager
Pushes monitoring state snapshots and one-shot driver events to clients.
"""

import logging
from typing import Any, Dict, Optional, Set
from fastapi import WebSocket

logger = logging.getLogger("drowsyguard.websocket")


class ConnectionManager:
    """Manages WebSocket connections for real-time streaming"""

    def __init__(self):
        # Channel-based connections
        self.active_connections: Dict[str, Set[WebSocket]] = {
            "monitoring": set(),
        }

    async def connect(self, websocket: WebSocket, channel: str = "monitoring"):
        await websocket.accept()
        if channel not in self.active_connections:
            self.active_connections[channel] = set()
        self.active_connections[channel].add(websocket)
        logger.info(f"Client connected to channel: {channel} (total: {len(self.active_connections[channel])})")

    def disconnect(self, websocket: WebSocket, channel: str = "monitoring"):
        if channel in self.active_connections:
            self.active_connections[channel].discard(websocket)
        logger.info(f"Client disconnected from channel: {channel}")

    async def broadcast_to_channel(self, channel: str, message: dict):
        """Send message to all clients on a channel"""
        if channel not in self.active_connections:
            return

        dead = set()
        for ws in list(self.active_connections[channel]):
            try:
                await ws.send_json(message)
            except Exception:
                dead.add(ws)

        for ws in dead:
            self.active_connections[channel].discard(ws)

    async def send_event(self, name: str, data: Optional[Any] = None):
        """Broadcast a named one-shot event (DriverSleepy, FatigueAlert, ...)"""
        await self.broadcast_to_channel("monitoring", {
            "type": name,
            "data": data,
        })

    async def send_state(self, state: Dict[str, Any]):
        """Broadcast the latest monitoring snapshot"""
        await self.send_event("StateUpdated", state)

    @property
    def total_connections(self) -> int:
        return sum(len(conns) for conns in self.active_connections.values())


# Global instance
ws_manager = ConnectionManager()
