"""
WebSocket Router
Push channel for monitoring state snapshots and driver events.
"""

import json
import logging
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from app.services.monitoring_service import get_monitoring_service
from app.services.websocket_manager import ws_manager

logger = logging.getLogger("drowsyguard.ws")

router = APIRouter(tags=["WebSocket"])


async def _send_current_state(websocket: WebSocket):
    await websocket.send_json({
        "type": "StateUpdated",
        "data": get_monitoring_service().state_dict(),
    })


@router.websocket("/ws/monitoring")
async def websocket_monitoring(websocket: WebSocket):
    """Current state on connect, then every broadcast on the monitoring channel"""
    await ws_manager.connect(websocket, "monitoring")
    try:
        await _send_current_state(websocket)
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.debug(f"Ignoring non-JSON client message: {data[:80]}")
                continue
            if isinstance(message, dict) and message.get("type") == "RequestCurrentState":
                await _send_current_state(websocket)
    except WebSocketDisconnect:
        logger.info("Monitoring client disconnected")
    finally:
        ws_manager.disconnect(websocket, "monitoring")
