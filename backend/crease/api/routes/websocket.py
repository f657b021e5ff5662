"""WebSocket feed of match status and settlement events."""

import logging
from uuid import UUID

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])


@router.websocket("/ws/matches/{match_id}")
async def match_feed(websocket: WebSocket, match_id: UUID):
    """
    Subscribe to one match.

    Server sends:
    - {"type": "status-change", "match_id": "uuid", "data": {...}, "timestamp": "..."}
    - {"type": "settlement", "match_id": "uuid", "data": {...}, "timestamp": "..."}
    """
    manager = websocket.app.state.engine.broadcaster.manager
    await manager.connect(websocket, match_id)

    try:
        while True:
            # Inbound frames are only keep-alives
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)
