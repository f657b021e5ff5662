"""
Real-time match notifications.

Settlement code only ever calls ``Broadcaster.publish``, which enqueues and
returns immediately. A separate drain task pushes queued events to websocket
subscribers, so a slow or broken socket never touches ledger writes.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class BroadcastKind(str, Enum):
    STATUS_CHANGE = "status-change"
    SETTLEMENT = "settlement"


@dataclass
class BroadcastEvent:
    match_id: UUID
    kind: BroadcastKind
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_message(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "match_id": str(self.match_id),
            "data": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }


class ConnectionManager:
    """Manages WebSocket connections and match subscriptions."""

    def __init__(self):
        self.active_connections: list[WebSocket] = []
        # match_id -> set of websockets
        self.match_subscriptions: dict[UUID, set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, match_id: Optional[UUID] = None) -> None:
        """Accept a new WebSocket connection."""
        await websocket.accept()
        self.active_connections.append(websocket)
        if match_id is not None:
            self.match_subscriptions.setdefault(match_id, set()).add(websocket)
        logger.info(f"WebSocket connected. Total: {len(self.active_connections)}")

    def disconnect(self, websocket: WebSocket) -> None:
        """Handle WebSocket disconnection."""
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

        for subscribers in self.match_subscriptions.values():
            subscribers.discard(websocket)

        logger.info(f"WebSocket disconnected. Total: {len(self.active_connections)}")

    async def broadcast_to_match(self, match_id: UUID, message: dict) -> None:
        """Broadcast message to all subscribers of a match."""
        subscribers = list(self.match_subscriptions.get(match_id, set()))
        disconnected = []

        for websocket in subscribers:
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.warning(f"Failed to send to websocket: {e}")
                disconnected.append(websocket)

        for ws in disconnected:
            self.disconnect(ws)

    def get_subscriber_count(self, match_id: UUID) -> int:
        return len(self.match_subscriptions.get(match_id, set()))


class Broadcaster:
    """Outbound event queue in front of the connection manager."""

    def __init__(self, manager: Optional[ConnectionManager] = None, maxsize: int = 1000):
        self.manager = manager or ConnectionManager()
        self.queue: asyncio.Queue[BroadcastEvent] = asyncio.Queue(maxsize=maxsize)

    def publish(self, event: BroadcastEvent) -> None:
        """Queue an event. Never raises; drops the event when the queue is full."""
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                f"Broadcast queue full, dropping {event.kind.value} for match {event.match_id}"
            )

    def status_change(self, match_id: UUID, status: str, **payload: Any) -> None:
        self.publish(
            BroadcastEvent(match_id, BroadcastKind.STATUS_CHANGE, {"status": status, **payload})
        )

    def settlement(self, match_id: UUID, **payload: Any) -> None:
        self.publish(BroadcastEvent(match_id, BroadcastKind.SETTLEMENT, payload))

    async def deliver(self, event: BroadcastEvent) -> None:
        try:
            await self.manager.broadcast_to_match(event.match_id, event.to_message())
        except Exception as e:
            logger.warning(f"Broadcast delivery failed for match {event.match_id}: {e}")

    async def drain(self) -> int:
        """Deliver everything currently queued. Returns the number delivered."""
        delivered = 0
        while not self.queue.empty():
            event = self.queue.get_nowait()
            await self.deliver(event)
            self.queue.task_done()
            delivered += 1
        return delivered

    async def run(self) -> None:
        """Drain loop for the lifetime of the process."""
        while True:
            event = await self.queue.get()
            try:
                await self.deliver(event)
            finally:
                self.queue.task_done()
