"""
Services for the settlement engine.
"""

from crease.services.broadcast import Broadcaster, BroadcastEvent, BroadcastKind, ConnectionManager

__all__ = [
    "Broadcaster",
    "BroadcastEvent",
    "BroadcastKind",
    "ConnectionManager",
]
