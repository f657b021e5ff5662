"""
API routes module.
"""

from crease.api.routes.admin import router as admin_router
from crease.api.routes.websocket import router as websocket_router

__all__ = [
    "admin_router",
    "websocket_router",
]
