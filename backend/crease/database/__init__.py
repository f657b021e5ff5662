"""
Database module initialization.
Exports database components for use throughout the application.
"""

from crease.database.base import Base, TimestampMixin, UUIDMixin
from crease.database.session import (
    close_db,
    create_engine,
    create_session_factory,
    get_engine,
    get_session_factory,
    init_models,
)

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Engine and sessions
    "create_engine",
    "create_session_factory",
    "get_engine",
    "get_session_factory",
    "init_models",
    "close_db",
]
