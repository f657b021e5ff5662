"""Declarative base and shared column mixins."""

from uuid import uuid4

from sqlalchemy import Column, DateTime, Uuid, func
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all Crease models."""

    pass


class UUIDMixin:
    """Mixin that adds UUID primary key."""

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
        nullable=False,
        comment="Unique identifier",
    )


class TimestampMixin:
    """Mixin that adds created_at and updated_at fields to models."""

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="When the record was created",
    )

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        comment="When the record was last updated",
    )
