"""User (player account) database model."""

from decimal import Decimal

from sqlalchemy import Column, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from crease.database.base import Base, TimestampMixin, UUIDMixin


class User(Base, UUIDMixin, TimestampMixin):
    """Player account holding a wallet balance."""

    __tablename__ = "users"

    username = Column(String(100), unique=True, nullable=False, index=True)

    balance = Column(
        Numeric(15, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    # Referring agent; root of the commission chain
    agent_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("agents.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Relationships
    agent = relationship("Agent", back_populates="users")
    bets = relationship("Bet", back_populates="user", lazy="dynamic")
    transactions = relationship("Transaction", back_populates="user", lazy="dynamic")

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.balance})>"
