"""Fancy (threshold side market) database model."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from crease.database.base import Base, TimestampMixin, UUIDMixin


class FancyMarket(Base, UUIDMixin, TimestampMixin):
    """Session market on a match, e.g. "10 over runs" with no/yes lines."""

    __tablename__ = "fancy_markets"

    match_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("matches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    market_name = Column(String(200), nullable=False)
    no_value = Column(Numeric(10, 2), nullable=False)
    yes_value = Column(Numeric(10, 2), nullable=False)

    is_active = Column(Boolean, nullable=False, default=True)
    is_suspended = Column(Boolean, nullable=False, default=False)

    # Settlement
    is_settled = Column(Boolean, nullable=False, default=False)
    result = Column(String(20), nullable=True)
    settled_at = Column(DateTime(timezone=True), nullable=True)
    settled_by = Column(String(100), nullable=True)

    # Relationships
    match = relationship("Match", back_populates="fancy_markets")
    bets = relationship("Bet", back_populates="fancy_market", lazy="dynamic")

    def __repr__(self) -> str:
        return f"<FancyMarket {self.market_name} ({self.no_value}/{self.yes_value})>"
