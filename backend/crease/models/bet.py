"""Bet database model."""

from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Uuid,
    func,
)
from sqlalchemy.orm import relationship

from crease.database.base import Base, UUIDMixin
from crease.models.enums import BetStatus, BetType, enum_column_type


class Bet(Base, UUIDMixin):
    """Individual wager record."""

    __tablename__ = "bets"

    # Foreign keys
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    match_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("matches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    fancy_market_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("fancy_markets.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    # Bet details
    bet_type = Column(enum_column_type(BetType), nullable=False, default=BetType.MATCH_WINNER)
    bet_on = Column(String(100), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    odds = Column(Numeric(10, 2), nullable=False)
    potential_win = Column(Numeric(15, 2), nullable=False)

    # Settlement
    status = Column(enum_column_type(BetStatus), nullable=False, default=BetStatus.PENDING)
    actual_win = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    settled_at = Column(DateTime(timezone=True), nullable=True)
    settled_by = Column(String(100), nullable=True)
    settlement_note = Column(String(500), nullable=True)

    # Bumped on every status transition
    version = Column(Integer, nullable=False, default=0)

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    user = relationship("User", back_populates="bets")
    match = relationship("Match", back_populates="bets")
    fancy_market = relationship("FancyMarket", back_populates="bets")
    commissions = relationship("Commission", back_populates="bet", lazy="dynamic")

    __table_args__ = (
        CheckConstraint("amount > 0", name="positive_amount"),
        Index("idx_bets_match_status", "match_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Bet {self.bet_on} {self.amount} @ {self.odds} ({self.status})>"
