"""Commission database model."""

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, Uuid, UniqueConstraint, func
from sqlalchemy.orm import relationship

from crease.database.base import Base, UUIDMixin
from crease.models.enums import AgentType, enum_column_type


class Commission(Base, UUIDMixin):
    """Commission credited to one agent tier for one winning bet."""

    __tablename__ = "commissions"

    bet_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("bets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    agent_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("agents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    commission_amount = Column(Numeric(15, 2), nullable=False)
    commission_rate = Column(Numeric(5, 2), nullable=False)
    based_on_amount = Column(Numeric(15, 2), nullable=False)
    agent_level = Column(enum_column_type(AgentType), nullable=False)

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    bet = relationship("Bet", back_populates="commissions")
    agent = relationship("Agent", back_populates="commissions")

    __table_args__ = (
        UniqueConstraint("bet_id", "agent_id", name="uq_commission_bet_agent"),
    )

    def __repr__(self) -> str:
        return f"<Commission {self.commission_amount} ({self.commission_rate}%) for bet {self.bet_id}>"
