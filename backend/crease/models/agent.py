"""Agent hierarchy database model."""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from crease.database.base import Base, TimestampMixin, UUIDMixin
from crease.models.enums import AgentType, enum_column_type


class Agent(Base, UUIDMixin, TimestampMixin):
    """Referring agent. AGENT -> MASTER -> SUPER_MASTER via parent pointers."""

    __tablename__ = "agents"

    username = Column(String(100), unique=True, nullable=False, index=True)
    agent_type = Column(enum_column_type(AgentType), nullable=False, default=AgentType.AGENT)

    parent_agent_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("agents.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Percent of the winning amount credited to this agent
    commission_rate = Column(Numeric(5, 2), nullable=False, default=Decimal("0.00"))
    total_commission = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))

    # Relationships
    parent_agent = relationship("Agent", remote_side="Agent.id")
    users = relationship("User", back_populates="agent", lazy="dynamic")
    commissions = relationship("Commission", back_populates="agent", lazy="dynamic")

    __table_args__ = (
        CheckConstraint(
            "commission_rate >= 0 AND commission_rate <= 100",
            name="valid_commission_rate",
        ),
    )

    def __repr__(self) -> str:
        return f"<Agent {self.username} {self.agent_type} ({self.commission_rate}%)>"
