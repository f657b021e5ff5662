"""Ledger transaction database model."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Index, Numeric, String, Uuid, func
from sqlalchemy.orm import relationship

from crease.database.base import Base, UUIDMixin
from crease.models.enums import TransactionStatus, TransactionType, enum_column_type

DEBIT_TYPES = frozenset({TransactionType.BET_PLACED})


class Transaction(Base, UUIDMixin):
    """Append-only ledger entry for a balance change."""

    __tablename__ = "transactions"

    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type = Column(enum_column_type(TransactionType), nullable=False)
    status = Column(
        enum_column_type(TransactionStatus),
        nullable=False,
        default=TransactionStatus.COMPLETED,
    )

    # Always a positive magnitude; direction comes from ``type``
    amount = Column(Numeric(15, 2), nullable=False)
    balance_before = Column(Numeric(15, 2), nullable=False)
    balance_after = Column(Numeric(15, 2), nullable=False)

    reference_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    reference_type = Column(String(20), nullable=True)
    processed_by = Column(String(100), nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    description = Column(String(500), nullable=True)

    # SQLite CURRENT_TIMESTAMP has whole-second resolution
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    user = relationship("User", back_populates="transactions")

    __table_args__ = (
        Index("idx_transactions_user_created", "user_id", "created_at"),
    )

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign it applies to the balance."""
        return -self.amount if self.type in DEBIT_TYPES else self.amount

    def __repr__(self) -> str:
        return f"<Transaction {self.type} {self.amount} ({self.balance_before} -> {self.balance_after})>"
