"""Match (event) database model."""

from sqlalchemy import Boolean, Column, DateTime, Index, String
from sqlalchemy.orm import relationship

from crease.database.base import Base, TimestampMixin, UUIDMixin
from crease.models.enums import MatchStatus, enum_column_type

DRAW = "DRAW"
# win_type of a match whose bets are being refunded for want of a result
VOIDED = "void"


class Match(Base, UUIDMixin, TimestampMixin):
    """A cricket match that wagers are placed against."""

    __tablename__ = "matches"

    name = Column(String(300), nullable=False)
    team1 = Column(String(100), nullable=False)
    team2 = Column(String(100), nullable=False)

    # Lifecycle
    status = Column(enum_column_type(MatchStatus), nullable=False, default=MatchStatus.UPCOMING)
    start_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)

    # Result (team name, or DRAW)
    match_winner = Column(String(100), nullable=True)
    win_type = Column(String(20), nullable=True)
    win_margin = Column(String(20), nullable=True)
    toss_winner = Column(String(100), nullable=True)
    toss_decision = Column(String(20), nullable=True)
    team1_score = Column(String(100), nullable=True)
    team2_score = Column(String(100), nullable=True)

    # Settlement
    is_settled = Column(Boolean, nullable=False, default=False)
    settled_at = Column(DateTime(timezone=True), nullable=True)
    settled_by = Column(String(100), nullable=True)

    # Relationships
    bets = relationship("Bet", back_populates="match", lazy="dynamic")
    fancy_markets = relationship("FancyMarket", back_populates="match", lazy="dynamic")

    __table_args__ = (
        Index("idx_matches_status_settled", "status", "is_settled"),
        Index("idx_matches_end_time", "end_time"),
    )

    def __repr__(self) -> str:
        return f"<Match {self.name} ({self.status})>"
