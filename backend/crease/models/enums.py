"""Status and type enumerations shared by the models."""

from enum import Enum

from sqlalchemy import Enum as SAEnum


class MatchStatus(str, Enum):
    UPCOMING = "UPCOMING"
    LIVE = "LIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class BetStatus(str, Enum):
    PENDING = "PENDING"
    WON = "WON"
    LOST = "LOST"
    VOID = "VOID"
    CANCELLED = "CANCELLED"


class BetType(str, Enum):
    MATCH_WINNER = "MATCH_WINNER"
    FANCY = "FANCY"


class TransactionType(str, Enum):
    BET_PLACED = "BET_PLACED"
    BET_WON = "BET_WON"
    BET_REFUND = "BET_REFUND"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class AgentType(str, Enum):
    AGENT = "AGENT"
    MASTER = "MASTER"
    SUPER_MASTER = "SUPER_MASTER"


def enum_column_type(enum_cls: type[Enum]) -> SAEnum:
    """VARCHAR-backed enum column storing member values."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )
