"""Database models module."""

from crease.models.agent import Agent
from crease.models.bet import Bet
from crease.models.commission import Commission
from crease.models.enums import (
    AgentType,
    BetStatus,
    BetType,
    MatchStatus,
    TransactionStatus,
    TransactionType,
)
from crease.models.fancy_market import FancyMarket
from crease.models.match import DRAW, VOIDED, Match
from crease.models.transaction import Transaction
from crease.models.user import User

__all__ = [
    "Agent",
    "Bet",
    "Commission",
    "FancyMarket",
    "Match",
    "Transaction",
    "User",
    "DRAW",
    "VOIDED",
    "AgentType",
    "BetStatus",
    "BetType",
    "MatchStatus",
    "TransactionStatus",
    "TransactionType",
]
