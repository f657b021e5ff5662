"""
Settlement directives and per-bet outcome decisions.

A directive is what the applier is told to do with a batch of pending bets:
pay the bets backing a named winner, compare fancy claims to a declared
value, or void everything.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import NamedTuple, Optional, Union

from crease.models import Bet, BetStatus

CENT = Decimal("0.01")


@dataclass(frozen=True)
class Winner:
    name: str


@dataclass(frozen=True)
class Threshold:
    value: Decimal


class _Void:
    def __repr__(self) -> str:
        return "VOID"


VOID = _Void()

Directive = Union[Winner, Threshold, _Void]


class Direction(str, Enum):
    ABOVE = "ABOVE"
    BELOW = "BELOW"


class Claim(NamedTuple):
    direction: Direction
    threshold: Decimal


_DIRECTIONS = {
    "YES": Direction.ABOVE,
    "ABOVE": Direction.ABOVE,
    "OVER": Direction.ABOVE,
    "NO": Direction.BELOW,
    "BELOW": Direction.BELOW,
    "UNDER": Direction.BELOW,
}

_CLAIM_RE = re.compile(
    r"^\s*(YES|NO|ABOVE|BELOW|OVER|UNDER)[\s_:-]*(\d+(?:\.\d+)?)\s*$",
    re.IGNORECASE,
)


def parse_claim(bet_on: Optional[str]) -> Optional[Claim]:
    """Parse a fancy selection ("YES_35", "below 32") into a claim."""
    match = _CLAIM_RE.match(bet_on or "")
    if not match:
        return None
    try:
        threshold = Decimal(match.group(2))
    except InvalidOperation:
        return None
    return Claim(_DIRECTIONS[match.group(1).upper()], threshold)


def claim_wins(claim: Claim, result_value: Decimal) -> bool:
    if claim.direction == Direction.ABOVE:
        return result_value >= claim.threshold
    return result_value < claim.threshold


class Decision(NamedTuple):
    status: BetStatus
    actual_win: Decimal
    note: Optional[str]


def decide(bet: Bet, directive: Directive, reason: Optional[str] = None) -> Decision:
    """Outcome for one pending bet under ``directive``."""
    if isinstance(directive, _Void):
        return Decision(BetStatus.VOID, Decimal("0.00"), reason)

    if isinstance(directive, Winner):
        if bet.bet_on == directive.name:
            return Decision(BetStatus.WON, Decimal(bet.potential_win), reason)
        return Decision(BetStatus.LOST, Decimal("0.00"), reason)

    if isinstance(directive, Threshold):
        claim = parse_claim(bet.bet_on)
        if claim is None:
            return Decision(
                BetStatus.VOID,
                Decimal("0.00"),
                f"Unrecognised fancy selection {bet.bet_on!r} - refunded",
            )
        if claim_wins(claim, Decimal(directive.value)):
            return Decision(BetStatus.WON, Decimal(bet.potential_win), reason)
        return Decision(BetStatus.LOST, Decimal("0.00"), reason)

    raise TypeError(f"Unknown settlement directive: {directive!r}")
