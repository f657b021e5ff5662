from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from crease.models.match import DRAW


class ResultKind(str, Enum):
    WINNER = "winner"
    DRAW = "draw"
    TIE = "tie"
    NO_RESULT = "no_result"
    UNPARSED = "unparsed"


class ParsedResult(BaseModel):
    """Structured form of a free-text result line."""

    kind: ResultKind
    winner: str | None = None
    win_type: str | None = None
    win_margin: str | None = None

    @property
    def is_definitive(self) -> bool:
        return self.kind != ResultKind.UNPARSED

    @classmethod
    def unparsed(cls) -> ParsedResult:
        return cls(kind=ResultKind.UNPARSED)

    @classmethod
    def no_result(cls) -> ParsedResult:
        return cls(kind=ResultKind.NO_RESULT)

    @classmethod
    def draw(cls) -> ParsedResult:
        return cls(kind=ResultKind.DRAW, winner=DRAW, win_type="draw")

    @classmethod
    def tie(cls) -> ParsedResult:
        return cls(kind=ResultKind.TIE, win_type="tie")


class FeedMatch(BaseModel):
    """One match as reported by a result source, before team matching."""

    participants: list[str] = Field(default_factory=list)
    status_text: str = ""
    ended: bool = False
    score_lines: list[tuple[str, str]] = Field(default_factory=list)  # (innings label, "r/w (o)")
    toss_winner: str | None = None
    toss_decision: str | None = None


class MatchResult(ParsedResult):
    """Canonical, source-agnostic outcome for one of our matches."""

    team1_score: str | None = None
    team2_score: str | None = None
    toss_winner: str | None = None
    toss_decision: str | None = None
    result_text: str = ""
    source: str = ""
