"""
Result-text parser.

Turns status lines such as "India won by 7 wickets" or "Match abandoned due
to rain" into a ParsedResult. Rules are evaluated top to bottom and the first
pattern that matches decides the result. Text that no rule understands, or a
winner that cannot be mapped onto either team, comes back as UNPARSED.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from crease.services.results.models import ParsedResult, ResultKind
from crease.services.results.teams import normalize_team_name

logger = logging.getLogger(__name__)

Extractor = Callable[[re.Match, str, str], Optional[ParsedResult]]


@dataclass(frozen=True)
class ResultRule:
    name: str
    pattern: re.Pattern
    extract: Extractor
    unless: Optional[re.Pattern] = None

    def apply(self, text: str, team1: str, team2: str) -> Optional[ParsedResult]:
        if self.unless is not None and self.unless.search(text):
            return None
        match = self.pattern.search(text)
        if not match:
            return None
        return self.extract(match, team1, team2)


def _clean_team(raw: str) -> str:
    # "Match tied (India won the super over)" captures "Match tied (India"
    return raw.rsplit("(", 1)[-1].strip(" .,:;-")


def _winner(win_type: Optional[str], margin_group: Optional[int] = None) -> Extractor:
    def extract(match: re.Match, team1: str, team2: str) -> Optional[ParsedResult]:
        winner = normalize_team_name(_clean_team(match.group(1)), team1, team2)
        if winner is None:
            logger.warning(
                f"Result names a winner outside the fixture: {match.group(1)!r} "
                f"({team1} vs {team2})"
            )
            return ParsedResult.unparsed()
        margin = match.group(margin_group) if margin_group else None
        return ParsedResult(
            kind=ResultKind.WINNER,
            winner=winner,
            win_type=win_type,
            win_margin=margin,
        )

    return extract


_I = re.IGNORECASE

RESULT_RULES: list[ResultRule] = [
    ResultRule(
        "no_result",
        re.compile(r"no result|abandoned|called off", _I),
        lambda m, t1, t2: ParsedResult.no_result(),
    ),
    ResultRule(
        "draw",
        re.compile(r"(?:match|game)\s+drawn", _I),
        lambda m, t1, t2: ParsedResult.draw(),
    ),
    ResultRule(
        "tie",
        re.compile(r"match\s+tied", _I),
        lambda m, t1, t2: ParsedResult.tie(),
        unless=re.compile(r"super\s+over", _I),
    ),
    ResultRule(
        "dls",
        re.compile(
            r"(.+?)\s+won\s+by\s+(\d+)\s+(?:runs?|wickets?|wkts?)"
            r"(?:\s*\((?:D/L|DLS|DL)(?:\s+method)?\)|,\s*(?:D/L|DLS|DL)(?:\s+method)?)",
            _I,
        ),
        _winner("DLS", 2),
    ),
    ResultRule(
        "runs",
        re.compile(r"(.+?)\s+won\s+by\s+(\d+)\s+runs?\b", _I),
        _winner("runs", 2),
    ),
    ResultRule(
        "wickets",
        re.compile(r"(.+?)\s+won\s+by\s+(\d+)\s+(?:wickets?|wkts?)\b", _I),
        _winner("wickets", 2),
    ),
    ResultRule(
        "innings",
        re.compile(r"(.+?)\s+won\s+by\s+an?\s+innings", _I),
        _winner("innings"),
    ),
    ResultRule(
        "super_over",
        re.compile(r"(.+?)\s+won\s+(?:the\s+|by\s+a\s+|in\s+(?:the\s+|a\s+)?)?super\s+over", _I),
        _winner("super_over"),
    ),
    ResultRule(
        "generic",
        re.compile(r"(.+?)\s+won\b", _I),
        _winner(None),
    ),
]


def parse_result_text(status_text: str, team1: str, team2: str) -> ParsedResult:
    """Parse a free-text result line for the fixture ``team1`` vs ``team2``."""
    text = (status_text or "").strip()
    if not text:
        return ParsedResult.unparsed()

    for rule in RESULT_RULES:
        parsed = rule.apply(text, team1, team2)
        if parsed is not None:
            logger.debug(f"Result rule '{rule.name}' matched: {text!r} -> {parsed.kind.value}")
            return parsed

    logger.warning(f"Could not parse result text: {text!r}")
    return ParsedResult.unparsed()
