from .models import FeedMatch, MatchResult, ParsedResult, ResultKind
from .parser import RESULT_RULES, parse_result_text
from .resolver import ResultResolver
from .sources import BaseResultSource, CricApiSource, CricbuzzSource, OddsFeedSource
from .teams import match_team_name, normalize_team_name

__all__ = [
    "ResultResolver",
    "BaseResultSource",
    "CricApiSource",
    "CricbuzzSource",
    "OddsFeedSource",
    "FeedMatch",
    "MatchResult",
    "ParsedResult",
    "ResultKind",
    "RESULT_RULES",
    "parse_result_text",
    "match_team_name",
    "normalize_team_name",
]
