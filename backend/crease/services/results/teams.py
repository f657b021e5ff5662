"""
Fuzzy team-name matching.

Feeds spell the same side many ways ("IND", "India", "India Cricket").
Two names match when they are equal after normalization, when one appears
as a whole-word run inside the other, or when both belong to the same alias
group. Two names that are both known aliases match only through their
groups, so a women's side never matches the men's. Matching is symmetric.
"""

import re

TEAM_ALIASES: dict[str, list[str]] = {
    "India": ["IND", "Ind"],
    "Australia": ["AUS", "Aus"],
    "England": ["ENG", "Eng"],
    "Pakistan": ["PAK", "Pak"],
    "South Africa": ["SA", "RSA", "S Africa", "Proteas"],
    "New Zealand": ["NZ", "N Zealand", "Black Caps"],
    "Sri Lanka": ["SL", "S Lanka"],
    "Bangladesh": ["BAN", "BD"],
    "West Indies": ["WI", "W Indies", "Windies"],
    "Afghanistan": ["AFG"],
    "Zimbabwe": ["ZIM"],
    "Ireland": ["IRE"],
    "Netherlands": ["NED", "Holland"],
    "Scotland": ["SCO"],
    "Nepal": ["NEP"],
    "Canada": ["CAN"],
    "USA": ["United States", "United States of America"],
    "Italy": ["ITA"],
    "Australia W": ["AUS W", "Australia Women", "AUS-W"],
    "India W": ["IND W", "India Women", "IND-W"],
}

_NON_WORD = re.compile(r"[^a-z0-9]+")


def normalize(name: str) -> str:
    """Lowercase and collapse punctuation/whitespace to single spaces."""
    return _NON_WORD.sub(" ", (name or "").lower()).strip()


def _build_alias_index() -> dict[str, frozenset[str]]:
    index: dict[str, set[str]] = {}
    for canonical, aliases in TEAM_ALIASES.items():
        for alias in [canonical, *aliases]:
            index.setdefault(normalize(alias), set()).add(canonical)
    return {alias: frozenset(groups) for alias, groups in index.items()}


_ALIAS_INDEX = _build_alias_index()


def _contains_words(haystack: str, needle: str) -> bool:
    return f" {needle} " in f" {haystack} "


def alias_groups(name: str) -> frozenset[str]:
    """Canonical sides a name refers to; exact alias hits win over containment."""
    norm = normalize(name)
    if not norm:
        return frozenset()

    exact = _ALIAS_INDEX.get(norm)
    if exact:
        return exact

    groups: set[str] = set()
    for alias, canonicals in _ALIAS_INDEX.items():
        # Two-letter codes ("sa", "wi") are too ambiguous inside longer names
        if len(alias) > 2 and _contains_words(norm, alias):
            groups.update(canonicals)
    return frozenset(groups)


def match_team_name(api_name: str, db_name: str) -> bool:
    """True when two spellings refer to the same side."""
    a = normalize(api_name)
    b = normalize(db_name)
    if not a or not b:
        return False

    if a == b:
        return True

    # Two known sides ("India" and "India W") never match through containment
    exact_a, exact_b = _ALIAS_INDEX.get(a), _ALIAS_INDEX.get(b)
    if exact_a and exact_b:
        return bool(exact_a & exact_b)

    if _contains_words(a, b) or _contains_words(b, a):
        return True

    return bool(alias_groups(a) & alias_groups(b))


def normalize_team_name(api_name: str, team1: str, team2: str) -> str | None:
    """Map a feed spelling onto one of our two team names, or None."""
    if match_team_name(api_name, team1):
        return team1
    if match_team_name(api_name, team2):
        return team2
    return None
