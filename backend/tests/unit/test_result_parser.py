"""Result-text parsing and team-name matching."""

import pytest

from crease.services.results import ResultKind, match_team_name, normalize_team_name, parse_result_text


@pytest.mark.parametrize(
    "text, winner, win_type, margin",
    [
        ("India won by 7 wickets", "India", "wickets", "7"),
        ("India won by 7 wkts", "India", "wickets", "7"),
        ("Pakistan won by 23 runs", "Pakistan", "runs", "23"),
        ("Pakistan won by 12 runs (DLS method)", "Pakistan", "DLS", "12"),
        ("India won by 4 wickets (D/L)", "India", "DLS", "4"),
        ("Pakistan won by 20 runs, DLS method", "Pakistan", "DLS", "20"),
        ("India won by an innings and 45 runs", "India", "innings", None),
        ("Match tied (India won the super over)", "India", "super_over", None),
        ("India won by a super over", "India", "super_over", None),
        ("IND won by 5 runs", "India", "runs", "5"),
        ("India won", "India", None, None),
    ],
)
def test_winner_rules(text, winner, win_type, margin) -> None:
    parsed = parse_result_text(text, "India", "Pakistan")

    assert parsed.kind == ResultKind.WINNER
    assert parsed.winner == winner
    assert parsed.win_type == win_type
    assert parsed.win_margin == margin


@pytest.mark.parametrize(
    "text, kind",
    [
        ("Match abandoned due to rain", ResultKind.NO_RESULT),
        ("No result", ResultKind.NO_RESULT),
        ("Match called off - wet outfield", ResultKind.NO_RESULT),
        ("Match drawn", ResultKind.DRAW),
        ("Match tied", ResultKind.TIE),
    ],
)
def test_non_winner_rules(text, kind) -> None:
    assert parse_result_text(text, "India", "Pakistan").kind == kind


def test_draw_sets_draw_winner() -> None:
    parsed = parse_result_text("Match drawn", "India", "England")

    assert parsed.winner == "DRAW"
    assert parsed.win_type == "draw"


def test_super_over_tie_is_not_a_tie() -> None:
    parsed = parse_result_text("Match tied (Pakistan won the super over)", "India", "Pakistan")

    assert parsed.kind == ResultKind.WINNER
    assert parsed.winner == "Pakistan"


@pytest.mark.parametrize(
    "text",
    ["", "   ", "Stumps - Day 3", "Innings break", "Australia won by 3 wickets"],
)
def test_unrecognised_text_is_unparsed(text) -> None:
    parsed = parse_result_text(text, "India", "Pakistan")

    assert parsed.kind == ResultKind.UNPARSED
    assert parsed.winner is None
    assert not parsed.is_definitive


def test_team_aliases_match_symmetrically() -> None:
    assert match_team_name("IND", "India")
    assert match_team_name("India", "IND")
    assert match_team_name("Windies", "West Indies")
    assert match_team_name("SA", "South Africa")
    assert match_team_name("India Cricket", "India")


def test_different_sides_do_not_match() -> None:
    assert not match_team_name("West Indies", "India")
    assert not match_team_name("India", "West Indies")
    assert not match_team_name("Pakistan", "India")
    assert not match_team_name("", "India")


def test_womens_sides_stay_apart() -> None:
    assert not match_team_name("India", "India W")
    assert not match_team_name("India W", "India")
    assert match_team_name("India Women", "India W")
    assert normalize_team_name("India", "India W", "Australia W") is None


def test_normalize_team_name_maps_onto_fixture() -> None:
    assert normalize_team_name("PAK", "India", "Pakistan") == "Pakistan"
    assert normalize_team_name("india", "India", "Pakistan") == "India"
    assert normalize_team_name("England", "India", "Pakistan") is None
