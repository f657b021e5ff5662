"""Result source adapters against canned feed payloads."""

import asyncio

import httpx
import pytest

from crease.config import SourcesConfig
from crease.errors import ResultSourceError
from crease.services.results import CricApiSource, CricbuzzSource, OddsFeedSource, ResultKind

CRICAPI_PAYLOAD = {
    "status": "success",
    "data": [
        {
            "name": "England vs Australia, 2nd ODI",
            "teams": ["England", "Australia"],
            "status": "Match in progress",
            "matchEnded": False,
        },
        {
            "name": "India vs Pakistan, 1st T20I",
            "teams": ["India", "Pakistan"],
            "status": "India won by 7 wickets",
            "matchEnded": True,
            "tossWinner": "pakistan",
            "tossChoice": "bat",
            "score": [
                {"inning": "Pakistan Inning 1", "r": 158, "w": 8, "o": 20},
                {"inning": "India Inning 1", "r": 159, "w": 3, "o": 18.2},
            ],
        },
    ],
}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _config() -> SourcesConfig:
    return SourcesConfig(max_retries=1)


def test_cricapi_lookup_returns_parsed_result() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["apikey"] = request.url.params.get("apikey")
        return httpx.Response(200, json=CRICAPI_PAYLOAD)

    async def run():
        async with CricApiSource("secret", _config(), _client(handler)) as source:
            return await source.lookup("India", "Pakistan")

    result = asyncio.run(run())

    assert seen == {"path": "/v1/currentMatches", "apikey": "secret"}
    assert result.kind == ResultKind.WINNER
    assert result.winner == "India"
    assert result.win_type == "wickets"
    assert result.win_margin == "7"
    assert result.team1_score == "159/3 (18.2)"
    assert result.team2_score == "158/8 (20)"
    assert result.toss_winner == "Pakistan"
    assert result.toss_decision == "bat"
    assert result.source == "cricapi"


def test_cricapi_unfinished_or_missing_match_is_not_available() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=CRICAPI_PAYLOAD)

    async def run():
        async with CricApiSource("secret", _config(), _client(handler)) as source:
            return (
                await source.lookup("England", "Australia"),
                await source.lookup("Nepal", "Canada"),
            )

    assert asyncio.run(run()) == (None, None)


def test_womens_fixture_ignores_mens_row() -> None:
    payload = {
        "status": "success",
        "data": [
            {
                "teams": ["India", "Australia"],
                "status": "India won by 5 runs",
                "matchEnded": True,
            },
            {
                "teams": ["India W", "Australia W"],
                "status": "Australia W won by 3 wickets",
                "matchEnded": True,
            },
        ],
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    async def run():
        async with CricApiSource("secret", _config(), _client(handler)) as source:
            return await source.lookup("India W", "Australia W")

    result = asyncio.run(run())

    assert result.winner == "Australia W"
    assert result.win_type == "wickets"
    assert result.win_margin == "3"


def test_cricapi_without_key_makes_no_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async def run():
        async with CricApiSource("", _config(), _client(handler)) as source:
            return await source.lookup("India", "Pakistan")

    assert asyncio.run(run()) is None


def test_server_errors_are_retried_then_raised(monkeypatch) -> None:
    calls = []

    async def no_sleep(seconds):
        return None

    monkeypatch.setattr("crease.services.results.sources.asyncio.sleep", no_sleep)

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    async def run():
        async with CricApiSource("secret", _config(), _client(handler)) as source:
            await source.fetch_recent_results()

    with pytest.raises(ResultSourceError) as exc_info:
        asyncio.run(run())

    assert exc_info.value.status_code == 503
    assert len(calls) == 2


def test_cricbuzz_reads_complete_matches() -> None:
    payload = {
        "matchDetails": [
            {
                "matchDetailsMap": {
                    "match": [
                        {
                            "matchInfo": {
                                "team1": {"teamName": "Sri Lanka", "teamSName": "SL"},
                                "team2": {"teamName": "Bangladesh", "teamSName": "BAN"},
                                "status": "Match abandoned due to rain",
                                "state": "Complete",
                            }
                        }
                    ]
                }
            },
            {"adDetail": {}},
        ]
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    async def run():
        async with CricbuzzSource(_config(), _client(handler)) as source:
            return await source.lookup("Bangladesh", "Sri Lanka")

    result = asyncio.run(run())

    assert result.kind == ResultKind.NO_RESULT
    assert result.source == "cricbuzz"


def test_odds_feed_only_counts_definitive_results() -> None:
    payload = {
        "status": "success",
        "code": 200,
        "response": [
            {"eventName": "India v Pakistan", "inPlay": False, "m1": "Pakistan won by 23 runs"},
            {"eventName": "England v Australia", "inPlay": False, "m1": "Result awaited"},
            {"eventName": "Nepal v Canada", "inPlay": True, "m1": "Nepal won by 2 runs"},
        ],
    }

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/cricket/all-matches-dashboard")
        return httpx.Response(200, json=payload)

    async def run():
        async with OddsFeedSource(_config(), _client(handler)) as source:
            return (
                await source.lookup("India", "Pakistan"),
                await source.lookup("England", "Australia"),
                await source.lookup("Nepal", "Canada"),
            )

    won, unparsed, live = asyncio.run(run())

    assert won.winner == "Pakistan"
    assert won.win_type == "runs"
    assert unparsed is None
    assert live is None


def test_source_requires_context_manager() -> None:
    source = CricbuzzSource(_config())

    with pytest.raises(RuntimeError):
        source.client
