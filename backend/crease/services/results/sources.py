from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from crease.config import SourcesConfig
from crease.errors import ResultSourceError, ResultSourceRateLimitError
from crease.services.results.models import FeedMatch, MatchResult
from crease.services.results.parser import parse_result_text
from crease.services.results.teams import match_team_name, normalize_team_name

logger = logging.getLogger(__name__)


class BaseResultSource:
    """
    One external result feed.

    Subclasses fetch and normalize the feed into ``FeedMatch`` records;
    ``lookup`` finds our fixture in that list and turns it into a result.
    """

    name = "base"
    # Only a parsed, definitive result counts for this source
    require_definitive = False

    def __init__(
        self,
        config: SourcesConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.config = config or SourcesConfig()
        self._client = client
        self._owns_client = False

    async def __aenter__(self) -> BaseResultSource:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                headers={"User-Agent": self.config.user_agent},
            )
            self._owns_client = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
            self._owns_client = False

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                f"{type(self).__name__} must be used as async context manager"
            )
        return self._client

    async def _request(
        self,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        retry_count = 0
        last_error: Exception | None = None

        while retry_count <= self.config.max_retries:
            try:
                response = await self.client.get(url, params=params)

                if response.status_code == 429:
                    wait_time = 2 ** retry_count
                    logger.warning(f"[{self.name}] Rate limited, waiting {wait_time}s...")
                    last_error = ResultSourceRateLimitError("Rate limited", status_code=429)
                    await asyncio.sleep(wait_time)
                    retry_count += 1
                    continue
                elif response.status_code >= 500:
                    wait_time = 2 ** retry_count
                    logger.warning(
                        f"[{self.name}] Server error {response.status_code}, "
                        f"retrying in {wait_time}s..."
                    )
                    last_error = ResultSourceError(
                        f"Server error {response.status_code}",
                        status_code=response.status_code,
                    )
                    await asyncio.sleep(wait_time)
                    retry_count += 1
                    continue

                response.raise_for_status()
                return response.json()

            except httpx.TimeoutException as e:
                last_error = e
                retry_count += 1
                if retry_count <= self.config.max_retries:
                    logger.warning(f"[{self.name}] Timeout, retrying ({retry_count})...")
                    await asyncio.sleep(1)

            except httpx.HTTPStatusError as e:
                raise ResultSourceError(
                    f"[{self.name}] HTTP {e.response.status_code} from {url}",
                    status_code=e.response.status_code,
                ) from e

            except (httpx.RequestError, ValueError) as e:
                raise ResultSourceError(f"[{self.name}] Request failed: {e}") from e

        if isinstance(last_error, ResultSourceError):
            raise last_error
        raise ResultSourceError(
            f"[{self.name}] Request failed after {retry_count} retries: {last_error}"
        )

    async def fetch_recent_results(self) -> list[FeedMatch]:
        raise NotImplementedError

    def _find(self, matches: list[FeedMatch], team1: str, team2: str) -> FeedMatch | None:
        for m in matches:
            names = [p.strip() for p in m.participants if p and p.strip()]
            if any(match_team_name(n, team1) for n in names) and any(
                match_team_name(n, team2) for n in names
            ):
                return m
        return None

    async def lookup(self, team1: str, team2: str) -> MatchResult | None:
        """Result for ``team1`` vs ``team2``, or None when not yet available."""
        matches = await self.fetch_recent_results()
        feed_match = self._find(matches, team1, team2)

        if feed_match is None:
            logger.debug(f"[{self.name}] No match found for {team1} vs {team2}")
            return None

        if not feed_match.ended:
            return None

        parsed = parse_result_text(feed_match.status_text, team1, team2)
        if self.require_definitive and not parsed.is_definitive:
            return None

        team1_score, team2_score = self._fold_scores(feed_match, team1, team2)
        toss_winner = (
            normalize_team_name(feed_match.toss_winner, team1, team2)
            if feed_match.toss_winner
            else None
        )

        return MatchResult(
            **parsed.model_dump(),
            team1_score=team1_score,
            team2_score=team2_score,
            toss_winner=toss_winner,
            toss_decision=feed_match.toss_decision,
            result_text=feed_match.status_text,
            source=self.name,
        )

    @staticmethod
    def _fold_scores(
        feed_match: FeedMatch, team1: str, team2: str
    ) -> tuple[str | None, str | None]:
        team1_score: str | None = None
        team2_score: str | None = None

        for innings, line in feed_match.score_lines:
            if match_team_name(innings, team1):
                team1_score = f"{team1_score} & {line}" if team1_score else line
            elif match_team_name(innings, team2):
                team2_score = f"{team2_score} & {line}" if team2_score else line

        return team1_score, team2_score


class CricApiSource(BaseResultSource):
    """Primary statistics provider (CricAPI currentMatches)."""

    name = "cricapi"

    def __init__(
        self,
        api_key: str,
        config: SourcesConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(config, client)
        self.api_key = api_key

    async def fetch_recent_results(self) -> list[FeedMatch]:
        if not self.api_key:
            logger.warning("[cricapi] No CricAPI key configured")
            return []

        data = await self._request(
            f"{self.config.cricapi_base_url.rstrip('/')}/currentMatches",
            params={"apikey": self.api_key, "offset": 0},
        )
        rows = data.get("data") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            raise ResultSourceError("[cricapi] Response has no data list")

        matches = []
        for m in rows:
            if not isinstance(m, dict):
                continue
            score_lines = [
                (str(s.get("inning", "")).strip(), f"{s.get('r')}/{s.get('w')} ({s.get('o')})")
                for s in m.get("score") or []
                if isinstance(s, dict)
            ]
            matches.append(
                FeedMatch(
                    participants=[str(t) for t in m.get("teams") or []],
                    status_text=str(m.get("status") or "").strip(),
                    ended=m.get("matchEnded") is True,
                    score_lines=score_lines,
                    toss_winner=m.get("tossWinner") or None,
                    toss_decision=m.get("tossChoice") or None,
                )
            )
        return matches


class CricbuzzSource(BaseResultSource):
    """Secondary aggregator (Cricbuzz recent matches)."""

    name = "cricbuzz"

    async def fetch_recent_results(self) -> list[FeedMatch]:
        data = await self._request(self.config.cricbuzz_recent_url)
        groups = data.get("matchDetails") if isinstance(data, dict) else None
        if not isinstance(groups, list):
            return []

        matches = []
        for group in groups:
            details = (group or {}).get("matchDetailsMap") or {}
            for m in details.get("match") or []:
                info = (m or {}).get("matchInfo")
                if not info:
                    continue
                team1 = info.get("team1") or {}
                team2 = info.get("team2") or {}
                matches.append(
                    FeedMatch(
                        participants=[
                            team1.get("teamSName") or team1.get("teamName") or "",
                            team2.get("teamSName") or team2.get("teamName") or "",
                        ],
                        status_text=str(info.get("status") or "").strip(),
                        ended=info.get("state") == "Complete",
                    )
                )
        return matches


class OddsFeedSource(BaseResultSource):
    """Odds-feed side channel; a match dropping off in-play may carry result text."""

    name = "oddsfeed"
    require_definitive = True

    async def fetch_recent_results(self) -> list[FeedMatch]:
        data = await self._request(
            f"{self.config.odds_feed_base_url.rstrip('/')}/cricket/all-matches-dashboard"
        )
        if not isinstance(data, dict) or data.get("status") != "success" or data.get("code") != 200:
            return []

        matches = []
        for m in data.get("response") or []:
            event_name = str((m or {}).get("eventName") or "").strip()
            parts = event_name.split(" v ")
            if len(parts) < 2:
                continue
            matches.append(
                FeedMatch(
                    participants=[parts[0].strip(), " v ".join(parts[1:]).strip()],
                    status_text=str(m.get("m1") or "").strip(),
                    ended=not m.get("inPlay"),
                )
            )
        return matches
