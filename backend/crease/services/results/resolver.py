from __future__ import annotations

import logging
from contextlib import AsyncExitStack
from typing import Sequence

from crease.config import Settings
from crease.services.results.models import MatchResult
from crease.services.results.sources import (
    BaseResultSource,
    CricApiSource,
    CricbuzzSource,
    OddsFeedSource,
)

logger = logging.getLogger(__name__)


class ResultResolver:
    """
    Fallback chain over the result sources, in priority order.

    ``resolve`` returns the first definitive result. A source that fails,
    has not seen the match finish, or does not list it at all is skipped.
    None means no source has a result yet.
    """

    def __init__(self, sources: Sequence[BaseResultSource]):
        self.sources = list(sources)
        self._stack: AsyncExitStack | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> ResultResolver:
        return cls(
            [
                CricApiSource(settings.cricapi_api_key, settings.sources),
                CricbuzzSource(settings.sources),
                OddsFeedSource(settings.sources),
            ]
        )

    async def __aenter__(self) -> ResultResolver:
        self._stack = AsyncExitStack()
        for source in self.sources:
            await self._stack.enter_async_context(source)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._stack is not None:
            await self._stack.aclose()
            self._stack = None

    async def resolve(self, team1: str, team2: str) -> MatchResult | None:
        unparsed: MatchResult | None = None

        for source in self.sources:
            try:
                result = await source.lookup(team1, team2)
            except Exception as e:
                logger.error(f"[{source.name}] Result lookup failed for {team1} vs {team2}: {e}")
                continue

            if result is None:
                continue

            if not result.is_definitive:
                logger.warning(
                    f"[{source.name}] Unparsed result for {team1} vs {team2}: {result.result_text!r}"
                )
                unparsed = unparsed or result
                continue

            logger.info(f"Got result from {source.name}: {result.result_text}")
            return result

        return unparsed
