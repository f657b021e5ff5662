"""
Settlement orchestrator.

Two sweeps drive a completed match to settlement:

- the result sweep looks up results for COMPLETED matches that have no
  winner yet, records winners and draws, and voids no-result and tied
  matches;
- the winner-settlement sweep settles match-winner bets for matches whose
  winner is recorded and flags them settled once no bet is left PENDING.

Result lookups run before any database transaction is opened.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from sqlalchemy import or_, select, update

from crease.config import SettlementConfig, get_settings
from crease.errors import AlreadySettledError
from crease.models import VOIDED, Match, MatchStatus
from crease.services.results import MatchResult, ResultKind, ResultResolver
from crease.settlement.applier import AUTO_SETTLEMENT, OutcomeApplier

logger = logging.getLogger(__name__)

ResolverFactory = Callable[[], ResultResolver]


@dataclass
class SweepReport:
    processed: int = 0
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {"processed": self.processed, "errors": list(self.errors)}


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; they are stored as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def minutes_since(value: Optional[datetime]) -> Optional[float]:
    value = as_utc(value)
    if value is None:
        return None
    return (datetime.now(timezone.utc) - value).total_seconds() / 60


class SettlementOrchestrator:
    """Drives completed matches from result lookup through to settlement."""

    def __init__(
        self,
        applier: OutcomeApplier,
        resolver_factory: Optional[ResolverFactory] = None,
        config: Optional[SettlementConfig] = None,
    ):
        self.applier = applier
        self.resolver_factory = resolver_factory or (
            lambda: ResultResolver.from_settings(get_settings())
        )
        self.config = config or get_settings().settlement

    @property
    def broadcaster(self):
        return self.applier.broadcaster

    async def _select_matches(self, *criteria) -> list[Match]:
        async with self.applier.session_factory() as session:
            result = await session.execute(
                select(Match)
                .where(
                    Match.status == MatchStatus.COMPLETED,
                    Match.is_settled.is_(False),
                    *criteria,
                )
                .order_by(Match.end_time)
            )
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Result sweep
    # ------------------------------------------------------------------

    async def run_result_sweep(self) -> SweepReport:
        """Fetch results for completed matches that have no winner yet."""
        report = SweepReport()

        matches = await self._select_matches(Match.match_winner.is_(None))
        if not matches:
            return report

        logger.info(f"Checking results for {len(matches)} completed match(es)")

        async with self.resolver_factory() as resolver:
            for match in matches:
                try:
                    if await self._resolve_match(resolver, match):
                        report.processed += 1
                except Exception as e:
                    msg = f"Match {match.id} ({match.name}): {e}"
                    report.errors.append(msg)
                    logger.error(f"Result sweep error - {msg}")

        if report.processed > 0:
            logger.info(f"Result sweep processed {report.processed} match(es)")
        return report

    async def _resolve_match(self, resolver: ResultResolver, match: Match) -> bool:
        result = await resolver.resolve(match.team1, match.team2)

        if result is None:
            age = minutes_since(match.end_time)
            if age is not None and age > self.config.stale_result_warning_minutes:
                logger.warning(
                    f"No result for {match.name} {age:.0f} minutes after completion"
                )
            return False

        if result.kind == ResultKind.UNPARSED:
            logger.warning(f"Unparsed result for {match.name}: {result.result_text!r}")
            return False

        if result.kind in (ResultKind.NO_RESULT, ResultKind.TIE):
            label = "Tie" if result.kind == ResultKind.TIE else "No result"
            logger.info(f"{label} for {match.name}: {result.result_text!r} - voiding all bets")
            try:
                await self.applier.void_match(
                    match.id,
                    f"{label}: {result.result_text}",
                    AUTO_SETTLEMENT,
                    require_no_winner=True,
                )
            except AlreadySettledError:
                logger.info(f"Winner recorded for {match.name} meanwhile, not voiding")
                return False
            self._status_change(match, "voided", result)
            return True

        if not await self._record_result(match, result):
            logger.info(f"Result for {match.name} was recorded elsewhere, skipping")
            return False

        self._status_change(match, "result", result)

        if result.kind == ResultKind.WINNER and self.config.settle_on_resolve:
            try:
                await self.applier.settle_match(match.id, AUTO_SETTLEMENT)
            except Exception as e:
                # The winner-settlement sweep picks the match up again
                logger.error(f"Immediate settlement failed for {match.name}: {e}")

        return True

    async def _record_result(self, match: Match, result: MatchResult) -> bool:
        values: dict[str, Any] = {
            "match_winner": result.winner,
            "win_type": result.win_type,
            "win_margin": result.win_margin,
        }
        for key in ("team1_score", "team2_score", "toss_winner", "toss_decision"):
            value = getattr(result, key)
            if value:
                values[key] = value

        async with self.applier.session_factory.begin() as session:
            outcome = await session.execute(
                update(Match)
                .where(
                    Match.id == match.id,
                    Match.match_winner.is_(None),
                    Match.is_settled.is_(False),
                    or_(Match.win_type.is_(None), Match.win_type != VOIDED),
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            recorded = outcome.rowcount == 1

        if recorded:
            logger.info(
                f"Result recorded for {match.name}: {result.winner} "
                f"({result.win_type or 'n/a'} {result.win_margin or ''}) via {result.source}"
            )
        return recorded

    def _status_change(self, match: Match, status: str, result: MatchResult) -> None:
        if self.broadcaster is None:
            return
        self.broadcaster.status_change(
            match.id,
            status,
            winner=result.winner,
            win_type=result.win_type,
            win_margin=result.win_margin,
            result_text=result.result_text,
        )

    # ------------------------------------------------------------------
    # Winner-settlement sweep
    # ------------------------------------------------------------------

    async def run_winner_settlement_sweep(self) -> SweepReport:
        """Settle bets on completed matches whose winner is recorded."""
        report = SweepReport()

        matches = await self._select_matches(Match.match_winner.is_not(None))
        for match in matches:
            try:
                outcome = await self.applier.settle_match(match.id, AUTO_SETTLEMENT)
            except Exception as e:
                msg = f"Match {match.id} ({match.name}): {e}"
                report.errors.append(msg)
                logger.error(f"Winner settlement error - {msg}")
                continue

            report.processed += 1
            if outcome.failures:
                report.errors.append(
                    f"Match {match.id} ({match.name}): {len(outcome.failures)} bet(s) failed"
                )

        if report.processed > 0:
            logger.info(f"Winner settlement sweep processed {report.processed} match(es)")
        return report
