"""Time-boxed voiding of matches and fancy markets that never got a result."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select

from crease.config import SettlementConfig, get_settings
from crease.errors import AlreadySettledError
from crease.models import Bet, BetStatus, FancyMarket, Match, MatchStatus
from crease.settlement.applier import AUTO_SETTLEMENT, OutcomeApplier
from crease.settlement.fancy import FancySettlement
from crease.settlement.orchestrator import SweepReport

logger = logging.getLogger(__name__)


class SafetyNet:
    """
    Backstop sweeps guaranteeing no bet stays PENDING forever.

    Both sweeps go through the applier, so a bet that was settled by some
    other path in the meantime is simply skipped.
    """

    def __init__(
        self,
        applier: OutcomeApplier,
        fancy: Optional[FancySettlement] = None,
        config: Optional[SettlementConfig] = None,
    ):
        self.applier = applier
        self.fancy = fancy or FancySettlement(applier)
        self.config = config or get_settings().settlement

    @staticmethod
    def _cutoff(minutes: int) -> datetime:
        return datetime.now(timezone.utc) - timedelta(minutes=minutes)

    async def void_stale_fancy_markets(self) -> SweepReport:
        """Void unsettled fancy markets on matches that finished past the grace window."""
        report = SweepReport()
        grace = self.config.stale_fancy_grace_minutes
        reason = f"Stale market - no result received within {grace} min of match end"

        async with self.applier.session_factory() as session:
            stale = (
                await session.execute(
                    select(FancyMarket.id, FancyMarket.market_name)
                    .join(Match, FancyMarket.match_id == Match.id)
                    .where(
                        Match.status == MatchStatus.COMPLETED,
                        Match.end_time <= self._cutoff(grace),
                        FancyMarket.is_settled.is_(False),
                    )
                )
            ).all()
            # Settled markets still holding PENDING bets from an interrupted run
            leftover = (
                await session.execute(
                    select(FancyMarket.id)
                    .join(Bet, Bet.fancy_market_id == FancyMarket.id)
                    .where(
                        FancyMarket.is_settled.is_(True),
                        Bet.status == BetStatus.PENDING,
                    )
                    .distinct()
                )
            ).scalars().all()

        for market_id, market_name in stale:
            try:
                await self.fancy.void_market(market_id, reason, AUTO_SETTLEMENT)
                report.processed += 1
            except Exception as e:
                msg = f"Fancy market {market_id} ({market_name}): {e}"
                report.errors.append(msg)
                logger.error(f"Failed to void stale market - {msg}")

        for market_id in leftover:
            try:
                await self.fancy.resettle_pending(market_id, AUTO_SETTLEMENT)
            except Exception as e:
                report.errors.append(f"Fancy market {market_id}: {e}")
                logger.error(f"Failed to resettle fancy market {market_id}: {e}")

        if report.processed > 0:
            logger.info(f"Voided {report.processed} stale fancy markets")
        return report

    async def void_stale_matches(self) -> SweepReport:
        """Void every pending bet on completed matches that never got a winner."""
        report = SweepReport()
        grace = self.config.stale_match_grace_minutes
        reason = (
            f"No result available within {grace} minutes of match completion - auto-voided"
        )

        async with self.applier.session_factory() as session:
            stale = (
                await session.execute(
                    select(Match.id, Match.name).where(
                        Match.status == MatchStatus.COMPLETED,
                        Match.match_winner.is_(None),
                        Match.is_settled.is_(False),
                        Match.end_time <= self._cutoff(grace),
                    )
                )
            ).all()

        for match_id, match_name in stale:
            try:
                await self.applier.void_match(
                    match_id, reason, AUTO_SETTLEMENT, require_no_winner=True
                )
                report.processed += 1
                logger.info(f"Voided stale bets for match {match_name}")
            except AlreadySettledError:
                logger.info(f"Winner recorded for {match_name} meanwhile, not voiding")
            except Exception as e:
                msg = f"Match {match_id} ({match_name}): {e}"
                report.errors.append(msg)
                logger.error(f"Failed to void stale match - {msg}")

        if report.processed > 0:
            logger.info(f"Voided stale bets for {report.processed} match(es)")
        return report
