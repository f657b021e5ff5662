"""Operator-triggered settlement overrides."""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import exists, func, or_, select, update

from crease.errors import AlreadySettledError, InvalidResultError, NotFoundError
from crease.models import (
    DRAW,
    VOIDED,
    Bet,
    BetStatus,
    BetType,
    FancyMarket,
    Match,
    MatchStatus,
)
from crease.schemas import AdminActionResponse, UnsettledMatchSummary
from crease.services.results import normalize_team_name
from crease.settlement.applier import OutcomeApplier
from crease.settlement.fancy import FancySettlement

logger = logging.getLogger(__name__)


class SettlementAdmin:
    """
    Manual settle, void and fancy-settle operations.

    These bypass the result sources but go through the same applier as the
    sweeps, so the ledger and exactly-once guarantees are identical.
    """

    def __init__(self, applier: OutcomeApplier, fancy: Optional[FancySettlement] = None):
        self.applier = applier
        self.fancy = fancy or FancySettlement(applier)

    async def _get_unsettled_match(self, match_id: UUID) -> Match:
        async with self.applier.session_factory() as session:
            match = await session.get(Match, match_id)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found")
        if match.is_settled:
            raise AlreadySettledError(f"Match {match.name} already settled")
        return match

    async def manual_settle(
        self,
        match_id: UUID,
        winner: str,
        win_type: Optional[str] = None,
        win_margin: Optional[str] = None,
        team1_score: Optional[str] = None,
        team2_score: Optional[str] = None,
        settled_by: str = "admin",
    ) -> AdminActionResponse:
        """Record ``winner`` for the match and settle its bets straight away."""
        match = await self._get_unsettled_match(match_id)

        if winner.strip().upper() == DRAW:
            canonical = DRAW
        else:
            canonical = normalize_team_name(winner, match.team1, match.team2)
        if canonical is None:
            raise InvalidResultError(
                f"Winner {winner!r} is neither {match.team1}, {match.team2} nor {DRAW}"
            )

        if match.win_type == VOIDED:
            raise AlreadySettledError(f"Match {match.name} is being voided")

        # Bets already resolved under another outcome must not be joined by a second winner
        resolved_elsewhere = exists().where(
            Bet.match_id == match_id,
            Bet.bet_type == BetType.MATCH_WINNER,
            Bet.status.in_([BetStatus.WON, BetStatus.LOST, BetStatus.VOID]),
        )
        if match.match_winner != canonical:
            async with self.applier.session_factory() as session:
                if await session.scalar(select(resolved_elsewhere)):
                    raise AlreadySettledError(
                        f"Match {match.name} has bets settled under "
                        f"{match.match_winner or 'another outcome'}, cannot change winner "
                        f"to {canonical}"
                    )

        values = {
            "status": MatchStatus.COMPLETED,
            "match_winner": canonical,
            "win_type": win_type,
            "win_margin": win_margin,
        }
        if team1_score:
            values["team1_score"] = team1_score
        if team2_score:
            values["team2_score"] = team2_score

        async with self.applier.session_factory.begin() as session:
            outcome = await session.execute(
                update(Match)
                .where(
                    Match.id == match_id,
                    Match.is_settled.is_(False),
                    or_(Match.win_type.is_(None), Match.win_type != VOIDED),
                    or_(Match.match_winner == canonical, ~resolved_elsewhere),
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if outcome.rowcount == 0:
                raise AlreadySettledError(
                    f"Match {match.name} was settled or voided while the override ran"
                )

        logger.info(f"Manual settlement for {match.name}: winner={canonical} by {settled_by}")

        if self.applier.broadcaster is not None:
            self.applier.broadcaster.status_change(
                match_id, MatchStatus.COMPLETED.value, winner=canonical, manual=True
            )

        report = await self.applier.settle_match(match_id, settled_by)

        return AdminActionResponse(
            success=not report.failures,
            message=(
                f"Settled {match.name}: winner={canonical} "
                f"({report.won} won, {report.lost} lost)"
            ),
            data={"match_id": str(match_id), "winner": canonical, **report.as_dict()},
        )

    async def manual_void(
        self,
        match_id: UUID,
        reason: str,
        voided_by: str = "admin",
    ) -> AdminActionResponse:
        """Refund every pending bet on the match."""
        match = await self._get_unsettled_match(match_id)

        report = await self.applier.void_match(match_id, reason, voided_by)
        logger.info(f"Manual void for {match.name} by {voided_by}: {reason}")

        return AdminActionResponse(
            success=not report.failures,
            message=f"Voided {match.name}: {report.voided} bets refunded",
            data={"match_id": str(match_id), "reason": reason, **report.as_dict()},
        )

    async def manual_fancy_settle(
        self,
        market_id: UUID,
        result_value: Decimal,
        settled_by: str = "admin",
    ) -> AdminActionResponse:
        report = await self.fancy.settle_market(market_id, result_value, settled_by)
        return AdminActionResponse(
            success=not report.failures,
            message=(
                f"Fancy market settled at {result_value}: "
                f"{report.won} won, {report.lost} lost, {report.voided} refunded"
            ),
            data={"market_id": str(market_id), "result": str(result_value), **report.as_dict()},
        )

    async def get_unsettled_summary(self) -> list[UnsettledMatchSummary]:
        """Live and completed matches not yet settled, newest first."""
        pending_bets = (
            select(func.count(Bet.id))
            .where(Bet.match_id == Match.id, Bet.status == BetStatus.PENDING)
            .correlate(Match)
            .scalar_subquery()
        )
        open_markets = (
            select(func.count(FancyMarket.id))
            .where(FancyMarket.match_id == Match.id, FancyMarket.is_settled.is_(False))
            .correlate(Match)
            .scalar_subquery()
        )

        async with self.applier.session_factory() as session:
            rows = (
                await session.execute(
                    select(Match, pending_bets, open_markets)
                    .where(
                        Match.status.in_([MatchStatus.COMPLETED, MatchStatus.LIVE]),
                        Match.is_settled.is_(False),
                    )
                    .order_by(Match.start_time.desc())
                )
            ).all()

        return [
            UnsettledMatchSummary(
                id=match.id,
                name=match.name,
                status=match.status.value,
                match_winner=match.match_winner,
                pending_bets=bets,
                unsettled_fancy_markets=markets,
            )
            for match, bets, markets in rows
        ]
