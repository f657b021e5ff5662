"""Fancy (threshold) market settlement."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import UUID

from crease.errors import AlreadySettledError, NotFoundError
from crease.models import FancyMarket
from crease.settlement.applier import AUTO_SETTLEMENT, ApplyReport, OutcomeApplier
from crease.settlement.outcomes import VOID, Claim, Direction, Threshold, claim_wins, parse_claim

logger = logging.getLogger(__name__)

__all__ = [
    "Claim",
    "Direction",
    "FancySettlement",
    "claim_wins",
    "parse_claim",
]


class FancySettlement:
    """Declares fancy market results and settles the bets placed on them."""

    def __init__(self, applier: OutcomeApplier):
        self.applier = applier

    async def _get_market(self, market_id: UUID) -> FancyMarket:
        async with self.applier.session_factory() as session:
            market = await session.get(FancyMarket, market_id)
        if market is None:
            raise NotFoundError(f"Fancy market {market_id} not found")
        return market

    async def settle_market(
        self,
        market_id: UUID,
        result_value: Decimal,
        settled_by: str,
    ) -> ApplyReport:
        """
        Declare ``result_value`` for a market and settle its pending bets.

        YES/ABOVE claims win when the result reaches the line, NO/BELOW claims
        win when it stays under it. Unreadable selections are refunded.
        """
        market = await self._get_market(market_id)
        if market.is_settled:
            raise AlreadySettledError(f"Fancy market {market.market_name} already settled")

        result_value = Decimal(result_value)
        # Lost a race with another settler between the read and the update
        if not await self.applier.close_fancy_market(market_id, str(result_value), settled_by):
            raise AlreadySettledError(f"Fancy market {market.market_name} already settled")

        bets = await self.applier.pending_bets(fancy_market_id=market_id)
        report = await self.applier.apply(
            bets,
            Threshold(result_value),
            reason=f"{market.market_name} result: {result_value}",
            processed_by=settled_by,
        )

        logger.info(
            f"Fancy market {market.market_name} settled at {result_value}: "
            f"{report.won} won, {report.lost} lost, {report.voided} refunded"
        )
        return report

    async def void_market(
        self,
        market_id: UUID,
        reason: str,
        settled_by: str = AUTO_SETTLEMENT,
    ) -> ApplyReport:
        """Suspend and settle the market without a result, refunding pending bets."""
        market = await self._get_market(market_id)
        if market.is_settled:
            logger.debug(f"Fancy market {market.market_name} already settled, not voiding")
            return ApplyReport()
        return await self.applier.void_fancy_market(
            market_id, f"{market.market_name} - {reason}", settled_by
        )

    async def resettle_pending(self, market_id: UUID, processed_by: str = AUTO_SETTLEMENT) -> ApplyReport:
        """
        Re-apply a settled market's outcome to bets left PENDING by a failed run.

        A recorded numeric result is applied as a threshold; a market closed
        without one refunds.
        """
        market = await self._get_market(market_id)
        if not market.is_settled:
            return ApplyReport()

        bets = await self.applier.pending_bets(fancy_market_id=market_id)
        if not bets:
            return ApplyReport()

        value = _result_value(market.result)
        if value is None:
            return await self.applier.apply(
                bets, VOID, reason=f"{market.market_name} - voided", processed_by=processed_by
            )
        return await self.applier.apply(
            bets,
            Threshold(value),
            reason=f"{market.market_name} result: {value}",
            processed_by=processed_by,
        )


def _result_value(result: Optional[str]) -> Optional[Decimal]:
    if not result:
        return None
    try:
        return Decimal(result)
    except InvalidOperation:
        return None
