"""
Outcome and ledger applier.

Every bet is resolved in its own database transaction. The status
transition is a conditional UPDATE guarded on ``status = 'PENDING'``, issued
before anything else in that transaction, so when two sweeps race for the
same bet exactly one of them sees a row change and goes on to touch the
balance and the ledger. The loser counts the bet as skipped.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import and_, exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crease.database import get_session_factory
from crease.errors import AlreadySettledError, LedgerIntegrityError, NotFoundError
from crease.models import (
    Bet,
    BetStatus,
    BetType,
    FancyMarket,
    Match,
    Transaction,
    TransactionStatus,
    TransactionType,
    User,
    VOIDED,
)
from crease.services.broadcast import Broadcaster
from crease.settlement.commission import CommissionCascade
from crease.settlement.outcomes import VOID, Directive, Winner, decide

logger = logging.getLogger(__name__)

AUTO_SETTLEMENT = "AUTO_SETTLEMENT"


@dataclass
class ApplyReport:
    """Outcome counts for one batch of bets."""

    resolved: int = 0
    skipped: int = 0
    won: int = 0
    lost: int = 0
    voided: int = 0
    failures: list[tuple[UUID, str]] = field(default_factory=list)
    match_settled: bool = False

    def merge(self, other: "ApplyReport") -> "ApplyReport":
        self.resolved += other.resolved
        self.skipped += other.skipped
        self.won += other.won
        self.lost += other.lost
        self.voided += other.voided
        self.failures.extend(other.failures)
        self.match_settled = self.match_settled or other.match_settled
        return self

    def as_dict(self) -> dict:
        return {
            "resolved": self.resolved,
            "skipped": self.skipped,
            "won": self.won,
            "lost": self.lost,
            "voided": self.voided,
            "failures": [{"bet_id": str(bet_id), "error": error} for bet_id, error in self.failures],
            "match_settled": self.match_settled,
        }


class OutcomeApplier:
    """Turns a settlement directive into bet transitions, balance credits and ledger rows."""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        commission: Optional[CommissionCascade] = None,
        broadcaster: Optional[Broadcaster] = None,
    ):
        self._session_factory = session_factory
        self.commission = commission or CommissionCascade()
        self.broadcaster = broadcaster

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory or get_session_factory()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def pending_bets(
        self,
        match_id: Optional[UUID] = None,
        bet_type: Optional[BetType] = None,
        fancy_market_id: Optional[UUID] = None,
    ) -> list[Bet]:
        query = select(Bet).where(Bet.status == BetStatus.PENDING)
        if match_id is not None:
            query = query.where(Bet.match_id == match_id)
        if bet_type is not None:
            query = query.where(Bet.bet_type == bet_type)
        if fancy_market_id is not None:
            query = query.where(Bet.fancy_market_id == fancy_market_id)

        async with self.session_factory() as session:
            result = await session.execute(query.order_by(Bet.created_at))
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Per-bet application
    # ------------------------------------------------------------------

    async def apply(
        self,
        bets: Iterable[Bet],
        directive: Directive,
        reason: Optional[str] = None,
        processed_by: str = AUTO_SETTLEMENT,
    ) -> ApplyReport:
        """
        Resolve each bet under ``directive``.

        A failing bet is logged and recorded in ``failures``; it stays
        PENDING and the rest of the batch carries on.
        """
        report = ApplyReport()

        for bet in bets:
            try:
                status = await self._apply_one(bet, directive, reason, processed_by)
            except Exception as e:
                logger.error(f"Failed to settle bet {bet.id}: {e}")
                report.failures.append((bet.id, str(e)))
                continue

            if status is None:
                report.skipped += 1
                continue

            report.resolved += 1
            if status == BetStatus.WON:
                report.won += 1
            elif status == BetStatus.LOST:
                report.lost += 1
            else:
                report.voided += 1

        return report

    async def _apply_one(
        self,
        bet: Bet,
        directive: Directive,
        reason: Optional[str],
        processed_by: str,
    ) -> Optional[BetStatus]:
        decision = decide(bet, directive, reason)
        now = datetime.now(timezone.utc)

        async with self.session_factory.begin() as session:
            result = await session.execute(
                update(Bet)
                .where(Bet.id == bet.id, Bet.status == BetStatus.PENDING)
                .values(
                    status=decision.status,
                    actual_win=decision.actual_win,
                    settled_at=now,
                    settled_by=processed_by,
                    settlement_note=decision.note,
                    version=Bet.version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                logger.debug(f"Bet {bet.id} already resolved, skipping")
                return None

            if decision.status == BetStatus.WON:
                await self._credit(
                    session,
                    bet,
                    decision.actual_win,
                    TransactionType.BET_WON,
                    processed_by,
                    now,
                    f"Bet won: {bet.bet_on} @ {bet.odds}",
                )
                await self.commission.distribute(session, bet, decision.actual_win)

            elif decision.status == BetStatus.VOID:
                await self._credit(
                    session,
                    bet,
                    Decimal(bet.amount),
                    TransactionType.BET_REFUND,
                    processed_by,
                    now,
                    f"Bet voided: {decision.note}" if decision.note else "Bet voided",
                )

        logger.info(f"Bet {bet.id} settled: {decision.status.value} ({bet.bet_on})")

        if self.broadcaster is not None:
            self.broadcaster.settlement(
                bet.match_id,
                bet_id=str(bet.id),
                user_id=str(bet.user_id),
                status=decision.status.value,
                actual_win=str(decision.actual_win),
            )

        return decision.status

    async def _credit(
        self,
        session: AsyncSession,
        bet: Bet,
        amount: Decimal,
        tx_type: TransactionType,
        processed_by: str,
        now: datetime,
        description: str,
    ) -> None:
        row = (
            await session.execute(
                update(User)
                .where(User.id == bet.user_id)
                .values(balance=User.balance + amount)
                .returning(User.balance)
                .execution_options(synchronize_session=False)
            )
        ).first()
        if row is None:
            raise LedgerIntegrityError(f"User {bet.user_id} not found for bet {bet.id}")

        balance_after = Decimal(row.balance)
        session.add(
            Transaction(
                user_id=bet.user_id,
                type=tx_type,
                status=TransactionStatus.COMPLETED,
                amount=amount,
                balance_before=balance_after - amount,
                balance_after=balance_after,
                reference_id=bet.id,
                reference_type="bet",
                processed_by=processed_by,
                processed_at=now,
                description=description[:500],
            )
        )

    # ------------------------------------------------------------------
    # Match and market level helpers
    # ------------------------------------------------------------------

    async def mark_settled_if_clear(self, match_id: UUID, settled_by: str = AUTO_SETTLEMENT) -> bool:
        """Flag the match settled when none of its bets are PENDING. Returns whether it did."""
        pending = exists().where(
            and_(Bet.match_id == match_id, Bet.status == BetStatus.PENDING)
        )

        async with self.session_factory.begin() as session:
            result = await session.execute(
                update(Match)
                .where(Match.id == match_id, Match.is_settled.is_(False), ~pending)
                .values(
                    is_settled=True,
                    settled_at=datetime.now(timezone.utc),
                    settled_by=settled_by,
                )
                .execution_options(synchronize_session=False)
            )
            settled = result.rowcount == 1

        if settled:
            logger.info(f"Match {match_id} marked settled")
            if self.broadcaster is not None:
                self.broadcaster.status_change(match_id, "settled")
        return settled

    async def _claim_for_void(self, match_id: UUID) -> bool:
        async with self.session_factory.begin() as session:
            result = await session.execute(
                update(Match)
                .where(
                    Match.id == match_id,
                    Match.match_winner.is_(None),
                    Match.is_settled.is_(False),
                )
                .values(win_type=VOIDED, win_margin=None)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    async def settle_match(self, match_id: UUID, processed_by: str = AUTO_SETTLEMENT) -> ApplyReport:
        """Settle pending match-winner bets against the recorded winner."""
        async with self.session_factory() as session:
            match = await session.get(Match, match_id)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found")
        if not match.match_winner:
            logger.warning(f"Match {match.name} has no recorded winner, nothing to settle")
            return ApplyReport()

        bets = await self.pending_bets(match_id, bet_type=BetType.MATCH_WINNER)
        report = await self.apply(
            bets,
            Winner(match.match_winner),
            reason=f"Match result: {match.match_winner}",
            processed_by=processed_by,
        )
        report.match_settled = await self.mark_settled_if_clear(match_id, processed_by)

        logger.info(
            f"Settled {match.name}: {report.won} won, {report.lost} lost, "
            f"{report.skipped} skipped, {len(report.failures)} failed"
        )
        return report

    async def close_fancy_market(
        self,
        market_id: UUID,
        result: Optional[str],
        settled_by: str,
    ) -> bool:
        """Mark an unsettled market settled and suspended. False when it already was."""
        async with self.session_factory.begin() as session:
            outcome = await session.execute(
                update(FancyMarket)
                .where(FancyMarket.id == market_id, FancyMarket.is_settled.is_(False))
                .values(
                    result=result,
                    is_settled=True,
                    is_suspended=True,
                    settled_at=datetime.now(timezone.utc),
                    settled_by=settled_by,
                )
                .execution_options(synchronize_session=False)
            )
            return outcome.rowcount == 1

    async def void_fancy_market(
        self,
        market_id: UUID,
        reason: str,
        settled_by: str = AUTO_SETTLEMENT,
    ) -> ApplyReport:
        """Close the market and refund its pending bets. No-op if already settled."""
        if not await self.close_fancy_market(market_id, None, settled_by):
            return ApplyReport()

        bets = await self.pending_bets(fancy_market_id=market_id)
        report = await self.apply(bets, VOID, reason=reason, processed_by=settled_by)
        if bets:
            logger.info(
                f"Voided fancy market {market_id}: {report.voided}/{len(bets)} bets refunded"
            )
        return report

    async def void_match(
        self,
        match_id: UUID,
        reason: str,
        processed_by: str = AUTO_SETTLEMENT,
        require_no_winner: bool = False,
    ) -> ApplyReport:
        """
        Refund every pending bet on the match and void its unsettled fancy markets.

        With ``require_no_winner`` the match is first claimed for voiding by
        stamping ``win_type`` with VOIDED, conditional on no winner being
        recorded. If a winner got there first, AlreadySettledError is raised
        before any bet is touched, and a later attempt to record a result
        is refused.
        """
        async with self.session_factory() as session:
            match = await session.get(Match, match_id)
            if match is None:
                raise NotFoundError(f"Match {match_id} not found")

        if require_no_winner and not await self._claim_for_void(match_id):
            raise AlreadySettledError(f"Match {match.name} has a recorded winner, not voiding")

        async with self.session_factory() as session:
            market_ids = list(
                (
                    await session.execute(
                        select(FancyMarket.id).where(
                            FancyMarket.match_id == match_id,
                            FancyMarket.is_settled.is_(False),
                        )
                    )
                ).scalars()
            )

        logger.info(f"Voiding {match.name}: {reason}")

        bets = await self.pending_bets(match_id, bet_type=BetType.MATCH_WINNER)
        report = await self.apply(bets, VOID, reason=reason, processed_by=processed_by)

        for market_id in market_ids:
            try:
                report.merge(await self.void_fancy_market(market_id, reason, processed_by))
            except Exception as e:
                logger.error(f"Failed to void fancy market {market_id}: {e}")
                report.failures.append((market_id, str(e)))

        report.match_settled = await self.mark_settled_if_clear(match_id, processed_by)

        logger.info(
            f"Voided {report.voided} bets for {match.name} "
            f"({len(market_ids)} fancy markets, settled={report.match_settled})"
        )
        return report
