"""Result and winner-settlement sweeps end to end on SQLite."""

import asyncio
from decimal import Decimal

from sqlalchemy import select, update

from crease.config import SettlementConfig
from crease.models import VOIDED, Bet, BetStatus, Match, MatchStatus, User
from crease.services.broadcast import BroadcastKind
from crease.services.results import BaseResultSource, MatchResult, ResultResolver, parse_result_text
from crease.settlement import SettlementOrchestrator


class FixedSource(BaseResultSource):
    """Answers every lookup with the same result text."""

    name = "fixed"

    def __init__(self, text):
        super().__init__()
        self.text = text
        self.lookups = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def lookup(self, team1, team2):
        self.lookups.append((team1, team2))
        if self.text is None:
            return None
        parsed = parse_result_text(self.text, team1, team2)
        return MatchResult(**parsed.model_dump(), result_text=self.text, source=self.name)


def _orchestrator(db, text, **config) -> SettlementOrchestrator:
    source = FixedSource(text)
    return SettlementOrchestrator(
        db.applier,
        lambda: ResultResolver([source]),
        SettlementConfig(**config),
    )


def test_winner_is_recorded_and_settled(database) -> None:
    async def run():
        async with database() as db:
            match = await db.seed.match("India", "Pakistan")
            user = await db.seed.user("ivan", "0.00")
            india = await db.seed.bet(user, match, "India", "100.00", "1.85")
            pakistan = await db.seed.bet(user, match, "Pakistan", "100.00", "2.05")

            report = await _orchestrator(db, "India won by 7 wickets").run_result_sweep()

            assert report.processed == 1
            assert report.errors == []

            refreshed = await db.seed.get(Match, match.id)
            assert refreshed.match_winner == "India"
            assert refreshed.win_type == "wickets"
            assert refreshed.win_margin == "7"
            assert refreshed.is_settled

            won = await db.seed.get(Bet, india.id)
            assert won.status == BetStatus.WON
            assert won.actual_win == Decimal("100.00") * Decimal("1.85")
            assert (await db.seed.get(Bet, pakistan.id)).status == BetStatus.LOST
            assert (await db.seed.get(User, user.id)).balance == Decimal("185.00")

            kinds = []
            while not db.broadcaster.queue.empty():
                kinds.append(db.broadcaster.queue.get_nowait().kind)
            assert BroadcastKind.STATUS_CHANGE in kinds
            assert kinds.count(BroadcastKind.SETTLEMENT) == 2

    asyncio.run(run())


def test_abandoned_match_is_voided(database) -> None:
    async def run():
        async with database() as db:
            match = await db.seed.match("India", "Pakistan")
            market = await db.seed.market(match)
            user = await db.seed.user("judy", "0.00")
            await db.seed.bet(user, match, "India", "30.00", "1.85")
            await db.seed.bet(user, match, "Pakistan", "20.00", "2.05")
            await db.seed.bet(user, match, "YES_35", "10.00", "1.90", market=market)

            report = await _orchestrator(db, "Match abandoned due to rain").run_result_sweep()

            assert report.processed == 1
            refreshed = await db.seed.get(Match, match.id)
            assert refreshed.is_settled
            assert refreshed.match_winner is None
            assert (await db.seed.get(User, user.id)).balance == Decimal("60.00")

            async with db.sessions() as session:
                statuses = (
                    await session.execute(select(Bet.status).where(Bet.match_id == match.id))
                ).scalars().all()
            assert set(statuses) == {BetStatus.VOID}

    asyncio.run(run())


def test_tie_without_super_over_is_voided(database) -> None:
    async def run():
        async with database() as db:
            match = await db.seed.match("India", "Pakistan")
            user = await db.seed.user("kate", "0.00")
            bet = await db.seed.bet(user, match, "India", "10.00", "1.85")

            await _orchestrator(db, "Match tied").run_result_sweep()

            refunded = await db.seed.get(Bet, bet.id)
            assert refunded.status == BetStatus.VOID
            assert refunded.settlement_note == "Tie: Match tied"

    asyncio.run(run())


def test_draw_is_recorded_then_settled_by_winner_sweep(database) -> None:
    async def run():
        async with database() as db:
            match = await db.seed.match("India", "England")
            user = await db.seed.user("liam", "0.00")
            draw = await db.seed.bet(user, match, "DRAW", "10.00", "3.00")
            india = await db.seed.bet(user, match, "India", "10.00", "2.00")
            orchestrator = _orchestrator(db, "Match drawn")

            await orchestrator.run_result_sweep()

            recorded = await db.seed.get(Match, match.id)
            assert recorded.match_winner == "DRAW"
            assert recorded.win_type == "draw"
            assert not recorded.is_settled
            assert (await db.seed.get(Bet, draw.id)).status == BetStatus.PENDING

            report = await orchestrator.run_winner_settlement_sweep()

            assert report.processed == 1
            assert (await db.seed.get(Bet, draw.id)).status == BetStatus.WON
            assert (await db.seed.get(Bet, india.id)).status == BetStatus.LOST
            assert (await db.seed.get(Match, match.id)).is_settled

    asyncio.run(run())


def test_winner_waits_for_sweep_when_not_settling_on_resolve(database) -> None:
    async def run():
        async with database() as db:
            match = await db.seed.match("India", "Pakistan")
            user = await db.seed.user("mona", "0.00")
            bet = await db.seed.bet(user, match, "Pakistan", "10.00", "2.00")
            orchestrator = _orchestrator(db, "Pakistan won by 23 runs", settle_on_resolve=False)

            await orchestrator.run_result_sweep()
            assert (await db.seed.get(Bet, bet.id)).status == BetStatus.PENDING

            await orchestrator.run_winner_settlement_sweep()
            assert (await db.seed.get(Bet, bet.id)).status == BetStatus.WON
            assert (await db.seed.get(User, user.id)).balance == Decimal("20.00")

    asyncio.run(run())


def test_unparsed_or_missing_result_leaves_match_alone(database) -> None:
    async def run():
        async with database() as db:
            match = await db.seed.match("India", "Pakistan", ended_minutes_ago=300)
            user = await db.seed.user()
            bet = await db.seed.bet(user, match, "India")

            unparsed = await _orchestrator(db, "Result awaited").run_result_sweep()
            missing = await _orchestrator(db, None).run_result_sweep()

            assert unparsed.processed == 0
            assert missing.processed == 0
            refreshed = await db.seed.get(Match, match.id)
            assert refreshed.match_winner is None
            assert not refreshed.is_settled
            assert (await db.seed.get(Bet, bet.id)).status == BetStatus.PENDING

    asyncio.run(run())


def test_only_completed_unsettled_matches_are_looked_up(database) -> None:
    async def run():
        async with database() as db:
            await db.seed.match("India", "Pakistan", status=MatchStatus.LIVE)
            await db.seed.match("England", "Australia", match_winner="England")
            await db.seed.match("Nepal", "Canada")
            source = FixedSource(None)
            orchestrator = SettlementOrchestrator(
                db.applier, lambda: ResultResolver([source]), SettlementConfig()
            )

            await orchestrator.run_result_sweep()

            assert source.lookups == [("Nepal", "Canada")]

    asyncio.run(run())


def test_result_not_recorded_on_match_being_voided(database) -> None:
    async def run():
        async with database() as db:
            match = await db.seed.match("India", "Pakistan")
            user = await db.seed.user("pete", "0.00")
            bet = await db.seed.bet(user, match, "Pakistan", "10.00", "2.00")
            async with db.sessions.begin() as session:
                await session.execute(
                    update(Match).where(Match.id == match.id).values(win_type=VOIDED)
                )

            report = await _orchestrator(db, "India won by 7 wickets").run_result_sweep()

            assert report.processed == 0
            refreshed = await db.seed.get(Match, match.id)
            assert refreshed.match_winner is None
            assert refreshed.win_type == VOIDED
            assert (await db.seed.get(Bet, bet.id)).status == BetStatus.PENDING

    asyncio.run(run())
