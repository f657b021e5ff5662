"""Operator overrides."""

import asyncio
from decimal import Decimal
from uuid import uuid4

import pytest

from crease.errors import AlreadySettledError, InvalidResultError, NotFoundError
from crease.models import VOIDED, Bet, BetStatus, Match, MatchStatus, User
from crease.settlement import SettlementAdmin, Winner


def test_manual_settle_normalizes_winner_and_pays(database) -> None:
    async def run():
        async with database() as db:
            match = await db.seed.match("India", "Pakistan", status=MatchStatus.LIVE)
            user = await db.seed.user("quinn", "0.00")
            bet = await db.seed.bet(user, match, "Pakistan", "10.00", "2.50")

            response = await SettlementAdmin(db.applier).manual_settle(
                match.id, "PAK", win_type="runs", win_margin="12", settled_by="ops"
            )

            assert response.success
            assert response.data["winner"] == "Pakistan"
            assert response.data["won"] == 1
            assert response.data["match_settled"] is True

            refreshed = await db.seed.get(Match, match.id)
            assert refreshed.status == MatchStatus.COMPLETED
            assert refreshed.match_winner == "Pakistan"
            assert refreshed.win_margin == "12"
            assert refreshed.settled_by == "ops"
            assert (await db.seed.get(Bet, bet.id)).settled_by == "ops"
            assert (await db.seed.get(User, user.id)).balance == Decimal("25.00")

    asyncio.run(run())


def test_manual_settle_accepts_draw(database) -> None:
    async def run():
        async with database() as db:
            match = await db.seed.match("India", "England")
            user = await db.seed.user()
            bet = await db.seed.bet(user, match, "DRAW", "10.00", "3.00")

            await SettlementAdmin(db.applier).manual_settle(match.id, "draw")

            assert (await db.seed.get(Bet, bet.id)).status == BetStatus.WON

    asyncio.run(run())


def test_manual_settle_rejects_outsider(database) -> None:
    async def run():
        async with database() as db:
            match = await db.seed.match("India", "Pakistan")
            await SettlementAdmin(db.applier).manual_settle(match.id, "Australia")

    with pytest.raises(InvalidResultError):
        asyncio.run(run())


def test_manual_operations_on_settled_match(database) -> None:
    async def run():
        async with database() as db:
            match = await db.seed.match("India", "Pakistan")
            admin = SettlementAdmin(db.applier)
            await admin.manual_void(match.id, "Crowd trouble")

            with pytest.raises(AlreadySettledError):
                await admin.manual_void(match.id, "again")
            with pytest.raises(AlreadySettledError):
                await admin.manual_settle(match.id, "India")

    asyncio.run(run())


def test_manual_void_unknown_match(database) -> None:
    async def run():
        async with database() as db:
            await SettlementAdmin(db.applier).manual_void(uuid4(), "nothing")

    with pytest.raises(NotFoundError):
        asyncio.run(run())


def test_manual_fancy_settle(database) -> None:
    async def run():
        async with database() as db:
            match = await db.seed.match()
            market = await db.seed.market(match)
            user = await db.seed.user()
            await db.seed.bet(user, match, "ABOVE 35", market=market)

            response = await SettlementAdmin(db.applier).manual_fancy_settle(
                market.id, Decimal("40"), "ops"
            )

            assert response.success
            assert response.data["won"] == 1

    asyncio.run(run())


def test_unsettled_summary(database) -> None:
    async def run():
        async with database() as db:
            live = await db.seed.match("India", "Pakistan", status=MatchStatus.LIVE)
            done = await db.seed.match("England", "Australia", match_winner="England")
            await db.seed.match("Nepal", "Canada", status=MatchStatus.UPCOMING)
            user = await db.seed.user()
            await db.seed.bet(user, live, "India")
            await db.seed.bet(user, live, "Pakistan")
            await db.seed.market(done)

            summary = await SettlementAdmin(db.applier).get_unsettled_summary()

            by_name = {s.name: s for s in summary}
            assert set(by_name) == {"India vs Pakistan", "England vs Australia"}
            assert by_name["India vs Pakistan"].pending_bets == 2
            assert by_name["India vs Pakistan"].status == "LIVE"
            assert by_name["England vs Australia"].unsettled_fancy_markets == 1
            assert by_name["England vs Australia"].match_winner == "England"

    asyncio.run(run())


def test_manual_settle_cannot_flip_a_partly_settled_winner(database) -> None:
    async def run():
        async with database() as db:
            match = await db.seed.match("India", "Pakistan", match_winner="India")
            alice = await db.seed.user("alice", "0.00")
            bob = await db.seed.user("bob", "0.00")
            backed_india = await db.seed.bet(alice, match, "India", "10.00", "2.00")
            backed_pakistan = await db.seed.bet(bob, match, "Pakistan", "10.00", "2.00")
            await db.applier.apply([backed_india], Winner("India"))
            admin = SettlementAdmin(db.applier)

            with pytest.raises(AlreadySettledError):
                await admin.manual_settle(match.id, "Pakistan")

            assert (await db.seed.get(Match, match.id)).match_winner == "India"
            assert (await db.seed.get(Bet, backed_pakistan.id)).status == BetStatus.PENDING
            assert (await db.seed.get(User, bob.id)).balance == Decimal("0.00")

            response = await admin.manual_settle(match.id, "India")

            assert response.data["lost"] == 1
            assert response.data["match_settled"] is True
            assert (await db.seed.get(Bet, backed_pakistan.id)).status == BetStatus.LOST

    asyncio.run(run())


def test_manual_settle_refused_while_voiding(database) -> None:
    async def run():
        async with database() as db:
            match = await db.seed.match("India", "Pakistan", win_type=VOIDED)

            await SettlementAdmin(db.applier).manual_settle(match.id, "India")

    with pytest.raises(AlreadySettledError):
        asyncio.run(run())
