"""Shared fixtures: a throwaway SQLite database per test and seed helpers."""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import AsyncIterator
from uuid import UUID

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crease.config import SettlementConfig, Settings
from crease.database import create_engine, create_session_factory, init_models
from crease.models import (
    Agent,
    AgentType,
    Bet,
    BetType,
    Commission,
    FancyMarket,
    Match,
    MatchStatus,
    Transaction,
    User,
)
from crease.services.broadcast import Broadcaster
from crease.settlement import CommissionCascade, OutcomeApplier


class Seeder:
    """Inserts rows for a test and reads them back fresh."""

    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self.sessions = sessions

    async def _add(self, obj):
        async with self.sessions.begin() as session:
            session.add(obj)
        return obj

    async def agent(
        self,
        username: str,
        rate: str,
        agent_type: AgentType = AgentType.AGENT,
        parent: Agent | None = None,
    ) -> Agent:
        return await self._add(
            Agent(
                username=username,
                agent_type=agent_type,
                commission_rate=Decimal(rate),
                total_commission=Decimal("0.00"),
                parent_agent_id=parent.id if parent else None,
            )
        )

    async def user(
        self,
        username: str = "punter",
        balance: str = "1000.00",
        agent: Agent | None = None,
    ) -> User:
        return await self._add(
            User(
                username=username,
                balance=Decimal(balance),
                agent_id=agent.id if agent else None,
            )
        )

    async def match(
        self,
        team1: str = "India",
        team2: str = "Pakistan",
        status: MatchStatus = MatchStatus.COMPLETED,
        ended_minutes_ago: int | None = 5,
        **fields,
    ) -> Match:
        now = datetime.now(timezone.utc)
        end_time = now - timedelta(minutes=ended_minutes_ago) if ended_minutes_ago is not None else None
        return await self._add(
            Match(
                name=f"{team1} vs {team2}",
                team1=team1,
                team2=team2,
                status=status,
                start_time=now - timedelta(hours=4),
                end_time=end_time,
                is_settled=False,
                **fields,
            )
        )

    async def market(
        self,
        match: Match,
        name: str = "10 over runs",
        no_value: str = "32",
        yes_value: str = "35",
    ) -> FancyMarket:
        return await self._add(
            FancyMarket(
                match_id=match.id,
                market_name=name,
                no_value=Decimal(no_value),
                yes_value=Decimal(yes_value),
                is_active=True,
                is_suspended=False,
                is_settled=False,
            )
        )

    async def bet(
        self,
        user: User,
        match: Match,
        bet_on: str,
        amount: str = "100.00",
        odds: str = "1.85",
        market: FancyMarket | None = None,
    ) -> Bet:
        stake = Decimal(amount)
        return await self._add(
            Bet(
                user_id=user.id,
                match_id=match.id,
                fancy_market_id=market.id if market else None,
                bet_type=BetType.FANCY if market else BetType.MATCH_WINNER,
                bet_on=bet_on,
                amount=stake,
                odds=Decimal(odds),
                potential_win=(stake * Decimal(odds)).quantize(Decimal("0.01")),
            )
        )

    async def get(self, model, obj_id: UUID):
        async with self.sessions() as session:
            return await session.get(model, obj_id)

    async def transactions(self, user_id: UUID) -> list[Transaction]:
        async with self.sessions() as session:
            result = await session.execute(
                select(Transaction)
                .where(Transaction.user_id == user_id)
                .order_by(Transaction.created_at)
            )
            return list(result.scalars().all())

    async def commissions(self, bet_id: UUID) -> list[Commission]:
        async with self.sessions() as session:
            result = await session.execute(select(Commission).where(Commission.bet_id == bet_id))
            return list(result.scalars().all())


class Database:
    """Handle passed to tests: session factory, seeder and a wired applier."""

    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self.sessions = sessions
        self.seed = Seeder(sessions)
        self.broadcaster = Broadcaster()
        self.applier = OutcomeApplier(sessions, CommissionCascade(), self.broadcaster)


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'crease.db'}"


@pytest.fixture
def settings(tmp_path, database_url) -> Settings:
    return Settings(
        data_dir=tmp_path,
        database_url=database_url,
        cricapi_api_key="test-key",
        logfire_token="",
        settlement=SettlementConfig(),
    )


@pytest.fixture
def database(database_url):
    """
    Call inside the test's event loop:

        async with database() as db:
            ...
    """

    @asynccontextmanager
    async def open_database() -> AsyncIterator[Database]:
        engine = create_engine(database_url)
        await init_models(engine)
        try:
            yield Database(create_session_factory(engine))
        finally:
            await engine.dispose()

    return open_database
