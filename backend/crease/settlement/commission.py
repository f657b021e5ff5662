"""Agent commission cascade for winning bets."""

import logging
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crease.models import Agent, Bet, Commission, User
from crease.settlement.outcomes import CENT

logger = logging.getLogger(__name__)


class CommissionCascade:
    """
    Pays commission up the referring agent chain of a winning bettor.

    The walk follows ``parent_agent_id`` from the bettor's own agent for at
    most ``max_depth`` hops and stops early on a repeated agent, so a broken
    hierarchy can never pay the same agent twice for one bet.
    """

    def __init__(self, max_depth: int = 3):
        self.max_depth = max_depth

    async def distribute(
        self,
        session: AsyncSession,
        bet: Bet,
        win_amount: Decimal,
    ) -> list[Commission]:
        """Write commission rows inside the caller's transaction."""
        agent_id: UUID | None = await session.scalar(
            select(User.agent_id).where(User.id == bet.user_id)
        )

        visited: set[UUID] = set()
        records: list[Commission] = []

        while agent_id is not None and len(records) < self.max_depth:
            if agent_id in visited:
                logger.warning(f"Agent cycle at {agent_id} while paying bet {bet.id}")
                break
            visited.add(agent_id)

            agent = (
                await session.execute(
                    select(
                        Agent.id,
                        Agent.agent_type,
                        Agent.commission_rate,
                        Agent.parent_agent_id,
                    ).where(Agent.id == agent_id)
                )
            ).first()
            if agent is None:
                logger.warning(f"Agent {agent_id} referenced by bet {bet.id} does not exist")
                break

            rate = Decimal(agent.commission_rate)
            amount = (Decimal(win_amount) * rate / 100).quantize(CENT, rounding=ROUND_HALF_UP)

            record = Commission(
                bet_id=bet.id,
                agent_id=agent.id,
                commission_amount=amount,
                commission_rate=rate,
                based_on_amount=win_amount,
                agent_level=agent.agent_type,
            )
            session.add(record)
            await session.execute(
                update(Agent)
                .where(Agent.id == agent.id)
                .values(total_commission=Agent.total_commission + amount)
                .execution_options(synchronize_session=False)
            )
            records.append(record)
            agent_id = agent.parent_agent_id

        if records:
            logger.info(f"Commissions calculated for bet {bet.id}: {len(records)} agents")
        return records
