"""Wiring for the settlement components."""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crease.config import Settings, get_settings
from crease.services.broadcast import Broadcaster
from crease.services.results import ResultResolver
from crease.settlement import (
    CommissionCascade,
    FancySettlement,
    OutcomeApplier,
    SafetyNet,
    SettlementAdmin,
    SettlementOrchestrator,
)
from crease.settlement.orchestrator import ResolverFactory


@dataclass
class SettlementEngine:
    settings: Settings
    broadcaster: Broadcaster
    applier: OutcomeApplier
    fancy: FancySettlement
    orchestrator: SettlementOrchestrator
    safety_net: SafetyNet
    admin: SettlementAdmin


def build_engine(
    settings: Optional[Settings] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    broadcaster: Optional[Broadcaster] = None,
    resolver_factory: Optional[ResolverFactory] = None,
) -> SettlementEngine:
    """Assemble the engine; unset collaborators come from settings."""
    settings = settings or get_settings()
    broadcaster = broadcaster or Broadcaster()

    applier = OutcomeApplier(
        session_factory=session_factory,
        commission=CommissionCascade(settings.settlement.max_commission_depth),
        broadcaster=broadcaster,
    )
    fancy = FancySettlement(applier)

    return SettlementEngine(
        settings=settings,
        broadcaster=broadcaster,
        applier=applier,
        fancy=fancy,
        orchestrator=SettlementOrchestrator(
            applier,
            resolver_factory or (lambda: ResultResolver.from_settings(settings)),
            settings.settlement,
        ),
        safety_net=SafetyNet(applier, fancy, settings.settlement),
        admin=SettlementAdmin(applier, fancy),
    )
