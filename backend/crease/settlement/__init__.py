"""
Settlement engine: outcome application, commissions, fancy markets,
the scheduled sweeps and operator overrides.
"""

from crease.settlement.admin import SettlementAdmin
from crease.settlement.applier import AUTO_SETTLEMENT, ApplyReport, OutcomeApplier
from crease.settlement.commission import CommissionCascade
from crease.settlement.fancy import FancySettlement
from crease.settlement.orchestrator import SettlementOrchestrator, SweepReport
from crease.settlement.outcomes import VOID, Threshold, Winner, claim_wins, parse_claim
from crease.settlement.safety_net import SafetyNet

__all__ = [
    "AUTO_SETTLEMENT",
    "ApplyReport",
    "CommissionCascade",
    "FancySettlement",
    "OutcomeApplier",
    "SafetyNet",
    "SettlementAdmin",
    "SettlementOrchestrator",
    "SweepReport",
    "Threshold",
    "VOID",
    "Winner",
    "claim_wins",
    "parse_claim",
]
