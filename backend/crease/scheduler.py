"""Sweep scheduling using APScheduler."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from crease.engine import SettlementEngine
from crease.settlement import SweepReport

logger = logging.getLogger(__name__)

Sweep = Callable[[], Awaitable[SweepReport]]


class SingleFlight:
    """
    One in-flight run per sweep name.

    A tick that arrives while the previous run of the same sweep is still
    going is dropped rather than queued behind it.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}

    def is_running(self, name: str) -> bool:
        lock = self._locks.get(name)
        return lock is not None and lock.locked()

    async def run(self, name: str, sweep: Sweep) -> Optional[SweepReport]:
        lock = self._locks.setdefault(name, asyncio.Lock())
        if lock.locked():
            logger.info(f"[{name}] Previous run still in progress, skipping tick")
            return None
        async with lock:
            return await sweep()


def sweep_job(flight: SingleFlight, name: str, sweep: Sweep) -> Callable[[], Awaitable[None]]:
    """Scheduler job for ``sweep``; exceptions are logged and retried next tick."""

    async def job() -> None:
        try:
            report = await flight.run(name, sweep)
        except Exception as e:
            logger.error(f"[{name}] Sweep failed: {e}", exc_info=True)
            return

        if report is None:
            return
        if report.processed > 0:
            logger.info(f"[{name}] Processed {report.processed}")
        if report.errors:
            logger.warning(f"[{name}] {len(report.errors)} errors: {'; '.join(report.errors)}")

    return job


def create_scheduler(
    engine: SettlementEngine,
    flight: Optional[SingleFlight] = None,
) -> AsyncIOScheduler:
    """Register the four settlement sweeps on an asyncio scheduler (not started)."""
    flight = flight or SingleFlight()
    intervals = engine.settings.scheduler
    scheduler = AsyncIOScheduler(
        job_defaults={"max_instances": 1, "coalesce": True},
    )

    jobs = [
        (
            "result-sweep",
            "Settlement: Result Fetch",
            engine.orchestrator.run_result_sweep,
            intervals.result_sweep_minutes,
        ),
        (
            "winner-settlement",
            "Settlement: Winner Bets",
            engine.orchestrator.run_winner_settlement_sweep,
            intervals.winner_settlement_minutes,
        ),
        (
            "stale-fancy",
            "Safety Net: Stale Fancy Markets",
            engine.safety_net.void_stale_fancy_markets,
            intervals.stale_fancy_sweep_minutes,
        ),
        (
            "stale-matches",
            "Safety Net: Stale Matches",
            engine.safety_net.void_stale_matches,
            intervals.stale_match_sweep_minutes,
        ),
    ]

    for job_id, job_name, sweep, minutes in jobs:
        scheduler.add_job(
            sweep_job(flight, job_id, sweep),
            IntervalTrigger(minutes=minutes),
            id=job_id,
            name=job_name,
        )
        logger.info(f"Registered job: {job_name} (every {minutes} min)")

    return scheduler
