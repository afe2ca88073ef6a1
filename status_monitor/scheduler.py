"""Recurring tick trigger."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger


logger = structlog.get_logger(__name__)

TICK_JOB_ID = "status-monitor-tick"


class TickScheduler:
    """
    Runs the tick on a fixed interval.

    The job is registered with max_instances=1 and coalesce=True: a tick that
    is still running when the next one is due causes that run to be skipped,
    so the persisted state map never sees two overlapping writers.
    """

    def __init__(self, tick: Callable[[], Awaitable[Any]], *, interval_seconds: int) -> None:
        self.tick = tick
        self.interval_seconds = max(1, int(interval_seconds))
        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self.running = False

    async def _run_tick(self) -> None:
        try:
            await self.tick()
        except Exception:
            logger.exception("Tick failed")

    def start(self, *, run_immediately: bool = True) -> None:
        if self.running:
            logger.warning("Scheduler already running")
            return

        job_kwargs: dict[str, Any] = {}
        if run_immediately:
            # An explicit next_run_time of None would add the job paused.
            job_kwargs["next_run_time"] = datetime.now(timezone.utc)

        self.scheduler.add_job(
            self._run_tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=TICK_JOB_ID,
            name="probe all targets",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
            **job_kwargs,
        )
        self.scheduler.start()
        self.running = True
        logger.info("Tick scheduler started", interval_seconds=self.interval_seconds)

    def stop(self) -> None:
        if not self.running:
            return
        self.scheduler.shutdown(wait=False)
        self.running = False
        logger.info("Tick scheduler stopped")
