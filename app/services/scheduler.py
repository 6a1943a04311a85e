"""
Background scheduler for periodic sync and the daily snapshot.

Usage:
    scheduler = SyncScheduler(orchestrator, snapshot_job, settings)
    await scheduler.start()
    # ... application runs ...
    await scheduler.stop()
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from croniter import croniter

if TYPE_CHECKING:
    from app.core.config import Settings
    from app.services.sync_orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

STOP_TIMEOUT_SEC = 5.0


class SyncScheduler:
    """
    Runs orchestrator.run_scheduled() every SYNC_INTERVAL_MINUTES and snapshot_job() at each
    SNAPSHOT_CRON occurrence (evaluated in REFERENCE_TIMEZONE). A failing job is logged and
    the loop keeps going.
    """

    def __init__(
        self,
        orchestrator: "SyncOrchestrator",
        snapshot_job: Callable[[], Awaitable[object]],
        settings: "Settings",
    ) -> None:
        self._orchestrator = orchestrator
        self._snapshot_job = snapshot_job
        self._interval = timedelta(minutes=settings.SYNC_INTERVAL_MINUTES)
        self._cron = settings.SNAPSHOT_CRON
        self._tz = ZoneInfo(settings.REFERENCE_TIMEZONE)
        self._task: asyncio.Task | None = None
        self._shutdown_event = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_snapshot_after(self, now: datetime) -> datetime:
        """Next cron occurrence strictly after now, as aware UTC."""
        local = now.astimezone(self._tz)
        return croniter(self._cron, local).get_next(datetime).astimezone(timezone.utc)

    async def start(self) -> None:
        if self.is_running:
            logger.warning("Scheduler already running")
            return
        self._shutdown_event.clear()
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Scheduler started",
            extra={"sync_interval_minutes": self._interval.total_seconds() / 60, "snapshot_cron": self._cron},
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._shutdown_event.set()
        try:
            await asyncio.wait_for(self._task, timeout=STOP_TIMEOUT_SEC)
        except asyncio.TimeoutError:
            logger.warning("Scheduler did not stop cleanly, cancelling")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Scheduler stopped")

    async def _loop(self) -> None:
        now = datetime.now(timezone.utc)
        next_sync = now + self._interval
        next_snapshot = self.next_snapshot_after(now)
        while not self._shutdown_event.is_set():
            now = datetime.now(timezone.utc)
            if now >= next_sync:
                await self._run_sync()
                next_sync = datetime.now(timezone.utc) + self._interval
            if now >= next_snapshot:
                await self._run_snapshot()
                next_snapshot = self.next_snapshot_after(datetime.now(timezone.utc))

            wait = (min(next_sync, next_snapshot) - datetime.now(timezone.utc)).total_seconds()
            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=max(wait, 0))
            except asyncio.TimeoutError:
                pass

    async def _run_sync(self) -> None:
        try:
            await self._orchestrator.run_scheduled()
        except Exception:
            logger.exception("Scheduled sync failed")

    async def _run_snapshot(self) -> None:
        logger.info("Creating daily snapshot")
        try:
            await self._snapshot_job()
        except Exception:
            logger.exception("Daily snapshot failed")
