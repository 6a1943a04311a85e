"""Runs the per-source reconcilers, tracks in-process sync state, and signals cache invalidation."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from app.models import SyncLogEntry
from app.schemas.sync import SOURCE_IDS, SyncAllResult, SyncLogItem, SyncResult, SyncStatus
from app.services.sync import RECONCILERS

if TYPE_CHECKING:
    from app.core.config import Settings
    from app.services.sheets import SheetsAdapter

logger = logging.getLogger(__name__)

# Receives a source tag or "all" once a run finishes.
SyncNotifier = Callable[[str], Awaitable[None]]


class SyncOrchestrator:
    """
    Owns the "currently syncing" and "last result" state for this process.

    Scheduled runs check-and-skip when any sync is in flight; manual runs always proceed.
    State is not persisted and starts empty on every process start.
    """

    def __init__(
        self,
        adapter: "SheetsAdapter",
        session_factory: sessionmaker,
        settings: "Settings",
        on_sync_complete: SyncNotifier | None = None,
    ) -> None:
        self._adapter = adapter
        self._session_factory = session_factory
        self._settings = settings
        self._on_sync_complete = on_sync_complete
        self._in_flight = 0
        self._last_sync_time: datetime | None = None
        self._last_result: SyncAllResult | None = None
        self._notifications: set[asyncio.Task] = set()

    @property
    def is_syncing(self) -> bool:
        return self._in_flight > 0

    @property
    def status(self) -> SyncStatus:
        return SyncStatus(
            is_syncing=self.is_syncing,
            last_sync_time=self._last_sync_time,
            last_sync_result=self._last_result,
        )

    async def run_sync(self, source: str) -> SyncResult | SyncAllResult:
        """Run one source's reconciler, or all four for "all". Unknown source raises ValueError."""
        if source == "all":
            return await self._run_all()
        if source not in SOURCE_IDS:
            raise ValueError(f"Unknown sync source: {source}")
        self._in_flight += 1
        try:
            result = await self._reconcile(source)
        finally:
            self._in_flight -= 1
        self.notify(source)
        return result

    async def run_scheduled(self) -> SyncAllResult | None:
        """Full sync unless one is already running; skipped runs return None and are not queued."""
        if self.is_syncing:
            logger.info("Sync already in progress, skipping scheduled run")
            return None
        logger.info("Starting scheduled sync")
        return await self._run_all()

    async def _reconcile(self, source: str) -> SyncResult:
        reconciler = RECONCILERS[source]
        return await reconciler(self._adapter, self._session_factory, self._settings)

    async def _run_all(self) -> SyncAllResult:
        self._in_flight += 1
        start = time.perf_counter()
        try:
            if self._settings.SYNC_PARALLEL:
                results = await asyncio.gather(*(self._reconcile(s) for s in SOURCE_IDS))
            else:
                results = [await self._reconcile(s) for s in SOURCE_IDS]
        finally:
            self._in_flight -= 1

        combined = SyncAllResult(
            **dict(zip(SOURCE_IDS, results)),
            total_duration_ms=int((time.perf_counter() - start) * 1000),
        )
        self._last_result = combined
        self._last_sync_time = datetime.now(timezone.utc)
        logger.info(
            "Full sync completed",
            extra={
                "duration_ms": combined.total_duration_ms,
                "status": "success" if combined.success else "error",
                **{f"{s}_count": getattr(combined, s).count for s in SOURCE_IDS},
            },
        )
        self.notify("all")
        return combined

    def notify(self, source: str) -> None:
        """Dispatch the completion signal in the background; failures are only logged."""
        if self._on_sync_complete is None:
            return
        task = asyncio.create_task(self._deliver(source))
        self._notifications.add(task)
        task.add_done_callback(self._notifications.discard)

    async def _deliver(self, source: str) -> None:
        try:
            await self._on_sync_complete(source)
        except Exception:
            logger.warning("Sync completion notification failed", extra={"source": source}, exc_info=True)

    async def wait_for_notifications(self) -> None:
        """Await notifications still in flight (shutdown and CLI exit)."""
        if self._notifications:
            await asyncio.gather(*list(self._notifications))


def list_sync_logs(session: Session, source: str | None = None, limit: int = 50) -> list[SyncLogItem]:
    """Newest-first sync audit rows, optionally for one source."""
    stmt = select(SyncLogEntry)
    if source is not None:
        stmt = stmt.where(SyncLogEntry.source == source)
    stmt = stmt.order_by(SyncLogEntry.created_at.desc(), SyncLogEntry.id.desc()).limit(limit)
    return [SyncLogItem.model_validate(row) for row in session.scalars(stmt)]
