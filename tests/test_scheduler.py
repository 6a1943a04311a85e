"""Unit tests for app.services.scheduler: cron evaluation, job isolation and start/stop."""

import asyncio
import unittest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from app.services.scheduler import SyncScheduler
from support import make_settings

FAR_FUTURE = datetime(2100, 1, 1, tzinfo=timezone.utc)


def _scheduler(snapshot_job: AsyncMock | None = None, **settings: object) -> SyncScheduler:
    orchestrator = MagicMock()
    orchestrator.run_scheduled = AsyncMock(return_value=None)
    return SyncScheduler(orchestrator, snapshot_job or AsyncMock(), make_settings(**settings))


class TestNextSnapshot(unittest.TestCase):
    def test_cron_is_evaluated_in_reference_zone(self) -> None:
        scheduler = _scheduler(REFERENCE_TIMEZONE="Asia/Taipei", SNAPSHOT_CRON="5 0 * * *")
        now = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)  # 20:00 in Taipei
        self.assertEqual(
            scheduler.next_snapshot_after(now),
            datetime(2024, 3, 10, 16, 5, tzinfo=timezone.utc),
        )

    def test_next_occurrence_is_strictly_after_now(self) -> None:
        scheduler = _scheduler(SNAPSHOT_CRON="5 0 * * *")
        now = datetime(2024, 3, 10, 0, 5, tzinfo=timezone.utc)
        self.assertEqual(
            scheduler.next_snapshot_after(now),
            datetime(2024, 3, 11, 0, 5, tzinfo=timezone.utc),
        )


class TestJobIsolation(unittest.TestCase):
    def test_sync_failure_is_logged(self) -> None:
        scheduler = _scheduler()
        scheduler._orchestrator.run_scheduled.side_effect = RuntimeError("sheets down")
        with self.assertLogs("app.services.scheduler", level="ERROR"):
            asyncio.run(scheduler._run_sync())

    def test_snapshot_failure_is_logged(self) -> None:
        scheduler = _scheduler(AsyncMock(side_effect=RuntimeError("db down")))
        with self.assertLogs("app.services.scheduler", level="ERROR"):
            asyncio.run(scheduler._run_snapshot())


class TestLifecycle(unittest.TestCase):
    def test_start_runs_due_snapshot_and_stops_cleanly(self) -> None:
        async def scenario() -> tuple[bool, bool, int, int]:
            ran = asyncio.Event()

            async def snapshot_job() -> None:
                ran.set()

            scheduler = _scheduler(AsyncMock(side_effect=snapshot_job))
            due = datetime(2000, 1, 1, tzinfo=timezone.utc)
            with patch.object(SyncScheduler, "next_snapshot_after", side_effect=[due, FAR_FUTURE]):
                await scheduler.start()
                running = scheduler.is_running
                await asyncio.wait_for(ran.wait(), timeout=2)
                await scheduler.stop()
            return (
                running,
                scheduler.is_running,
                scheduler._snapshot_job.await_count,
                scheduler._orchestrator.run_scheduled.await_count,
            )

        running, after_stop, snapshots, syncs = asyncio.run(scenario())
        self.assertTrue(running)
        self.assertFalse(after_stop)
        self.assertEqual(snapshots, 1)
        # First sync is one interval after start.
        self.assertEqual(syncs, 0)

    def test_stop_without_start_is_noop(self) -> None:
        asyncio.run(_scheduler().stop())


if __name__ == "__main__":
    unittest.main()
