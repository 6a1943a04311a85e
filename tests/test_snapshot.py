"""Snapshot capture, trend queries and dashboard rollups against in-memory SQLite."""

import unittest
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import func, select

from app.models import AlertRecord, BreachRecord, DailySnapshot, DeviceRecord, IdentityRiskRecord, SyncLogEntry
from app.services.dashboard import compute_breakdown, compute_dashboard, compute_summary
from app.services.risk_config import RiskConfigStore
from app.services.snapshot import calc_change, capture_snapshot, compare_snapshots, list_snapshots, trend_series
from app.services.stats import breach_aggregates, start_of_day
from support import memory_session_factory

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def _user(user_id: str, score: float, phish: float = 0.0, status: str = "active") -> IdentityRiskRecord:
    return IdentityRiskRecord(
        user_id=user_id,
        email=f"{user_id}@x.com",
        status=status,
        current_risk_score=score,
        phish_prone_percentage=phish,
        first_seen_at=NOW,
        synced_at=NOW,
    )


def _breach(email: str, name: str, discovered_at: datetime, status: str = "new") -> BreachRecord:
    return BreachRecord(
        email=email, breach_name=name, domain="x.com", discovered_at=discovered_at, status=status, synced_at=NOW
    )


class SnapshotTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = memory_session_factory()
        self.session = self.factory()
        self.store = RiskConfigStore()

    def tearDown(self) -> None:
        self.session.close()

    def seed(self) -> None:
        self.session.add_all(
            [
                _user("u1", 75, 30),
                _user("u2", 10, 5),
                _user("u3", 90, 90, status="archived"),
                DeviceRecord(device_name="router-1", device_ip="10.0.0.1", update_priority="P0-Immediate", max_cvss=9.8, total_cve_instances=3, synced_at=NOW),
                DeviceRecord(device_name="sw-1", device_ip=None, update_priority="P3-Monitor", max_cvss=4.0, total_cve_instances=1, synced_at=NOW),
                AlertRecord(hostname="h1", detected_at=NOW, severity="Critical", status="new", synced_at=NOW),
                AlertRecord(hostname="h2", detected_at=NOW, severity="Low", status="resolved", synced_at=NOW),
                _breach("a@x.com", "Adobe", NOW - timedelta(hours=1)),
                _breach("b@x.com", "Adobe", NOW - timedelta(days=3), status="notified"),
                _breach("c@x.com", "Adobe", NOW - timedelta(days=30)),
            ]
        )
        self.session.commit()


class TestBreachAggregates(SnapshotTestCase):
    def test_recent_and_new_today_windows(self) -> None:
        self.seed()
        agg = breach_aggregates(self.session, timezone.utc, NOW)
        self.assertEqual(agg.total, 3)
        self.assertEqual(agg.recent, 2)
        self.assertEqual(agg.new_today, 1)
        self.assertEqual(agg.by_status["new"], 2)

    def test_start_of_day_in_reference_zone(self) -> None:
        from zoneinfo import ZoneInfo

        self.assertEqual(
            start_of_day(date(2024, 3, 10), ZoneInfo("Asia/Taipei")),
            datetime(2024, 3, 9, 16, 0, tzinfo=timezone.utc),
        )


class TestCaptureSnapshot(SnapshotTestCase):
    def test_captures_current_statistics(self) -> None:
        self.seed()
        snapshot = capture_snapshot(self.session, self.store, "UTC", NOW)

        self.assertEqual(snapshot.date, date(2024, 3, 10))
        self.assertEqual(snapshot.kb4_total_users, 2)
        self.assertEqual(snapshot.kb4_high_risk_users, 1)
        self.assertEqual(snapshot.ncm_total_devices, 2)
        self.assertEqual(snapshot.ncm_p0_devices, 1)
        self.assertEqual(snapshot.ncm_total_cves, 4)
        self.assertEqual(snapshot.edr_total_alerts, 2)
        self.assertEqual(snapshot.edr_high_alerts, 1)
        self.assertEqual(snapshot.edr_pending_alerts, 1)
        self.assertEqual(snapshot.edr_resolved_alerts, 1)
        self.assertEqual(snapshot.hibp_new_breaches, 1)
        self.assertEqual(snapshot.hibp_pending_breaches, 2)
        dashboard = compute_dashboard(self.session, self.store, "UTC", NOW)
        self.assertEqual(snapshot.overall_risk_score, dashboard.overall_risk_score)

    def test_same_day_capture_overwrites_single_row(self) -> None:
        capture_snapshot(self.session, self.store, "UTC", NOW)
        self.seed()
        second = capture_snapshot(self.session, self.store, "UTC", NOW + timedelta(hours=1))

        rows = self.session.scalars(select(DailySnapshot)).all()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].kb4_total_users, 2)
        self.assertEqual(rows[0].overall_risk_score, second.overall_risk_score)

    def test_different_days_create_separate_rows(self) -> None:
        capture_snapshot(self.session, self.store, "UTC", NOW)
        capture_snapshot(self.session, self.store, "UTC", NOW + timedelta(days=1))
        self.assertEqual(self.session.scalar(select(func.count()).select_from(DailySnapshot)), 2)

    def test_day_is_taken_in_reference_zone(self) -> None:
        late_utc = datetime(2024, 3, 10, 20, 0, tzinfo=timezone.utc)
        snapshot = capture_snapshot(self.session, self.store, "Asia/Taipei", late_utc)
        self.assertEqual(snapshot.date, date(2024, 3, 11))


class TestTrends(SnapshotTestCase):
    def add_snapshot(self, day: date, **values: int) -> None:
        self.session.add(DailySnapshot(date=day, **values))
        self.session.commit()

    def test_list_snapshots_ascending_within_window(self) -> None:
        today = date(2024, 3, 10)
        for offset in (0, 2, 5, 40):
            self.add_snapshot(today - timedelta(days=offset), overall_risk_score=offset)
        result = list_snapshots(self.session, 7, today)
        self.assertEqual([s.date for s in result.data], [date(2024, 3, 5), date(2024, 3, 8), today])
        self.assertEqual(result.period.days, 7)

    def test_list_snapshots_caps_days(self) -> None:
        self.assertEqual(list_snapshots(self.session, 365, date(2024, 3, 10)).period.days, 90)

    def test_trend_series_projects_snapshot_columns(self) -> None:
        today = date(2024, 3, 10)
        self.add_snapshot(today - timedelta(days=1), overall_risk_score=30, ncm_total_devices=4, ncm_p0_devices=1)
        self.add_snapshot(today, overall_risk_score=45, ncm_total_devices=6, ncm_p0_devices=2, ncm_total_cves=9)
        self.add_snapshot(today - timedelta(days=40), overall_risk_score=99)

        scores = trend_series(self.session, "risk-score", 7, today)
        self.assertEqual([(p.date, p.risk_score) for p in scores], [(date(2024, 3, 9), 30), (today, 45)])

        ncm = trend_series(self.session, "ncm", 7, today)
        self.assertEqual(
            ncm[-1].model_dump(),
            {"date": today, "total_devices": 6, "p0_devices": 2, "p1_devices": 0, "total_cves": 9},
        )

    def test_trend_series_covers_every_source(self) -> None:
        today = date(2024, 3, 10)
        self.add_snapshot(today, hibp_new_breaches=3, edr_pending_alerts=2, kb4_high_risk_users=1)
        self.assertEqual(trend_series(self.session, "hibp", 30, today)[0].new_breaches, 3)
        self.assertEqual(trend_series(self.session, "edr", 30, today)[0].pending_alerts, 2)
        self.assertEqual(trend_series(self.session, "kb4", 30, today)[0].high_risk_users, 1)

    def test_compare_snapshots(self) -> None:
        today = date(2024, 3, 10)
        self.add_snapshot(today, overall_risk_score=60, kb4_high_risk_users=5, ncm_p0_devices=0, edr_pending_alerts=3, hibp_new_breaches=0)
        self.add_snapshot(today - timedelta(days=7), overall_risk_score=40, kb4_high_risk_users=0, ncm_p0_devices=2, edr_pending_alerts=3, hibp_new_breaches=0)

        result = compare_snapshots(self.session, today)

        self.assertEqual(result.risk_score.change, 50)
        self.assertEqual(result.kb4_high_risk.change, 100)
        self.assertEqual(result.ncm_p0.change, -100)
        self.assertEqual(result.edr_pending.change, 0)
        self.assertEqual(result.hibp_new.change, 0)

    def test_compare_without_history_is_none(self) -> None:
        self.add_snapshot(date(2024, 3, 10), overall_risk_score=10)
        self.assertIsNone(compare_snapshots(self.session, date(2024, 3, 10)))

    def test_calc_change(self) -> None:
        self.assertEqual(calc_change(5, 0), 100)
        self.assertEqual(calc_change(0, 0), 0)
        self.assertEqual(calc_change(3, 2), 50)
        self.assertEqual(calc_change(1, 3), -67)


class TestDashboard(SnapshotTestCase):
    def test_empty_store_reports_no_data(self) -> None:
        result = compute_dashboard(self.session, self.store, "UTC", NOW)
        self.assertEqual(result.overall_risk_score, 0)
        self.assertEqual(result.risk_level, "minimal")
        self.assertFalse(result.data_quality.has_data)
        self.assertEqual(len(result.data_quality.warnings), 4)

    def test_failed_last_sync_is_warned(self) -> None:
        self.seed()
        self.session.add(SyncLogEntry(source="edr", status="error", record_count=0, duration_ms=5, error="boom"))
        self.session.commit()
        result = compute_dashboard(self.session, self.store, "UTC", NOW)
        self.assertTrue(result.data_quality.has_data)
        self.assertEqual(result.data_quality.warnings, ["EDR: last sync failed (boom)"])

    def test_dashboard_uses_live_weights(self) -> None:
        self.seed()
        self.store.update_weights({"kb4": 0, "ncm": 0, "edr": 0, "hibp": 1})
        result = compute_dashboard(self.session, self.store, "UTC", NOW)
        self.assertEqual(result.overall_risk_score, 20)
        self.assertEqual(result.risk_level, "low")

    def test_breakdown_weighted_scores(self) -> None:
        self.seed()
        result = compute_breakdown(self.session, self.store, "UTC", NOW)
        hibp = result.breakdown["hibp"]
        self.assertEqual(hibp.raw_score, 20.0)
        self.assertAlmostEqual(hibp.weighted_score, 20.0 * 0.15)

    def test_summary_counts_and_last_sync(self) -> None:
        self.seed()
        self.session.add(SyncLogEntry(source="kb4", status="success", record_count=3, duration_ms=5))
        self.session.commit()
        result = compute_summary(self.session, NOW)
        self.assertEqual(result.counts.kb4_users, 2)
        self.assertEqual(result.counts.ncm_devices, 2)
        self.assertEqual(result.counts.edr_pending_alerts, 1)
        self.assertEqual(result.counts.hibp_new_breaches, 2)
        self.assertEqual(result.last_sync.status, "success")


if __name__ == "__main__":
    unittest.main()
