"""Daily snapshot capture and the trend queries built on it."""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from app.core.database import upsert_insert
from app.models import DailySnapshot
from app.schemas.trends import (
    ComparisonResponse,
    DailySnapshotItem,
    DailyTrendsResponse,
    EdrTrendPoint,
    HibpTrendPoint,
    Kb4TrendPoint,
    MetricChange,
    NcmTrendPoint,
    RiskScorePoint,
    TrendPeriod,
)
from app.services.risk_config import RiskConfigStore
from app.services.risk_scoring import round_half_up
from app.services.stats import collect_source_stats, today_in

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

MAX_TREND_DAYS = 90
COMPARISON_OFFSET = timedelta(days=7)

TREND_SERIES: dict[str, type[BaseModel]] = {
    "risk-score": RiskScorePoint,
    "kb4": Kb4TrendPoint,
    "ncm": NcmTrendPoint,
    "edr": EdrTrendPoint,
    "hibp": HibpTrendPoint,
}

# Columns overwritten when the same date is captured again; date and created_at are kept.
SNAPSHOT_METRIC_COLUMNS = (
    "kb4_total_users",
    "kb4_high_risk_users",
    "kb4_avg_risk_score",
    "kb4_avg_phish_prone_rate",
    "ncm_total_devices",
    "ncm_p0_devices",
    "ncm_p1_devices",
    "ncm_total_cves",
    "edr_total_alerts",
    "edr_high_alerts",
    "edr_pending_alerts",
    "edr_resolved_alerts",
    "hibp_total_breaches",
    "hibp_new_breaches",
    "hibp_pending_breaches",
    "overall_risk_score",
)


def capture_snapshot(
    session: Session,
    store: RiskConfigStore,
    timezone_name: str = "UTC",
    now: datetime | None = None,
) -> DailySnapshotItem:
    """
    Record today's aggregate statistics and overall score.

    "Today" is the calendar date of now in timezone_name. The write is an atomic upsert on
    date, so repeated or concurrent captures for one date leave exactly one row holding the
    latest values.
    """
    now = now or datetime.now(timezone.utc)
    tz = ZoneInfo(timezone_name)
    day = today_in(tz, now)
    stats, overall = collect_source_stats(session, store.get_config(), tz, now)

    values = {
        "kb4_total_users": stats.kb4.total_users,
        "kb4_high_risk_users": stats.kb4.high_risk_users,
        "kb4_avg_risk_score": stats.kb4.avg_risk_score,
        "kb4_avg_phish_prone_rate": stats.kb4.avg_phish_prone_rate,
        "ncm_total_devices": stats.ncm.total_devices,
        "ncm_p0_devices": stats.ncm.by_priority.p0_immediate,
        "ncm_p1_devices": stats.ncm.by_priority.p1_next_cycle,
        "ncm_total_cves": stats.ncm.total_cve_instances,
        "edr_total_alerts": stats.edr.total_alerts,
        "edr_high_alerts": stats.edr.by_severity.critical + stats.edr.by_severity.high,
        "edr_pending_alerts": stats.edr.pending_count,
        "edr_resolved_alerts": stats.edr.by_status.resolved,
        "hibp_total_breaches": stats.hibp.total_breaches,
        "hibp_new_breaches": stats.hibp.new_today,
        "hibp_pending_breaches": stats.hibp.pending_count,
        "overall_risk_score": overall,
    }
    stmt = upsert_insert(session, DailySnapshot).values(date=day, updated_at=now, **values)
    stmt = stmt.on_conflict_do_update(
        index_elements=["date"],
        set_={
            **{col: stmt.excluded[col] for col in SNAPSHOT_METRIC_COLUMNS},
            "updated_at": stmt.excluded.updated_at,
        },
    )
    session.execute(stmt)
    session.commit()
    logger.info(
        "Daily snapshot captured",
        extra={"date": day.isoformat(), "overall_risk_score": overall},
    )
    return DailySnapshotItem(date=day, **values)


def _snapshots_since(session: Session, days: int, today: date) -> tuple[date, int, list[DailySnapshot]]:
    days = max(1, min(days, MAX_TREND_DAYS))
    start = today - timedelta(days=days)
    rows = session.scalars(
        select(DailySnapshot)
        .where(DailySnapshot.date >= start, DailySnapshot.date <= today)
        .order_by(DailySnapshot.date.asc())
    ).all()
    return start, days, list(rows)


def list_snapshots(session: Session, days: int, today: date) -> DailyTrendsResponse:
    """Snapshots from the last `days` days (at most 90), oldest first."""
    start, days, rows = _snapshots_since(session, days, today)
    return DailyTrendsResponse(
        data=[DailySnapshotItem.model_validate(r) for r in rows],
        period=TrendPeriod(start=start, end=today, days=days),
    )


def trend_series(session: Session, series: str, days: int, today: date) -> list[BaseModel]:
    """One series ("risk-score" or a source tag) over the same window as list_snapshots."""
    point = TREND_SERIES[series]
    _, _, rows = _snapshots_since(session, days, today)
    return [point.model_validate(r) for r in rows]


def calc_change(current: float, previous: float) -> int:
    """Whole-number percent change; 100 when growing from zero, 0 when both are zero."""
    if previous == 0:
        return 100 if current > 0 else 0
    return int(round_half_up((current - previous) / previous * 100))


def _metric(current: float, previous: float) -> MetricChange:
    return MetricChange(current=current, previous=previous, change=calc_change(current, previous))


def compare_snapshots(session: Session, today: date) -> ComparisonResponse | None:
    """Today's snapshot against the one seven days earlier; None if either is missing."""
    week_ago = today - COMPARISON_OFFSET
    by_date = {
        s.date: s
        for s in session.scalars(
            select(DailySnapshot).where(DailySnapshot.date.in_([today, week_ago]))
        )
    }
    current, previous = by_date.get(today), by_date.get(week_ago)
    if current is None or previous is None:
        return None
    return ComparisonResponse(
        risk_score=_metric(current.overall_risk_score, previous.overall_risk_score),
        kb4_high_risk=_metric(current.kb4_high_risk_users, previous.kb4_high_risk_users),
        ncm_p0=_metric(current.ncm_p0_devices, previous.ncm_p0_devices),
        edr_pending=_metric(current.edr_pending_alerts, previous.edr_pending_alerts),
        hibp_new=_metric(current.hibp_new_breaches, previous.hibp_new_breaches),
    )


def run_snapshot_job(
    session_factory: sessionmaker, store: RiskConfigStore, settings: "Settings"
) -> DailySnapshotItem:
    """Capture today's snapshot in a fresh session (scheduler and CLI)."""
    with session_factory() as session:
        return capture_snapshot(session, store, settings.REFERENCE_TIMEZONE)
