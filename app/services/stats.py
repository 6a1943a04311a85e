"""Aggregate queries over the synced tables; inputs to the risk scoring engine."""

from datetime import date, datetime, time, timedelta, timezone, tzinfo

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from app.models import AlertRecord, BreachRecord, DeviceRecord, IdentityRiskRecord, SyncLogEntry
from app.schemas.dashboard import SourceStats
from app.schemas.risk import RiskConfig, RiskThresholds
from app.schemas.sheets import ALERT_SEVERITY_VALUES, ALERT_STATUS_VALUES, BREACH_STATUS_VALUES
from app.schemas.sync import SOURCE_IDS
from app.services.risk_scoring import (
    AlertAggregates,
    BreachAggregates,
    DeviceAggregates,
    IdentityAggregates,
    score_sources,
)

# Breaches discovered within this window count as recent.
RECENT_BREACH_WINDOW = timedelta(days=7)


def start_of_day(day: date, tz: tzinfo) -> datetime:
    """Midnight of day in tz, as an aware UTC datetime."""
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)


def today_in(tz: tzinfo, now: datetime | None = None) -> date:
    """Calendar date of now (default: current time) in tz."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(tz).date()


def _int(value: object) -> int:
    return int(value or 0)


def _float_or_none(value: object) -> float | None:
    return None if value is None else float(value)


def identity_aggregates(session: Session, thresholds: RiskThresholds) -> IdentityAggregates:
    """Counts and averages over active identities."""
    u = IdentityRiskRecord
    active = u.status == "active"
    high_risk = or_(
        u.current_risk_score >= thresholds.kb4HighRiskScore,
        u.phish_prone_percentage >= thresholds.kb4HighPhishRate,
    )
    total, high, avg_score, avg_phish = session.execute(
        select(
            func.count().filter(active),
            func.count().filter(and_(active, high_risk)),
            func.avg(u.current_risk_score).filter(active),
            func.avg(u.phish_prone_percentage).filter(active),
        ).select_from(u)
    ).one()
    return IdentityAggregates(
        total=_int(total),
        high_risk=_int(high),
        avg_risk_score=_float_or_none(avg_score),
        avg_phish_prone_rate=_float_or_none(avg_phish),
    )


def device_aggregates(session: Session) -> DeviceAggregates:
    d = DeviceRecord
    total, p0, p1, p3, avg_cvss, cves = session.execute(
        select(
            func.count(),
            func.count().filter(d.update_priority == "P0-Immediate"),
            func.count().filter(d.update_priority == "P1-NextCycle"),
            func.count().filter(d.update_priority == "P3-Monitor"),
            func.avg(d.max_cvss),
            func.coalesce(func.sum(d.total_cve_instances), 0),
        ).select_from(d)
    ).one()
    return DeviceAggregates(
        total=_int(total),
        p0=_int(p0),
        p1=_int(p1),
        p3=_int(p3),
        avg_max_cvss=_float_or_none(avg_cvss),
        total_cve_instances=_int(cves),
    )


def alert_aggregates(session: Session) -> AlertAggregates:
    a = AlertRecord
    columns = [func.count()]
    columns += [func.count().filter(a.status == s) for s in ALERT_STATUS_VALUES]
    columns += [func.count().filter(a.severity == s) for s in ALERT_SEVERITY_VALUES]
    row = session.execute(select(*columns).select_from(a)).one()
    n_status = len(ALERT_STATUS_VALUES)
    return AlertAggregates(
        total=_int(row[0]),
        by_status={s: _int(v) for s, v in zip(ALERT_STATUS_VALUES, row[1 : 1 + n_status])},
        by_severity={s: _int(v) for s, v in zip(ALERT_SEVERITY_VALUES, row[1 + n_status :])},
    )


def breach_aggregates(session: Session, tz: tzinfo, now: datetime | None = None) -> BreachAggregates:
    """Status counts plus breaches discovered in the last 7 days and since midnight (tz)."""
    now = now or datetime.now(timezone.utc)
    b = BreachRecord
    recent_since = now - RECENT_BREACH_WINDOW
    today_since = start_of_day(today_in(tz, now), tz)
    columns = [
        func.count(),
        func.count().filter(b.discovered_at >= recent_since),
        func.count().filter(b.discovered_at >= today_since),
    ]
    columns += [func.count().filter(b.status == s) for s in BREACH_STATUS_VALUES]
    row = session.execute(select(*columns).select_from(b)).one()
    return BreachAggregates(
        total=_int(row[0]),
        recent=_int(row[1]),
        new_today=_int(row[2]),
        by_status={s: _int(v) for s, v in zip(BREACH_STATUS_VALUES, row[3:])},
    )


def collect_source_stats(
    session: Session, config: RiskConfig, tz: tzinfo, now: datetime | None = None
) -> tuple[SourceStats, int]:
    """Query all four sources and score them; returns (stats, overall score)."""
    return score_sources(
        identity_aggregates(session, config.thresholds),
        device_aggregates(session),
        alert_aggregates(session),
        breach_aggregates(session, tz, now),
        config,
    )


def latest_sync_logs(session: Session) -> dict[str, SyncLogEntry]:
    """Newest sync_logs row per source (sources never synced are absent)."""
    latest: dict[str, SyncLogEntry] = {}
    for source in SOURCE_IDS:
        entry = session.scalars(
            select(SyncLogEntry)
            .where(SyncLogEntry.source == source)
            .order_by(SyncLogEntry.created_at.desc(), SyncLogEntry.id.desc())
            .limit(1)
        ).first()
        if entry is not None:
            latest[source] = entry
    return latest
