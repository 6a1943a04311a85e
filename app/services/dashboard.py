"""Dashboard rollups: overall score and level, per-source breakdown, and header summary counts."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models import AlertRecord, BreachRecord, DeviceRecord, IdentityRiskRecord, SyncLogEntry
from app.schemas.dashboard import (
    BreakdownResponse,
    DashboardResponse,
    DataQuality,
    LastSyncInfo,
    SourceBreakdown,
    SourceStats,
    SummaryCounts,
    SummaryResponse,
)
from app.services.risk_config import RiskConfigStore, risk_color, risk_level_for
from app.services.stats import collect_source_stats, latest_sync_logs

# Display names used in data-quality warnings.
SOURCE_LABELS = {
    "kb4": "KB4",
    "ncm": "NCM",
    "edr": "EDR",
    "hibp": "HIBP",
}


def _timestamp(now: datetime | None = None) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def check_data_quality(session: Session, stats: SourceStats) -> DataQuality:
    """Warn about empty sources and sources whose most recent sync failed."""
    totals = {
        "kb4": stats.kb4.total_users,
        "ncm": stats.ncm.total_devices,
        "edr": stats.edr.total_alerts,
        "hibp": stats.hibp.total_breaches,
    }
    warnings = [f"{SOURCE_LABELS[s]}: no data" for s, total in totals.items() if total == 0]
    for source, entry in latest_sync_logs(session).items():
        if entry.status == "error":
            warnings.append(f"{SOURCE_LABELS[source]}: last sync failed ({entry.error or 'unknown error'})")
    return DataQuality(has_data=any(totals.values()), warnings=warnings)


def compute_dashboard(
    session: Session,
    store: RiskConfigStore,
    timezone_name: str = "UTC",
    now: datetime | None = None,
) -> DashboardResponse:
    """Score every source with the live configuration and classify the overall score."""
    config = store.get_config()
    stats, overall = collect_source_stats(session, config, ZoneInfo(timezone_name), now)
    level = risk_level_for(overall, config.thresholds)
    return DashboardResponse(
        timestamp=_timestamp(now),
        overall_risk_score=overall,
        risk_level=level,
        risk_color=risk_color(level),
        weights=config.weights,
        sources=stats,
        data_quality=check_data_quality(session, stats),
    )


def compute_breakdown(
    session: Session,
    store: RiskConfigStore,
    timezone_name: str = "UTC",
    now: datetime | None = None,
) -> BreakdownResponse:
    """Each source's raw sub-score, weight and weighted contribution."""
    config = store.get_config()
    stats, _ = collect_source_stats(session, config, ZoneInfo(timezone_name), now)
    w = config.weights

    def entry(weight: float, score: float, factors: dict[str, float]) -> SourceBreakdown:
        return SourceBreakdown(
            weight=weight, raw_score=score, weighted_score=score * weight, factors=factors
        )

    return BreakdownResponse(
        timestamp=_timestamp(now),
        breakdown={
            "kb4": entry(
                w.kb4,
                stats.kb4.score,
                {
                    "risk_percentage": stats.kb4.risk_percentage,
                    "avg_risk_score": stats.kb4.avg_risk_score,
                },
            ),
            "ncm": entry(
                w.ncm,
                stats.ncm.score,
                {
                    "critical_percentage": stats.ncm.critical_percentage,
                    "avg_max_cvss": stats.ncm.avg_max_cvss,
                },
            ),
            "edr": entry(
                w.edr,
                stats.edr.score,
                {
                    "pending_percentage": stats.edr.pending_percentage,
                    "high_severity_percentage": stats.edr.high_severity_percentage,
                },
            ),
            "hibp": entry(w.hibp, stats.hibp.score, {"pending_count": stats.hibp.pending_count}),
        },
        calculation_factors=config.factors,
    )


def compute_summary(session: Session, now: datetime | None = None) -> SummaryResponse:
    """Cheap counts for the header bar plus the newest sync log entry."""
    active_users = session.scalar(
        select(func.count()).select_from(IdentityRiskRecord).where(IdentityRiskRecord.status == "active")
    )
    devices = session.scalar(select(func.count()).select_from(DeviceRecord))
    edr_new, edr_investigating = session.execute(
        select(
            func.count().filter(AlertRecord.status == "new"),
            func.count().filter(AlertRecord.status == "investigating"),
        ).select_from(AlertRecord)
    ).one()
    hibp_new = session.scalar(
        select(func.count()).select_from(BreachRecord).where(BreachRecord.status == "new")
    )
    last = session.scalars(
        select(SyncLogEntry).order_by(SyncLogEntry.created_at.desc(), SyncLogEntry.id.desc()).limit(1)
    ).first()
    return SummaryResponse(
        timestamp=_timestamp(now),
        counts=SummaryCounts(
            kb4_users=active_users or 0,
            ncm_devices=devices or 0,
            edr_pending_alerts=(edr_new or 0) + (edr_investigating or 0),
            edr_new_alerts=edr_new or 0,
            hibp_new_breaches=hibp_new or 0,
        ),
        last_sync=LastSyncInfo(at=last.created_at.isoformat(), status=last.status) if last else None,
    )
