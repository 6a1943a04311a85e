"""Risk scoring engine: per-source sub-scores and the weighted overall score.

Pure functions over aggregate counts; no database access. Every sub-score and the overall score
is clamped to [0, 100], including degenerate inputs (zero totals, NaN averages).
"""

import math
from dataclasses import dataclass, field

from app.schemas.dashboard import (
    AlertSeverityCounts,
    AlertStats,
    AlertStatusCounts,
    BreachStats,
    BreachStatusCounts,
    DevicePriorityCounts,
    DeviceStats,
    IdentityRiskStats,
    SourceStats,
)
from app.schemas.risk import RiskConfig, RiskFactors, RiskWeights

SCORE_MIN = 0.0
SCORE_MAX = 100.0


@dataclass(frozen=True)
class IdentityAggregates:
    """Counts over active identities; high_risk meets either configured threshold."""

    total: int = 0
    high_risk: int = 0
    avg_risk_score: float | None = None
    avg_phish_prone_rate: float | None = None


@dataclass(frozen=True)
class DeviceAggregates:
    total: int = 0
    p0: int = 0
    p1: int = 0
    p3: int = 0
    avg_max_cvss: float | None = None
    total_cve_instances: int = 0


@dataclass(frozen=True)
class AlertAggregates:
    total: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    by_severity: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class BreachAggregates:
    total: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    recent: int = 0
    new_today: int = 0


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round halves away from zero for positives (2.5 -> 3), unlike round()'s banker's rounding."""
    if not math.isfinite(value):
        return 0.0
    scale = 10**ndigits
    return math.floor(value * scale + 0.5) / scale


def percentage(part: int, total: int) -> int:
    """Whole-number percentage of part in total; 0 when total is 0."""
    if total <= 0:
        return 0
    return int(round_half_up(part / total * 100))


def clamp_score(value: float) -> float:
    if not math.isfinite(value):
        return SCORE_MIN
    return max(SCORE_MIN, min(SCORE_MAX, value))


def score_identity_risk(agg: IdentityAggregates, factors: RiskFactors) -> IdentityRiskStats:
    """min(100, highRiskPct * kb4RiskPercentageMultiplier + avgRiskScore * kb4AvgScoreWeight)."""
    avg_risk_score = round_half_up(agg.avg_risk_score or 0.0, 2)
    avg_phish = round_half_up(agg.avg_phish_prone_rate or 0.0, 2)
    risk_percentage = percentage(agg.high_risk, agg.total)
    score = clamp_score(
        risk_percentage * factors.kb4RiskPercentageMultiplier
        + avg_risk_score * factors.kb4AvgScoreWeight
    )
    return IdentityRiskStats(
        total_users=agg.total,
        high_risk_users=agg.high_risk,
        avg_risk_score=avg_risk_score,
        avg_phish_prone_rate=avg_phish,
        risk_percentage=risk_percentage,
        score=score,
    )


def score_devices(agg: DeviceAggregates, factors: RiskFactors) -> DeviceStats:
    """min(100, criticalPct * ncmCriticalPercentageMultiplier + avgMaxCvss * ncmCvssMultiplier)."""
    avg_max_cvss = round_half_up(agg.avg_max_cvss or 0.0, 1)
    critical_percentage = percentage(agg.p0, agg.total)
    score = clamp_score(
        critical_percentage * factors.ncmCriticalPercentageMultiplier
        + avg_max_cvss * factors.ncmCvssMultiplier
    )
    return DeviceStats(
        total_devices=agg.total,
        by_priority=DevicePriorityCounts(
            p0_immediate=agg.p0, p1_next_cycle=agg.p1, p3_monitor=agg.p3
        ),
        avg_max_cvss=avg_max_cvss,
        total_cve_instances=agg.total_cve_instances,
        critical_percentage=critical_percentage,
        score=score,
    )


def score_alerts(agg: AlertAggregates, factors: RiskFactors) -> AlertStats:
    """min(100, pendingPct * edrPendingWeight + highSeverityPct * edrHighSeverityWeight)."""
    by_status = AlertStatusCounts(
        new=agg.by_status.get("new", 0),
        investigating=agg.by_status.get("investigating", 0),
        resolved=agg.by_status.get("resolved", 0),
        false_positive=agg.by_status.get("false_positive", 0),
    )
    by_severity = AlertSeverityCounts(
        critical=agg.by_severity.get("Critical", 0),
        high=agg.by_severity.get("High", 0),
        medium=agg.by_severity.get("Medium", 0),
        low=agg.by_severity.get("Low", 0),
    )
    pending_count = by_status.new + by_status.investigating
    pending_percentage = percentage(pending_count, agg.total)
    high_severity_percentage = percentage(by_severity.critical + by_severity.high, agg.total)
    score = clamp_score(
        pending_percentage * factors.edrPendingWeight
        + high_severity_percentage * factors.edrHighSeverityWeight
    )
    return AlertStats(
        total_alerts=agg.total,
        by_status=by_status,
        by_severity=by_severity,
        pending_count=pending_count,
        pending_percentage=pending_percentage,
        high_severity_percentage=high_severity_percentage,
        score=score,
    )


def score_breaches(agg: BreachAggregates, factors: RiskFactors) -> BreachStats:
    """min(100, count of status 'new' * hibpPendingMultiplier)."""
    by_status = BreachStatusCounts(
        new=agg.by_status.get("new", 0),
        notified=agg.by_status.get("notified", 0),
        password_reset=agg.by_status.get("password_reset", 0),
        resolved=agg.by_status.get("resolved", 0),
    )
    score = clamp_score(by_status.new * factors.hibpPendingMultiplier)
    return BreachStats(
        total_breaches=agg.total,
        by_status=by_status,
        recent_breaches=agg.recent,
        new_today=agg.new_today,
        pending_count=by_status.new,
        score=score,
    )


def overall_score(stats: SourceStats, weights: RiskWeights) -> int:
    """round(sum of sub-score * source weight), clamped to [0, 100]."""
    total = (
        stats.kb4.score * weights.kb4
        + stats.ncm.score * weights.ncm
        + stats.edr.score * weights.edr
        + stats.hibp.score * weights.hibp
    )
    return int(clamp_score(round_half_up(total)))


def score_sources(
    identity: IdentityAggregates,
    devices: DeviceAggregates,
    alerts: AlertAggregates,
    breaches: BreachAggregates,
    config: RiskConfig,
) -> tuple[SourceStats, int]:
    """Score all four sources with one configuration snapshot; returns (stats, overall score)."""
    factors = config.factors
    stats = SourceStats(
        kb4=score_identity_risk(identity, factors),
        ncm=score_devices(devices, factors),
        edr=score_alerts(alerts, factors),
        hibp=score_breaches(breaches, factors),
    )
    return stats, overall_score(stats, config.weights)
