"""Pydantic schemas for per-source statistics, the dashboard rollup and the score breakdown."""

from pydantic import BaseModel, Field

from app.schemas.risk import RiskFactors, RiskLevel, RiskWeights


class IdentityRiskStats(BaseModel):
    """Active-user statistics and sub-score for the phishing-awareness source."""

    total_users: int = 0
    high_risk_users: int = 0
    avg_risk_score: float = 0.0
    avg_phish_prone_rate: float = 0.0
    risk_percentage: int = 0
    score: float = Field(default=0.0, ge=0, le=100)


class DevicePriorityCounts(BaseModel):
    p0_immediate: int = 0
    p1_next_cycle: int = 0
    p3_monitor: int = 0


class DeviceStats(BaseModel):
    """Device statistics and sub-score for the vulnerability tracker."""

    total_devices: int = 0
    by_priority: DevicePriorityCounts = Field(default_factory=DevicePriorityCounts)
    avg_max_cvss: float = 0.0
    total_cve_instances: int = 0
    critical_percentage: int = 0
    score: float = Field(default=0.0, ge=0, le=100)


class AlertStatusCounts(BaseModel):
    new: int = 0
    investigating: int = 0
    resolved: int = 0
    false_positive: int = 0


class AlertSeverityCounts(BaseModel):
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


class AlertStats(BaseModel):
    """Alert statistics and sub-score for the endpoint-detection feed."""

    total_alerts: int = 0
    by_status: AlertStatusCounts = Field(default_factory=AlertStatusCounts)
    by_severity: AlertSeverityCounts = Field(default_factory=AlertSeverityCounts)
    pending_count: int = 0
    pending_percentage: int = 0
    high_severity_percentage: int = 0
    score: float = Field(default=0.0, ge=0, le=100)


class BreachStatusCounts(BaseModel):
    new: int = 0
    notified: int = 0
    password_reset: int = 0
    resolved: int = 0


class BreachStats(BaseModel):
    """Breach statistics and sub-score for the breached-credential monitor."""

    total_breaches: int = 0
    by_status: BreachStatusCounts = Field(default_factory=BreachStatusCounts)
    recent_breaches: int = 0
    new_today: int = 0
    pending_count: int = 0
    score: float = Field(default=0.0, ge=0, le=100)


class SourceStats(BaseModel):
    kb4: IdentityRiskStats
    ncm: DeviceStats
    edr: AlertStats
    hibp: BreachStats


class DataQuality(BaseModel):
    has_data: bool = False
    warnings: list[str] = Field(default_factory=list)


class DashboardResponse(BaseModel):
    """Overall risk score, level and the per-source statistics it was computed from."""

    timestamp: str
    overall_risk_score: int = Field(..., ge=0, le=100)
    risk_level: RiskLevel
    risk_color: str
    weights: RiskWeights
    sources: SourceStats
    data_quality: DataQuality


class SourceBreakdown(BaseModel):
    """One source's contribution to the overall score."""

    weight: float
    raw_score: float
    weighted_score: float
    factors: dict[str, float] = Field(default_factory=dict)


class BreakdownResponse(BaseModel):
    timestamp: str
    breakdown: dict[str, SourceBreakdown]
    calculation_factors: RiskFactors


class SummaryCounts(BaseModel):
    kb4_users: int = 0
    ncm_devices: int = 0
    edr_pending_alerts: int = 0
    edr_new_alerts: int = 0
    hibp_new_breaches: int = 0


class LastSyncInfo(BaseModel):
    at: str
    status: str


class SummaryResponse(BaseModel):
    """Lightweight counts for the header bar."""

    timestamp: str
    counts: SummaryCounts
    last_sync: LastSyncInfo | None = None
