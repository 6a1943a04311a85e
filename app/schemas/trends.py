"""Pydantic schemas for daily snapshots and week-over-week comparison."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field


class DailySnapshotItem(BaseModel):
    """One persisted daily rollup."""

    model_config = ConfigDict(from_attributes=True)

    date: dt.date
    kb4_total_users: int
    kb4_high_risk_users: int
    kb4_avg_risk_score: float
    kb4_avg_phish_prone_rate: float
    ncm_total_devices: int
    ncm_p0_devices: int
    ncm_p1_devices: int
    ncm_total_cves: int
    edr_total_alerts: int
    edr_high_alerts: int
    edr_pending_alerts: int
    edr_resolved_alerts: int
    hibp_total_breaches: int
    hibp_new_breaches: int
    hibp_pending_breaches: int
    overall_risk_score: int


class TrendPeriod(BaseModel):
    start: dt.date
    end: dt.date
    days: int


class DailyTrendsResponse(BaseModel):
    data: list[DailySnapshotItem] = Field(default_factory=list)
    period: TrendPeriod


class MetricChange(BaseModel):
    """Current vs previous value; change is a whole percentage."""

    current: float
    previous: float
    change: int


class ComparisonResponse(BaseModel):
    """Today's snapshot compared with the snapshot seven days earlier."""

    risk_score: MetricChange
    kb4_high_risk: MetricChange
    ncm_p0: MetricChange
    edr_pending: MetricChange
    hibp_new: MetricChange


# Per-series projections of daily_snapshots; validation aliases name the snapshot columns.


class _SeriesPoint(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    date: dt.date


class RiskScorePoint(_SeriesPoint):
    risk_score: int = Field(validation_alias="overall_risk_score")


class Kb4TrendPoint(_SeriesPoint):
    total_users: int = Field(validation_alias="kb4_total_users")
    high_risk_users: int = Field(validation_alias="kb4_high_risk_users")
    avg_risk_score: float = Field(validation_alias="kb4_avg_risk_score")
    avg_phish_prone_rate: float = Field(validation_alias="kb4_avg_phish_prone_rate")


class NcmTrendPoint(_SeriesPoint):
    total_devices: int = Field(validation_alias="ncm_total_devices")
    p0_devices: int = Field(validation_alias="ncm_p0_devices")
    p1_devices: int = Field(validation_alias="ncm_p1_devices")
    total_cves: int = Field(validation_alias="ncm_total_cves")


class EdrTrendPoint(_SeriesPoint):
    total_alerts: int = Field(validation_alias="edr_total_alerts")
    high_alerts: int = Field(validation_alias="edr_high_alerts")
    pending_alerts: int = Field(validation_alias="edr_pending_alerts")
    resolved_alerts: int = Field(validation_alias="edr_resolved_alerts")


class HibpTrendPoint(_SeriesPoint):
    total_breaches: int = Field(validation_alias="hibp_total_breaches")
    new_breaches: int = Field(validation_alias="hibp_new_breaches")
    pending_breaches: int = Field(validation_alias="hibp_pending_breaches")
