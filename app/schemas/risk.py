"""Pydantic schemas for risk scoring configuration: source weights, thresholds and factors."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

RiskLevel = Literal["critical", "high", "medium", "low", "minimal"]

RISK_LEVEL_COLORS: dict[str, str] = {
    "critical": "#dc2626",
    "high": "#ea580c",
    "medium": "#ca8a04",
    "low": "#16a34a",
    "minimal": "#22c55e",
}
UNKNOWN_RISK_COLOR = "#6b7280"


class RiskWeights(BaseModel):
    """Per-source weight of the sub-score. Any non-negative values are accepted; stored weights sum to 1."""

    kb4: float = Field(default=0.20, ge=0)
    ncm: float = Field(default=0.35, ge=0)
    edr: float = Field(default=0.30, ge=0)
    hibp: float = Field(default=0.15, ge=0)

    def total(self) -> float:
        return self.kb4 + self.ncm + self.edr + self.hibp


class RiskThresholds(BaseModel):
    """Cut-offs for high-risk identities, device CVSS bands and the risk-level step function."""

    kb4HighRiskScore: float = 50
    kb4HighPhishRate: float = 20
    ncmCriticalCvss: float = 9.0
    ncmHighCvss: float = 7.0
    criticalScore: float = 80
    highScore: float = 60
    mediumScore: float = 40
    lowScore: float = 20


class RiskFactors(BaseModel):
    """Multipliers applied to each source's statistics when computing its sub-score."""

    kb4RiskPercentageMultiplier: float = Field(default=2, ge=0)
    kb4AvgScoreWeight: float = Field(default=1, ge=0)
    ncmCriticalPercentageMultiplier: float = Field(default=3, ge=0)
    ncmCvssMultiplier: float = Field(default=8, ge=0)
    edrPendingWeight: float = Field(default=1, ge=0)
    edrHighSeverityWeight: float = Field(default=1, ge=0)
    hibpPendingMultiplier: float = Field(default=10, ge=0)


class RiskConfig(BaseModel):
    """Full risk configuration in effect."""

    weights: RiskWeights = Field(default_factory=RiskWeights)
    thresholds: RiskThresholds = Field(default_factory=RiskThresholds)
    factors: RiskFactors = Field(default_factory=RiskFactors)


class WeightsUpdateRequest(BaseModel):
    """Partial weights; omitted sources keep their current weight."""

    model_config = ConfigDict(extra="forbid")

    kb4: float | None = None
    ncm: float | None = None
    edr: float | None = None
    hibp: float | None = None


class ThresholdsUpdateRequest(BaseModel):
    """Partial thresholds; omitted keys keep their current value."""

    model_config = ConfigDict(extra="forbid")

    kb4HighRiskScore: float | None = None
    kb4HighPhishRate: float | None = None
    ncmCriticalCvss: float | None = None
    ncmHighCvss: float | None = None
    criticalScore: float | None = None
    highScore: float | None = None
    mediumScore: float | None = None
    lowScore: float | None = None


class RiskConfigResponse(BaseModel):
    """Current configuration for GET /dashboard/config."""

    timestamp: str
    config: RiskConfig


class WeightsUpdateResponse(BaseModel):
    """Stored weights after a runtime update (already normalized)."""

    timestamp: str
    weights: RiskWeights
    message: str = "Risk weights updated successfully"
