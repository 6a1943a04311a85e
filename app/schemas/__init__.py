"""Pydantic request/response schemas."""

from app.schemas.dashboard import (
    BreakdownResponse,
    DashboardResponse,
    SourceStats,
    SummaryResponse,
)
from app.schemas.health import HealthResponse
from app.schemas.risk import (
    RiskConfig,
    RiskConfigResponse,
    RiskFactors,
    RiskLevel,
    RiskThresholds,
    RiskWeights,
)
from app.schemas.sheets import AlertRow, BreachRow, DeviceEntry, IdentityRiskRow
from app.schemas.sync import SourceId, SyncAllResult, SyncLogItem, SyncResult, SyncStatus
from app.schemas.trends import ComparisonResponse, DailySnapshotItem, DailyTrendsResponse
from app.schemas.workflow import AlertItem, BreachItem, BulkUpdateResponse

__all__ = [
    "AlertItem",
    "AlertRow",
    "BreachItem",
    "BreachRow",
    "BreakdownResponse",
    "BulkUpdateResponse",
    "ComparisonResponse",
    "DailySnapshotItem",
    "DailyTrendsResponse",
    "DashboardResponse",
    "DeviceEntry",
    "HealthResponse",
    "IdentityRiskRow",
    "RiskConfig",
    "RiskConfigResponse",
    "RiskFactors",
    "RiskLevel",
    "RiskThresholds",
    "RiskWeights",
    "SourceId",
    "SourceStats",
    "SummaryResponse",
    "SyncAllResult",
    "SyncLogItem",
    "SyncResult",
    "SyncStatus",
]
