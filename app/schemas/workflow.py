"""Request/response schemas for analyst workflow updates on alerts and breaches."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.sheets import AlertStatus, BreachStatus


class AlertStatusUpdate(BaseModel):
    status: AlertStatus
    assigned_to: str | None = Field(default=None, max_length=255)


class BreachStatusUpdate(BaseModel):
    status: BreachStatus


class AlertItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    severity: str
    detected_at: datetime
    hostname: str
    ioa_name: str
    domain: str | None = None
    file_sha256: str | None = None
    file_path: str | None = None
    vt_verdict: str | None = None
    status: str
    assigned_to: str | None = None
    resolved_at: datetime | None = None


class BreachItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    domain: str
    email: str
    alias: str | None = None
    breach_name: str
    breach_date: datetime | None = None
    discovered_at: datetime
    status: str


class AlertBulkStatusUpdate(AlertStatusUpdate):
    ids: list[int] = Field(..., min_length=1, max_length=1000)


class BreachBulkStatusUpdate(BreachStatusUpdate):
    ids: list[int] = Field(..., min_length=1, max_length=1000)


class BulkUpdateResponse(BaseModel):
    updated: int
