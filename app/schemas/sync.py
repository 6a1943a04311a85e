"""Pydantic schemas for sync results, orchestrator status and the sync audit log."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SourceId = Literal["kb4", "ncm", "edr", "hibp"]

# Order is the order sources are run when syncing sequentially.
SOURCE_IDS: tuple[SourceId, ...] = ("kb4", "ncm", "edr", "hibp")

SyncLogStatus = Literal["success", "error"]


class SyncResult(BaseModel):
    """Outcome of one reconciler run."""

    success: bool = Field(..., description="True when the source was fetched and persisted.")
    count: int = Field(
        default=0,
        ge=0,
        description="Records processed; always 0 when success is False.",
    )
    duration_ms: int = Field(default=0, ge=0, description="Wall-clock duration in milliseconds.")
    error: str | None = Field(default=None, description="Failure message when success is False.")


class SyncAllResult(BaseModel):
    """Combined outcome of running every reconciler."""

    kb4: SyncResult
    ncm: SyncResult
    edr: SyncResult
    hibp: SyncResult
    total_duration_ms: int = Field(default=0, ge=0)

    @property
    def success(self) -> bool:
        return all(getattr(self, s).success for s in SOURCE_IDS)


class SyncStatus(BaseModel):
    """In-process orchestrator state; not persisted and reset on restart."""

    is_syncing: bool = False
    last_sync_time: datetime | None = None
    last_sync_result: SyncAllResult | None = None


class SyncLogItem(BaseModel):
    """One audit row from sync_logs."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    source: str
    status: SyncLogStatus
    record_count: int
    duration_ms: int
    error: str | None = None
    created_at: datetime


class SyncLogsResponse(BaseModel):
    """Newest-first page of sync audit rows."""

    logs: list[SyncLogItem] = Field(default_factory=list)
