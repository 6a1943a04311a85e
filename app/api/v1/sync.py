"""Sync endpoints: manual trigger, orchestrator status and the audit log."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.api.deps import get_orchestrator
from app.core.database import get_db
from app.schemas.sync import SOURCE_IDS, SourceId, SyncAllResult, SyncLogsResponse, SyncResult, SyncStatus
from app.services.sync_orchestrator import SyncOrchestrator, list_sync_logs

router = APIRouter()


@router.post("/{source}", response_model=SyncResult | SyncAllResult)
async def post_sync(
    source: str,
    orchestrator: Annotated[SyncOrchestrator, Depends(get_orchestrator)],
) -> SyncResult | SyncAllResult:
    """
    Run a sync now. source is "all" or one of kb4, ncm, edr, hibp.

    Manual runs never skip, even while a scheduled run is in flight. Source failures are
    reported in the result body, not as HTTP errors.
    """
    if source != "all" and source not in SOURCE_IDS:
        raise HTTPException(status_code=404, detail=f"Unknown sync source: {source}")
    return await orchestrator.run_sync(source)


@router.get("/status", response_model=SyncStatus)
async def get_sync_status(
    orchestrator: Annotated[SyncOrchestrator, Depends(get_orchestrator)],
) -> SyncStatus:
    return orchestrator.status


@router.get("/logs", response_model=SyncLogsResponse)
async def get_sync_logs(
    db: Annotated[Session, Depends(get_db)],
    source: SourceId | None = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> SyncLogsResponse:
    """Newest-first sync audit rows."""
    return SyncLogsResponse(logs=list_sync_logs(db, source=source, limit=limit))
