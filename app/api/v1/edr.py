"""Alert workflow endpoints (status and assignee are analyst-owned)."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps import get_cache
from app.core.database import get_db
from app.schemas.workflow import AlertBulkStatusUpdate, AlertItem, AlertStatusUpdate, BulkUpdateResponse
from app.services.cache import MemoryCache
from app.services.workflow import RecordNotFoundError, bulk_update_alert_status, update_alert_status

router = APIRouter()


@router.patch("/alerts/{alert_id}", response_model=AlertItem)
async def patch_alert(
    alert_id: int,
    body: AlertStatusUpdate,
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[MemoryCache, Depends(get_cache)],
) -> AlertItem:
    """Set an alert's status and optionally its assignee. Closing statuses stamp resolved_at."""
    try:
        alert = update_alert_status(db, alert_id, body.status, body.assigned_to)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    await cache.invalidate_source("edr")
    return AlertItem.model_validate(alert)


@router.post("/alerts/bulk-status", response_model=BulkUpdateResponse)
async def post_alerts_bulk_status(
    body: AlertBulkStatusUpdate,
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[MemoryCache, Depends(get_cache)],
) -> BulkUpdateResponse:
    try:
        updated = bulk_update_alert_status(db, body.ids, body.status, body.assigned_to)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    await cache.invalidate_source("edr")
    return BulkUpdateResponse(updated=updated)
