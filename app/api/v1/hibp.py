"""Breach workflow endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps import get_cache
from app.core.database import get_db
from app.schemas.workflow import BreachBulkStatusUpdate, BreachItem, BreachStatusUpdate, BulkUpdateResponse
from app.services.cache import MemoryCache
from app.services.workflow import RecordNotFoundError, bulk_update_breach_status, update_breach_status

router = APIRouter()


@router.patch("/breaches/{breach_id}", response_model=BreachItem)
async def patch_breach(
    breach_id: int,
    body: BreachStatusUpdate,
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[MemoryCache, Depends(get_cache)],
) -> BreachItem:
    try:
        breach = update_breach_status(db, breach_id, body.status)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    await cache.invalidate_source("hibp")
    return BreachItem.model_validate(breach)


@router.post("/breaches/bulk-status", response_model=BulkUpdateResponse)
async def post_breaches_bulk_status(
    body: BreachBulkStatusUpdate,
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[MemoryCache, Depends(get_cache)],
) -> BulkUpdateResponse:
    try:
        updated = bulk_update_breach_status(db, body.ids, body.status)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    await cache.invalidate_source("hibp")
    return BulkUpdateResponse(updated=updated)
