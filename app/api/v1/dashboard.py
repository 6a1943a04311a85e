"""Dashboard endpoints: overall score, per-source breakdown, summary and risk configuration."""

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps import get_cache, get_risk_config_store
from app.core.config import get_settings
from app.core.database import get_db
from app.schemas.dashboard import BreakdownResponse, DashboardResponse, SummaryResponse
from app.schemas.risk import (
    RiskConfigResponse,
    RiskThresholds,
    ThresholdsUpdateRequest,
    WeightsUpdateRequest,
    WeightsUpdateResponse,
)
from app.services.cache import CacheKeys, MemoryCache
from app.services.dashboard import compute_breakdown, compute_dashboard, compute_summary
from app.services.risk_config import RiskConfigError, RiskConfigStore

router = APIRouter()


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    db: Annotated[Session, Depends(get_db)],
    store: Annotated[RiskConfigStore, Depends(get_risk_config_store)],
    cache: Annotated[MemoryCache, Depends(get_cache)],
) -> DashboardResponse:
    """Overall risk score and level with the per-source statistics behind it."""
    settings = get_settings()

    async def produce() -> DashboardResponse:
        return compute_dashboard(db, store, settings.REFERENCE_TIMEZONE)

    return await cache.wrap(CacheKeys.DASHBOARD, settings.CACHE_TTL_DASHBOARD_SEC, produce)


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[MemoryCache, Depends(get_cache)],
) -> SummaryResponse:
    settings = get_settings()

    async def produce() -> SummaryResponse:
        return compute_summary(db)

    return await cache.wrap(CacheKeys.SUMMARY, settings.CACHE_TTL_SUMMARY_SEC, produce)


@router.get("/breakdown", response_model=BreakdownResponse)
async def get_breakdown(
    db: Annotated[Session, Depends(get_db)],
    store: Annotated[RiskConfigStore, Depends(get_risk_config_store)],
    cache: Annotated[MemoryCache, Depends(get_cache)],
) -> BreakdownResponse:
    settings = get_settings()

    async def produce() -> BreakdownResponse:
        return compute_breakdown(db, store, settings.REFERENCE_TIMEZONE)

    return await cache.wrap(CacheKeys.BREAKDOWN, settings.CACHE_TTL_DASHBOARD_SEC, produce)


@router.get("/config", response_model=RiskConfigResponse)
async def get_risk_config(
    store: Annotated[RiskConfigStore, Depends(get_risk_config_store)],
) -> RiskConfigResponse:
    return RiskConfigResponse(
        timestamp=datetime.now(timezone.utc).isoformat(), config=store.get_config()
    )


@router.put("/weights", response_model=WeightsUpdateResponse)
async def put_weights(
    body: WeightsUpdateRequest,
    store: Annotated[RiskConfigStore, Depends(get_risk_config_store)],
    cache: Annotated[MemoryCache, Depends(get_cache)],
) -> WeightsUpdateResponse:
    """
    Update any subset of source weights. The merged set is normalized to sum to 1.
    An invalid update returns 422 and leaves the current weights in effect.
    """
    try:
        weights = store.update_weights(body.model_dump(exclude_none=True))
    except RiskConfigError as e:
        raise HTTPException(status_code=422, detail=e.message) from e
    await cache.invalidate_source("all")
    return WeightsUpdateResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        weights=weights,
        message="Weights updated and normalized",
    )


@router.put("/thresholds", response_model=RiskThresholds)
async def put_thresholds(
    body: ThresholdsUpdateRequest,
    store: Annotated[RiskConfigStore, Depends(get_risk_config_store)],
    cache: Annotated[MemoryCache, Depends(get_cache)],
) -> RiskThresholds:
    try:
        thresholds = store.update_thresholds(body.model_dump(exclude_none=True))
    except RiskConfigError as e:
        raise HTTPException(status_code=422, detail=e.message) from e
    await cache.invalidate_source("all")
    return thresholds
