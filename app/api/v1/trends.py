"""Trend endpoints backed by daily snapshots."""

from typing import Annotated
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_cache, get_risk_config_store
from app.core.config import get_settings
from app.core.database import get_db
from app.schemas.trends import (
    ComparisonResponse,
    DailySnapshotItem,
    DailyTrendsResponse,
    EdrTrendPoint,
    HibpTrendPoint,
    Kb4TrendPoint,
    NcmTrendPoint,
    RiskScorePoint,
)
from app.services.cache import CacheKeys, MemoryCache
from app.services.risk_config import RiskConfigStore
from app.services.snapshot import (
    MAX_TREND_DAYS,
    capture_snapshot,
    compare_snapshots,
    list_snapshots,
    trend_series,
)
from app.services.stats import today_in

router = APIRouter()


@router.post("/snapshot", response_model=DailySnapshotItem)
async def post_snapshot(
    db: Annotated[Session, Depends(get_db)],
    store: Annotated[RiskConfigStore, Depends(get_risk_config_store)],
    cache: Annotated[MemoryCache, Depends(get_cache)],
) -> DailySnapshotItem:
    """Capture (or overwrite) today's snapshot."""
    snapshot = capture_snapshot(db, store, get_settings().REFERENCE_TIMEZONE)
    await cache.delete_pattern("trends:*")
    return snapshot


@router.get("/daily", response_model=DailyTrendsResponse)
async def get_daily_trends(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[MemoryCache, Depends(get_cache)],
    days: Annotated[int, Query(ge=1, le=MAX_TREND_DAYS)] = 30,
) -> DailyTrendsResponse:
    settings = get_settings()
    today = today_in(ZoneInfo(settings.REFERENCE_TIMEZONE))

    async def produce() -> DailyTrendsResponse:
        return list_snapshots(db, days, today)

    return await cache.wrap(CacheKeys.trends_daily(days), settings.CACHE_TTL_TRENDS_SEC, produce)


@router.get("/comparison", response_model=ComparisonResponse | None)
async def get_comparison(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[MemoryCache, Depends(get_cache)],
) -> ComparisonResponse | None:
    """Today vs seven days earlier; null until both snapshots exist."""
    settings = get_settings()
    today = today_in(ZoneInfo(settings.REFERENCE_TIMEZONE))
    comparison = await cache.get(CacheKeys.TRENDS_COMPARISON)
    if comparison is None:
        comparison = compare_snapshots(db, today)
        if comparison is not None:
            await cache.set(CacheKeys.TRENDS_COMPARISON, comparison, settings.CACHE_TTL_TRENDS_SEC)
    return comparison


async def _series(db: Session, cache: MemoryCache, series: str, days: int) -> list:
    settings = get_settings()
    today = today_in(ZoneInfo(settings.REFERENCE_TIMEZONE))

    async def produce() -> list:
        return trend_series(db, series, days, today)

    return await cache.wrap(CacheKeys.trends_series(series, days), settings.CACHE_TTL_TRENDS_SEC, produce)


@router.get("/risk-score", response_model=list[RiskScorePoint])
async def get_risk_score_trend(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[MemoryCache, Depends(get_cache)],
    days: Annotated[int, Query(ge=1, le=MAX_TREND_DAYS)] = 30,
) -> list[RiskScorePoint]:
    """Overall risk score per day, oldest first."""
    return await _series(db, cache, "risk-score", days)


@router.get("/kb4", response_model=list[Kb4TrendPoint])
async def get_kb4_trend(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[MemoryCache, Depends(get_cache)],
    days: Annotated[int, Query(ge=1, le=MAX_TREND_DAYS)] = 30,
) -> list[Kb4TrendPoint]:
    return await _series(db, cache, "kb4", days)


@router.get("/ncm", response_model=list[NcmTrendPoint])
async def get_ncm_trend(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[MemoryCache, Depends(get_cache)],
    days: Annotated[int, Query(ge=1, le=MAX_TREND_DAYS)] = 30,
) -> list[NcmTrendPoint]:
    return await _series(db, cache, "ncm", days)


@router.get("/edr", response_model=list[EdrTrendPoint])
async def get_edr_trend(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[MemoryCache, Depends(get_cache)],
    days: Annotated[int, Query(ge=1, le=MAX_TREND_DAYS)] = 30,
) -> list[EdrTrendPoint]:
    return await _series(db, cache, "edr", days)


@router.get("/hibp", response_model=list[HibpTrendPoint])
async def get_hibp_trend(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[MemoryCache, Depends(get_cache)],
    days: Annotated[int, Query(ge=1, le=MAX_TREND_DAYS)] = 30,
) -> list[HibpTrendPoint]:
    return await _series(db, cache, "hibp", days)
