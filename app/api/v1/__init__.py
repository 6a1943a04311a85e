"""API v1 routes."""

from fastapi import APIRouter

from app.api.v1 import dashboard, edr, health, hibp, sync, trends

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(sync.router, prefix="/sync", tags=["sync"])
router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
router.include_router(trends.router, prefix="/trends", tags=["trends"])
router.include_router(edr.router, prefix="/edr", tags=["edr"])
router.include_router(hibp.router, prefix="/hibp", tags=["hibp"])
