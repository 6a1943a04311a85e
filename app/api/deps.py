"""Request dependencies for the components built once in the application lifespan."""

from fastapi import Request

from app.services.cache import MemoryCache
from app.services.risk_config import RiskConfigStore
from app.services.scheduler import SyncScheduler
from app.services.sync_orchestrator import SyncOrchestrator


def get_risk_config_store(request: Request) -> RiskConfigStore:
    return request.app.state.risk_config


def get_cache(request: Request) -> MemoryCache:
    return request.app.state.cache


def get_orchestrator(request: Request) -> SyncOrchestrator:
    return request.app.state.orchestrator


def get_scheduler(request: Request) -> SyncScheduler | None:
    return getattr(request.app.state, "scheduler", None)
