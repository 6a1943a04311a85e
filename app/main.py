"""FastAPI application entrypoint. No business logic; only wiring, lifespan and middleware."""

from dotenv import load_dotenv

load_dotenv()

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1 import router as v1_router
from app.core.config import settings
from app.core.database import SessionLocal
from app.services.cache import MemoryCache
from app.services.risk_config import RiskConfigStore
from app.services.scheduler import SyncScheduler
from app.services.sheets import SheetsAdapter
from app.services.snapshot import run_snapshot_job
from app.services.sync_orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the process-wide components once; start the scheduler when enabled."""
    store = RiskConfigStore.from_settings(settings)
    cache = MemoryCache()
    orchestrator = SyncOrchestrator(
        SheetsAdapter(settings),
        SessionLocal,
        settings,
        on_sync_complete=cache.invalidate_source,
    )

    async def snapshot_job() -> None:
        await asyncio.to_thread(run_snapshot_job, SessionLocal, store, settings)
        await cache.delete_pattern("trends:*")

    scheduler = SyncScheduler(orchestrator, snapshot_job, settings)

    app.state.risk_config = store
    app.state.cache = cache
    app.state.orchestrator = orchestrator
    app.state.scheduler = scheduler

    if settings.SCHEDULER_ENABLED:
        await scheduler.start()
    else:
        logger.info("Scheduler disabled (SCHEDULER_ENABLED=false)")
    try:
        yield
    finally:
        await scheduler.stop()
        await orchestrator.wait_for_notifications()


app = FastAPI(
    title="Posture API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.APP_ENV == "dev" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "Posture API"}
