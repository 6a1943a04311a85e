"""GET /health: database reachability and scheduler state."""

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_scheduler
from app.core.config import settings
from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse
from app.services.scheduler import SyncScheduler

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(
    db: Annotated[Session, Depends(get_db)],
    scheduler: Annotated[SyncScheduler | None, Depends(get_scheduler)],
) -> HealthResponse:
    connected = check_db_connected(db)
    return HealthResponse(
        status="ok" if connected else "degraded",
        timestamp=datetime.now(timezone.utc).isoformat(),
        environment=settings.APP_ENV,
        database="connected" if connected else "disconnected",
        scheduler="running" if scheduler is not None and scheduler.is_running else "stopped",
    )
