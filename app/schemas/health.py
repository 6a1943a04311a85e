"""Pydantic schemas for health check responses."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness plus the state of the database and the background scheduler."""

    status: Literal["ok", "degraded"] = Field(
        default="ok", description="degraded when the database is unreachable"
    )
    timestamp: str = Field(description="Server time (ISO 8601, UTC)")
    environment: str
    database: Literal["connected", "disconnected"]
    scheduler: Literal["running", "stopped"] = "stopped"
