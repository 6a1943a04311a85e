"""Shared fixtures: in-memory SQLite session factories and test settings."""

from unittest.mock import AsyncMock, MagicMock

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.models import Base


def memory_session_factory() -> sessionmaker:
    """A sessionmaker bound to a fresh in-memory SQLite database with all tables created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_settings(**overrides: object) -> Settings:
    values = {
        "SYNC_BATCH_SIZE": 2,
        "SYNC_PARALLEL": False,
        "REFERENCE_TIMEZONE": "UTC",
        "SCHEDULER_ENABLED": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def adapter_returning(records_by_source: dict[str, list[dict[str, str]]]) -> MagicMock:
    """A SheetsAdapter stand-in whose fetch(source) returns the given records."""
    adapter = MagicMock()

    async def fetch(source: str) -> list[dict[str, str]]:
        return [dict(r) for r in records_by_source.get(source, [])]

    adapter.fetch = AsyncMock(side_effect=fetch)
    return adapter
