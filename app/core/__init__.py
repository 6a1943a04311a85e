"""Core app configuration and database."""

from app.core.config import get_settings, settings
from app.core.database import SessionLocal, get_db, upsert_insert

__all__ = ["SessionLocal", "get_settings", "settings", "get_db", "upsert_insert"]
