"""SQLAlchemy declarative Base shared by the synced entity and audit tables."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
