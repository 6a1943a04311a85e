"""ORM model for the append-only sync audit log."""

from sqlalchemy import Column, DateTime, Integer, String, Text, func

from app.models.base import Base


class SyncLogEntry(Base):
    """One row per reconciliation run. status: 'success' or 'error'."""

    __tablename__ = "sync_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source = Column(String(16), nullable=False, index=True)
    status = Column(String(16), nullable=False)
    record_count = Column(Integer, nullable=False, default=0)
    duration_ms = Column(Integer, nullable=False, default=0)
    error = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )
