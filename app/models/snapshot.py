"""ORM model for daily risk rollups used by the trend views."""

from sqlalchemy import Column, Date, DateTime, Float, Integer, func

from app.models.base import Base


class DailySnapshot(Base):
    """
    One row per calendar date (unique). Re-capturing the same date overwrites the row.
    """

    __tablename__ = "daily_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False, unique=True, index=True)

    kb4_total_users = Column(Integer, nullable=False, default=0)
    kb4_high_risk_users = Column(Integer, nullable=False, default=0)
    kb4_avg_risk_score = Column(Float, nullable=False, default=0.0)
    kb4_avg_phish_prone_rate = Column(Float, nullable=False, default=0.0)

    ncm_total_devices = Column(Integer, nullable=False, default=0)
    ncm_p0_devices = Column(Integer, nullable=False, default=0)
    ncm_p1_devices = Column(Integer, nullable=False, default=0)
    ncm_total_cves = Column(Integer, nullable=False, default=0)

    edr_total_alerts = Column(Integer, nullable=False, default=0)
    edr_high_alerts = Column(Integer, nullable=False, default=0)
    edr_pending_alerts = Column(Integer, nullable=False, default=0)
    edr_resolved_alerts = Column(Integer, nullable=False, default=0)

    hibp_total_breaches = Column(Integer, nullable=False, default=0)
    hibp_new_breaches = Column(Integer, nullable=False, default=0)
    hibp_pending_breaches = Column(Integer, nullable=False, default=0)

    overall_risk_score = Column(Integer, nullable=False, default=0)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
