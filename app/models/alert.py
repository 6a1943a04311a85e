"""ORM model for endpoint-detection alerts (edr)."""

from sqlalchemy import Column, DateTime, Index, Integer, String, Text, func

from app.models.base import Base


class AlertRecord(Base):
    """
    One row per detection event; natural key is (hostname, detected_at, file_sha256).

    status and assigned_to are analyst-owned: sync only refreshes vt_verdict and synced_at.
    status: 'new', 'investigating', 'resolved' or 'false_positive'
    """

    __tablename__ = "edr_alerts"
    __table_args__ = (Index("ix_edr_alerts_hostname_detected_at", "hostname", "detected_at"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    severity = Column(String(16), nullable=False, default="Low", index=True)
    detected_at = Column(DateTime(timezone=True), nullable=False)
    hostname = Column(String(255), nullable=False)
    ioa_name = Column(String(512), nullable=False, default="")
    domain = Column(Text, nullable=True)
    file_sha256 = Column(String(128), nullable=True)
    file_path = Column(Text, nullable=True)
    vt_verdict = Column(String(255), nullable=True)
    status = Column(String(32), nullable=False, default="new", index=True)
    assigned_to = Column(String(255), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    synced_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
