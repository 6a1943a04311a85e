"""ORM model for network devices synced from the vulnerability tracker (ncm)."""

from sqlalchemy import Column, DateTime, Float, Index, Integer, String, Text, func

from app.models.base import Base


class DeviceRecord(Base):
    """
    One row per device; natural key is (device_name, device_ip), ip may be NULL.

    The table mirrors the latest feed: devices absent from a sync are deleted.
    """

    __tablename__ = "ncm_devices"
    __table_args__ = (Index("ix_ncm_devices_name_ip", "device_name", "device_ip"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_name = Column(String(255), nullable=False)
    device_ip = Column(String(64), nullable=True)
    hw_model = Column(String(255), nullable=True)
    fw_series = Column(String(255), nullable=True)
    fw_version = Column(String(255), nullable=True)
    update_priority = Column(String(32), nullable=False, default="P3-Monitor", index=True)
    total_cve_instances = Column(Integer, nullable=False, default=0)
    max_kev_active_exploit = Column(Integer, nullable=False, default=0)
    max_critical_cve = Column(Integer, nullable=False, default=0)
    max_cvss = Column(Float, nullable=False, default=0.0)
    action_required = Column(Text, nullable=True)
    synced_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
