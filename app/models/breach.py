"""ORM model for breached-credential records (hibp)."""

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint, func

from app.models.base import Base


class BreachRecord(Base):
    """
    One row per (email, breach_name). Everything except synced_at is fixed at creation.

    status: 'new', 'notified', 'password_reset' or 'resolved'
    """

    __tablename__ = "hibp_breaches"
    __table_args__ = (
        UniqueConstraint("email", "breach_name", name="uq_hibp_breaches_email_breach_name"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    domain = Column(String(255), nullable=False, default="", index=True)
    email = Column(String(320), nullable=False, index=True)
    alias = Column(String(320), nullable=True)
    breach_name = Column(String(255), nullable=False)
    breach_date = Column(DateTime(timezone=True), nullable=True)
    discovered_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(32), nullable=False, default="new", index=True)
    synced_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
