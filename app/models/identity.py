"""ORM model for identity-risk users synced from the phishing-awareness platform (kb4)."""

from sqlalchemy import Column, DateTime, Float, Integer, String, func

from app.models.base import Base


class IdentityRiskRecord(Base):
    """
    One row per person, keyed by the platform's external user id.

    Re-sync updates the row in place; absence from a later feed never deletes it.
    status: 'active' or 'archived'
    """

    __tablename__ = "kb4_users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(320), nullable=False, index=True)
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    department = Column(String(255), nullable=True, index=True)
    division = Column(String(255), nullable=True)
    location = Column(String(255), nullable=True)
    job_title = Column(String(255), nullable=True)
    manager_name = Column(String(255), nullable=True)
    manager_email = Column(String(320), nullable=True)
    employee_number = Column(String(255), nullable=True)
    organization = Column(String(255), nullable=True)
    status = Column(String(32), nullable=False, default="active", index=True)
    current_risk_score = Column(Float, nullable=False, default=0.0)
    phish_prone_percentage = Column(Float, nullable=False, default=0.0)
    last_sign_in = Column(DateTime(timezone=True), nullable=True)
    first_seen_at = Column(DateTime(timezone=True), nullable=False)
    synced_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
