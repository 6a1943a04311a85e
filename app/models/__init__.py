"""SQLAlchemy ORM models."""

from app.models.alert import AlertRecord
from app.models.base import Base
from app.models.breach import BreachRecord
from app.models.device import DeviceRecord
from app.models.identity import IdentityRiskRecord
from app.models.snapshot import DailySnapshot
from app.models.sync_log import SyncLogEntry

__all__ = [
    "AlertRecord",
    "Base",
    "BreachRecord",
    "DailySnapshot",
    "DeviceRecord",
    "IdentityRiskRecord",
    "SyncLogEntry",
]
