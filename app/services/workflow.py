"""Analyst workflow updates: the alert and breach fields that sync never overwrites."""

import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import AlertRecord, BreachRecord

logger = logging.getLogger(__name__)

# Alert statuses that close an alert and stamp resolved_at.
CLOSED_ALERT_STATUSES = frozenset({"resolved", "false_positive"})


class RecordNotFoundError(Exception):
    """Raised when a workflow update targets an id that does not exist."""

    def __init__(self, message: str, missing_ids: Sequence[int] = ()) -> None:
        self.message = message
        self.missing_ids = list(missing_ids)
        super().__init__(message)


def _load(session: Session, model: type, ids: Sequence[int], label: str) -> list:
    wanted = list(dict.fromkeys(ids))
    rows = session.scalars(select(model).where(model.id.in_(wanted))).all()
    found = {r.id for r in rows}
    missing = [i for i in wanted if i not in found]
    if missing:
        raise RecordNotFoundError(
            f"{label} not found: {', '.join(str(i) for i in missing)}", missing
        )
    return list(rows)


def _apply_alert_status(
    alert: AlertRecord, status: str, assigned_to: str | None, now: datetime
) -> None:
    alert.status = status
    if assigned_to is not None:
        alert.assigned_to = assigned_to
    alert.resolved_at = now if status in CLOSED_ALERT_STATUSES else None


def update_alert_status(
    session: Session, alert_id: int, status: str, assigned_to: str | None = None
) -> AlertRecord:
    """Set one alert's status (and assignee when given). Raises RecordNotFoundError."""
    alert = session.get(AlertRecord, alert_id)
    if alert is None:
        raise RecordNotFoundError(f"Alert not found: {alert_id}", [alert_id])
    _apply_alert_status(alert, status, assigned_to, datetime.now(timezone.utc))
    session.commit()
    session.refresh(alert)
    logger.info("Alert status updated", extra={"alert_id": alert_id, "status": status})
    return alert


def bulk_update_alert_status(
    session: Session, alert_ids: Sequence[int], status: str, assigned_to: str | None = None
) -> int:
    """All-or-nothing: any unknown id raises before anything is written."""
    alerts = _load(session, AlertRecord, alert_ids, "Alert(s)")
    now = datetime.now(timezone.utc)
    for alert in alerts:
        _apply_alert_status(alert, status, assigned_to, now)
    session.commit()
    logger.info("Alert statuses updated", extra={"count": len(alerts), "status": status})
    return len(alerts)


def update_breach_status(session: Session, breach_id: int, status: str) -> BreachRecord:
    breach = session.get(BreachRecord, breach_id)
    if breach is None:
        raise RecordNotFoundError(f"Breach not found: {breach_id}", [breach_id])
    breach.status = status
    session.commit()
    session.refresh(breach)
    logger.info("Breach status updated", extra={"breach_id": breach_id, "status": status})
    return breach


def bulk_update_breach_status(session: Session, breach_ids: Sequence[int], status: str) -> int:
    breaches = _load(session, BreachRecord, breach_ids, "Breach(es)")
    for breach in breaches:
        breach.status = status
    session.commit()
    logger.info("Breach statuses updated", extra={"count": len(breaches), "status": status})
    return len(breaches)
