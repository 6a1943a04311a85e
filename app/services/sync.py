"""Per-source reconcilers: merge a fetched sheet into persisted state and audit each run.

Reconciliation mode per source:

- kb4 (identity risk): upsert by user_id; never deletes.
- ncm (devices): mirror; devices missing from the feed are deleted, one transaction per run.
- edr (alerts): create-or-refresh by (hostname, detected_at, file_sha256); only vt_verdict and
  synced_at are refreshed so analyst-owned status/assignee survive re-sync.
- hibp (breaches): insert-if-absent by (email, breach_name); conflicts refresh synced_at only.

Database work is synchronous SQLAlchemy run in a worker thread, so the four reconcilers can
overlap their I/O on the event loop. Within one reconciler, batches commit strictly in order,
each in its own transaction.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Hashable, Iterable
from datetime import datetime, timezone
from typing import TYPE_CHECKING, TypeVar
from zoneinfo import ZoneInfo

from sqlalchemy import select, update
from sqlalchemy.orm import sessionmaker

from app.core.database import upsert_insert
from app.models import AlertRecord, BreachRecord, DeviceRecord, IdentityRiskRecord, SyncLogEntry
from app.schemas.sheets import AlertRow, BreachRow, DeviceEntry, IdentityRiskRow
from app.schemas.sync import SourceId, SyncResult
from app.services.sheet_mappers import (
    batched,
    map_alert_records,
    map_breach_records,
    map_device_records,
    map_identity_records,
)

if TYPE_CHECKING:
    from app.core.config import Settings
    from app.services.sheets import SheetsAdapter

logger = logging.getLogger(__name__)

T = TypeVar("T")

AlertKey = tuple[str, datetime, str]

# Columns an identity re-sync overwrites; user_id, first_seen_at and created_at are kept.
IDENTITY_REFRESH_COLUMNS = (
    "email",
    "first_name",
    "last_name",
    "department",
    "division",
    "location",
    "job_title",
    "manager_name",
    "manager_email",
    "employee_number",
    "organization",
    "status",
    "current_risk_score",
    "phish_prone_percentage",
    "last_sign_in",
    "synced_at",
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def dedupe_last_wins(items: Iterable[T], key: Callable[[T], Hashable]) -> list[T]:
    """Keep one item per key: the last occurrence, at the position of the first."""
    out: dict[Hashable, T] = {}
    for item in items:
        out[key(item)] = item
    return list(out.values())


def dedupe_first_wins(items: Iterable[T], key: Callable[[T], Hashable]) -> list[T]:
    """Keep the first occurrence of each key."""
    out: dict[Hashable, T] = {}
    for item in items:
        out.setdefault(key(item), item)
    return list(out.values())


def alert_key(hostname: str, detected_at: datetime, file_sha256: str | None) -> AlertKey:
    """
    Natural key of an alert. Timestamps compare as naive UTC so values read back from a
    backend that drops tzinfo still match freshly parsed aware ones.
    """
    if detected_at.tzinfo is not None:
        detected_at = detected_at.astimezone(timezone.utc).replace(tzinfo=None)
    return (hostname, detected_at, file_sha256 or "")


def record_sync_log(
    session_factory: sessionmaker,
    source: SourceId,
    status: str,
    record_count: int,
    duration_ms: int,
    error: str | None = None,
) -> None:
    """Append one sync_logs row. A failure here is logged and never raised to the sync caller."""
    try:
        with session_factory.begin() as session:
            session.add(
                SyncLogEntry(
                    source=source,
                    status=status,
                    record_count=record_count,
                    duration_ms=duration_ms,
                    error=error,
                )
            )
    except Exception:
        logger.exception("Failed to write sync log", extra={"source": source, "status": status})


async def _run_reconciler(
    source: SourceId,
    session_factory: sessionmaker,
    work: Callable[[], Awaitable[int]],
) -> SyncResult:
    """Time work(), convert any failure into an error result, and audit the outcome."""
    start = time.perf_counter()
    logger.info("Sync started", extra={"source": source})
    try:
        count = await work()
    except Exception as e:
        duration_ms = _elapsed_ms(start)
        message = getattr(e, "message", None) or str(e) or type(e).__name__
        logger.exception(
            "Sync failed",
            extra={"source": source, "duration_ms": duration_ms, "status": "error"},
        )
        await asyncio.to_thread(
            record_sync_log, session_factory, source, "error", 0, duration_ms, message
        )
        return SyncResult(success=False, count=0, duration_ms=duration_ms, error=message)

    duration_ms = _elapsed_ms(start)
    await asyncio.to_thread(
        record_sync_log, session_factory, source, "success", count, duration_ms
    )
    logger.info(
        "Sync completed",
        extra={
            "source": source,
            "record_count": count,
            "duration_ms": duration_ms,
            "status": "success",
        },
    )
    return SyncResult(success=True, count=count, duration_ms=duration_ms)


# ==================== kb4: identity risk ====================


def persist_identity_rows(
    session_factory: sessionmaker, rows: list[IdentityRiskRow], batch_size: int
) -> int:
    """Upsert rows by user_id, one transaction per batch. Returns rows written."""
    count = 0
    for batch in batched(rows, batch_size):
        now = _now()
        with session_factory.begin() as session:
            stmt = upsert_insert(session, IdentityRiskRecord).values(
                [{**row.model_dump(), "first_seen_at": now, "synced_at": now} for row in batch]
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id"],
                set_={col: stmt.excluded[col] for col in IDENTITY_REFRESH_COLUMNS},
            )
            session.execute(stmt)
        count += len(batch)
    return count


async def sync_identity_risk(
    adapter: "SheetsAdapter", session_factory: sessionmaker, settings: "Settings"
) -> SyncResult:
    """Fetch the kb4 sheet and upsert identity-risk users."""
    tz = ZoneInfo(settings.REFERENCE_TIMEZONE)

    async def work() -> int:
        records = await adapter.fetch("kb4")
        rows = dedupe_last_wins(map_identity_records(records, tz), key=lambda r: r.user_id)
        return await asyncio.to_thread(
            persist_identity_rows, session_factory, rows, settings.SYNC_BATCH_SIZE
        )

    return await _run_reconciler("kb4", session_factory, work)


# ==================== ncm: devices ====================


def persist_devices(session_factory: sessionmaker, devices: list[DeviceEntry]) -> int:
    """
    Make ncm_devices equal the feed: delete absent keys, update present ones, create new ones.

    All counters and profile fields are replaced, not merged. Single transaction.
    Returns the number of devices in the feed after de-duplication by key.
    """
    target = {d.key: d for d in dedupe_last_wins(devices, key=lambda d: d.key)}
    now = _now()
    with session_factory.begin() as session:
        existing: dict[tuple[str, str | None], DeviceRecord] = {}
        stale_ids: list[int] = []
        for device in session.scalars(select(DeviceRecord).order_by(DeviceRecord.id)):
            key = (device.device_name, device.device_ip)
            if key in target and key not in existing:
                existing[key] = device
            else:
                stale_ids.append(device.id)

        if stale_ids:
            session.query(DeviceRecord).filter(DeviceRecord.id.in_(stale_ids)).delete(
                synchronize_session=False
            )

        for key, entry in target.items():
            values = entry.model_dump()
            device = existing.get(key)
            if device is None:
                session.add(DeviceRecord(**values, synced_at=now))
                continue
            for field, value in values.items():
                setattr(device, field, value)
            device.synced_at = now

    if stale_ids:
        logger.info("Removed devices absent from feed", extra={"source": "ncm", "deleted": len(stale_ids)})
    return len(target)


async def sync_devices(
    adapter: "SheetsAdapter", session_factory: sessionmaker, settings: "Settings"
) -> SyncResult:
    """Fetch the ncm sheet and mirror it into ncm_devices."""

    async def work() -> int:
        records = await adapter.fetch("ncm")
        devices = map_device_records(records)
        return await asyncio.to_thread(persist_devices, session_factory, devices)

    return await _run_reconciler("ncm", session_factory, work)


# ==================== edr: alerts ====================


def _load_alert_keys(session_factory: sessionmaker) -> dict[AlertKey, int]:
    """Fetch every persisted alert key once, up front."""
    with session_factory() as session:
        result = session.execute(
            select(
                AlertRecord.id,
                AlertRecord.hostname,
                AlertRecord.detected_at,
                AlertRecord.file_sha256,
            )
        )
        return {alert_key(h, d, s): alert_id for alert_id, h, d, s in result}


def persist_alert_rows(
    session_factory: sessionmaker, rows: list[AlertRow], batch_size: int
) -> int:
    """
    Create unseen alerts with status 'new'; for known keys refresh vt_verdict and synced_at only.

    One transaction per batch; keys created by a batch become visible to later batches only
    after that batch commits.
    """
    existing = _load_alert_keys(session_factory)
    count = 0
    for batch in batched(rows, batch_size):
        now = _now()
        with session_factory.begin() as session:
            pending: dict[AlertKey, AlertRecord] = {}
            for row in batch:
                key = alert_key(row.hostname, row.detected_at, row.file_sha256)
                if key in existing:
                    session.execute(
                        update(AlertRecord)
                        .where(AlertRecord.id == existing[key])
                        .values(vt_verdict=row.vt_verdict, synced_at=now)
                    )
                elif key in pending:
                    pending[key].vt_verdict = row.vt_verdict
                else:
                    alert = AlertRecord(**row.model_dump(), status="new", synced_at=now)
                    session.add(alert)
                    pending[key] = alert
            session.flush()
            created = {key: alert.id for key, alert in pending.items()}
        existing.update(created)
        count += len(batch)
    return count


async def sync_alerts(
    adapter: "SheetsAdapter", session_factory: sessionmaker, settings: "Settings"
) -> SyncResult:
    """Fetch the edr sheet and create or refresh alerts."""
    tz = ZoneInfo(settings.REFERENCE_TIMEZONE)

    async def work() -> int:
        records = await adapter.fetch("edr")
        rows = map_alert_records(records, tz)
        return await asyncio.to_thread(
            persist_alert_rows, session_factory, rows, settings.SYNC_BATCH_SIZE
        )

    return await _run_reconciler("edr", session_factory, work)


# ==================== hibp: breaches ====================


def persist_breach_rows(
    session_factory: sessionmaker, rows: list[BreachRow], batch_size: int
) -> int:
    """Insert unseen (email, breach_name) pairs; on conflict refresh synced_at only."""
    count = 0
    for batch in batched(rows, batch_size):
        now = _now()
        with session_factory.begin() as session:
            stmt = upsert_insert(session, BreachRecord).values(
                [
                    {
                        "email": row.email,
                        "breach_name": row.breach_name,
                        "domain": row.domain,
                        "alias": row.alias,
                        "breach_date": row.breach_date,
                        "discovered_at": row.discovered_at or now,
                        "status": "new",
                        "synced_at": now,
                    }
                    for row in batch
                ]
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["email", "breach_name"],
                set_={"synced_at": stmt.excluded.synced_at},
            )
            session.execute(stmt)
        count += len(batch)
    return count


async def sync_breaches(
    adapter: "SheetsAdapter", session_factory: sessionmaker, settings: "Settings"
) -> SyncResult:
    """Fetch the hibp sheet and record new breach pairs."""
    tz = ZoneInfo(settings.REFERENCE_TIMEZONE)

    async def work() -> int:
        records = await adapter.fetch("hibp")
        rows = dedupe_first_wins(
            map_breach_records(records, tz), key=lambda r: (r.email, r.breach_name)
        )
        return await asyncio.to_thread(
            persist_breach_rows, session_factory, rows, settings.SYNC_BATCH_SIZE
        )

    return await _run_reconciler("hibp", session_factory, work)


RECONCILERS: dict[
    SourceId,
    Callable[["SheetsAdapter", sessionmaker, "Settings"], Awaitable[SyncResult]],
] = {
    "kb4": sync_identity_risk,
    "ncm": sync_devices,
    "edr": sync_alerts,
    "hibp": sync_breaches,
}
