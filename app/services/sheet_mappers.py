"""Map header-keyed sheet records to typed rows for each source.

Each source's header row is checked once against the columns its reconciler needs; after that,
row-level defects never fail the batch: rows missing identity fields are dropped and unparseable
numbers default to 0, unparseable optional dates to None.
"""

import logging
import math
import re
from collections.abc import Iterable
from datetime import datetime, timezone, tzinfo

from app.schemas.sheets import (
    ALERT_SEVERITY_VALUES,
    UPDATE_PRIORITY_VALUES,
    AlertRow,
    BreachRow,
    DeviceEntry,
    IdentityRiskRow,
    RawAlertRow,
    RawBreachRow,
    RawDeviceGroupRow,
    RawIdentityRow,
)
from app.schemas.sync import SourceId

logger = logging.getLogger(__name__)

# Header strings that must be present for a source's rows to be usable.
REQUIRED_HEADERS: dict[str, tuple[str, ...]] = {
    "kb4": ("user_id", "email"),
    "ncm": ("AllDeviceNames",),
    "edr": ("主機名稱", "偵測時間"),
    "hibp": ("Email", "BreachName"),
}

# Device groups list names and "name(ip)" entries joined by this delimiter.
DEVICE_LIST_DELIMITER = "; "

_DEFAULT_UPDATE_PRIORITY = "P3-Monitor"
_DEFAULT_ALERT_SEVERITY = "Low"
_DEFAULT_IDENTITY_STATUS = "active"
_IDENTITY_STATUS_VALUES = ("active", "archived")

_LEADING_FLOAT = re.compile(r"^[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_LEADING_INT = re.compile(r"^[-+]?\d+")
_IP_IN_PARENS = re.compile(r"\(([^)]+)\)")

# Non-ISO layouts seen in sheet exports; ISO 8601 is tried first.
_DATETIME_FORMATS = (
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
)


class SheetSchemaError(Exception):
    """Raised when a sheet's header row lacks a column its source mapping requires."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        self.message = message
        self.missing = missing or []
        super().__init__(message)


def parse_float(value: str | None) -> float:
    """Parse the leading number of a cell ("9.8", "30%", "1,234.5"); 0.0 when there is none."""
    if not value:
        return 0.0
    match = _LEADING_FLOAT.match(value.strip().replace(",", ""))
    if not match:
        return 0.0
    number = float(match.group(0))
    return number if math.isfinite(number) else 0.0


def parse_int(value: str | None) -> int:
    """Parse the leading integer of a cell ("12", "12.7", "1,024"); 0 when there is none."""
    if not value:
        return 0
    match = _LEADING_INT.match(value.strip().replace(",", ""))
    return int(match.group(0)) if match else 0


def parse_datetime(value: str | None, default_tz: tzinfo = timezone.utc) -> datetime | None:
    """
    Parse a sheet timestamp to an aware UTC datetime, or None when blank or unparseable.

    Naive values are interpreted in default_tz.
    """
    if not value or not value.strip():
        return None
    text = value.strip()
    iso = text[:-1] + "+00:00" if text[-1] in ("Z", "z") else text
    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(iso)
    except ValueError:
        for fmt in _DATETIME_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz)
    return parsed.astimezone(timezone.utc)


def _text_or_none(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.strip()


def _canonical(value: str | None, allowed: tuple[str, ...], default: str) -> str:
    """Case-insensitive match of value against allowed spellings; default when blank or unknown."""
    if not value or not value.strip():
        return default
    lowered = value.strip().lower()
    for candidate in allowed:
        if candidate.lower() == lowered:
            return candidate
    return default


def validate_headers(source: SourceId, records: list[dict[str, str]]) -> None:
    """Check the header row (keys of the first record) once per fetch. Empty feeds pass."""
    if not records:
        return
    headers = records[0].keys()
    missing = [h for h in REQUIRED_HEADERS[source] if h not in headers]
    if missing:
        raise SheetSchemaError(
            f"Sheet for '{source}' is missing required column(s): {', '.join(missing)}",
            missing=missing,
        )


def normalize_identity_row(raw: RawIdentityRow, default_tz: tzinfo = timezone.utc) -> IdentityRiskRow | None:
    """Typed identity row, or None when user_id or email is missing."""
    if not raw.user_id or not raw.email:
        return None
    return IdentityRiskRow(
        user_id=raw.user_id,
        email=raw.email,
        first_name=raw.first_name,
        last_name=raw.last_name,
        department=_text_or_none(raw.department),
        division=_text_or_none(raw.division),
        location=_text_or_none(raw.location),
        job_title=_text_or_none(raw.job_title),
        manager_name=_text_or_none(raw.manager_name),
        manager_email=_text_or_none(raw.manager_email),
        employee_number=_text_or_none(raw.employee_number),
        organization=_text_or_none(raw.organization),
        status=_canonical(raw.status, _IDENTITY_STATUS_VALUES, _DEFAULT_IDENTITY_STATUS),
        current_risk_score=parse_float(raw.current_risk_score),
        phish_prone_percentage=parse_float(raw.phish_prone_percentage),
        last_sign_in=parse_datetime(raw.last_sign_in, default_tz),
    )


def extract_device_ip(entry: str | None) -> str | None:
    """Return the IP wrapped in parentheses in a "name(ip)" entry, or None."""
    if not entry:
        return None
    match = _IP_IN_PARENS.search(entry)
    if not match:
        return None
    return match.group(1).strip() or None


def expand_device_group(raw: RawDeviceGroupRow) -> list[DeviceEntry]:
    """
    Fan a device-group row out into one DeviceEntry per listed device name.

    The i-th IP entry belongs to the i-th name; blank names are skipped without shifting
    that pairing. All devices in the group share the row's vulnerability profile.
    """
    if not raw.all_device_names:
        return []
    names = raw.all_device_names.split(DEVICE_LIST_DELIMITER)
    ip_entries = raw.all_device_ips.split(DEVICE_LIST_DELIMITER) if raw.all_device_ips else []

    profile = {
        "hw_model": _text_or_none(raw.hw_models),
        "fw_series": _text_or_none(raw.fw_series),
        "fw_version": _text_or_none(raw.fw_version),
        "update_priority": _canonical(
            raw.update_priority, UPDATE_PRIORITY_VALUES, _DEFAULT_UPDATE_PRIORITY
        ),
        "total_cve_instances": parse_int(raw.total_cve_instances),
        "max_kev_active_exploit": parse_int(raw.max_kev_active_exploit),
        "max_critical_cve": parse_int(raw.max_critical_cve),
        "max_cvss": parse_float(raw.max_cvss),
        "action_required": _text_or_none(raw.action_required),
    }
    devices: list[DeviceEntry] = []
    for index, name in enumerate(names):
        device_name = name.strip()
        if not device_name:
            continue
        ip_entry = ip_entries[index] if index < len(ip_entries) else None
        devices.append(
            DeviceEntry(device_name=device_name, device_ip=extract_device_ip(ip_entry), **profile)
        )
    return devices


def normalize_alert_row(raw: RawAlertRow, default_tz: tzinfo = timezone.utc) -> AlertRow | None:
    """Typed alert row, or None when hostname or a parseable detection time is missing."""
    if not raw.hostname or not raw.detected_at:
        return None
    detected_at = parse_datetime(raw.detected_at, default_tz)
    if detected_at is None:
        logger.debug("Skipping alert with unparseable detection time: %r", raw.detected_at)
        return None
    return AlertRow(
        hostname=raw.hostname,
        detected_at=detected_at,
        severity=_canonical(raw.severity, ALERT_SEVERITY_VALUES, _DEFAULT_ALERT_SEVERITY),
        ioa_name=raw.ioa_name,
        domain=_text_or_none(raw.domain),
        file_sha256=_text_or_none(raw.file_sha256),
        file_path=_text_or_none(raw.file_path),
        vt_verdict=_text_or_none(raw.vt_verdict),
    )


def normalize_breach_row(raw: RawBreachRow, default_tz: tzinfo = timezone.utc) -> BreachRow | None:
    """Typed breach row, or None when email or breach name is missing."""
    if not raw.email or not raw.breach_name:
        return None
    return BreachRow(
        email=raw.email,
        breach_name=raw.breach_name,
        domain=raw.domain,
        alias=_text_or_none(raw.alias),
        breach_date=parse_datetime(raw.breach_date, default_tz),
        discovered_at=parse_datetime(raw.timestamp, default_tz),
    )


def _log_skipped(source: SourceId, total: int, kept: int) -> None:
    if total > kept:
        logger.info(
            "Skipped rows missing required fields",
            extra={"source": source, "row_count": total, "skipped": total - kept},
        )


def map_identity_records(
    records: list[dict[str, str]], default_tz: tzinfo = timezone.utc
) -> list[IdentityRiskRow]:
    validate_headers("kb4", records)
    rows = [normalize_identity_row(RawIdentityRow.model_validate(r), default_tz) for r in records]
    kept = [r for r in rows if r is not None]
    _log_skipped("kb4", len(records), len(kept))
    return kept


def map_device_records(records: list[dict[str, str]]) -> list[DeviceEntry]:
    validate_headers("ncm", records)
    devices: list[DeviceEntry] = []
    for record in records:
        devices.extend(expand_device_group(RawDeviceGroupRow.model_validate(record)))
    return devices


def map_alert_records(
    records: list[dict[str, str]], default_tz: tzinfo = timezone.utc
) -> list[AlertRow]:
    validate_headers("edr", records)
    rows = [normalize_alert_row(RawAlertRow.model_validate(r), default_tz) for r in records]
    kept = [r for r in rows if r is not None]
    _log_skipped("edr", len(records), len(kept))
    return kept


def map_breach_records(
    records: list[dict[str, str]], default_tz: tzinfo = timezone.utc
) -> list[BreachRow]:
    validate_headers("hibp", records)
    rows = [normalize_breach_row(RawBreachRow.model_validate(r), default_tz) for r in records]
    kept = [r for r in rows if r is not None]
    _log_skipped("hibp", len(records), len(kept))
    return kept


def batched(items: list, size: int) -> Iterable[list]:
    """Yield consecutive slices of at most size items."""
    for start in range(0, len(items), size):
        yield items[start : start + size]
