"""Pydantic schemas for spreadsheet rows: raw header-keyed rows and their typed, normalized forms.

Raw models alias every field to the exact header string the external sheet uses, so a record
(header -> cell string) validates directly. All raw fields default to "" because short rows are
padded and cells may be blank; typing and defaulting happen in app.services.sheet_mappers.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

UpdatePriority = Literal["P0-Immediate", "P1-NextCycle", "P3-Monitor"]
AlertSeverity = Literal["Low", "Medium", "High", "Critical"]
AlertStatus = Literal["new", "investigating", "resolved", "false_positive"]
BreachStatus = Literal["new", "notified", "password_reset", "resolved"]
IdentityStatus = Literal["active", "archived"]

UPDATE_PRIORITY_VALUES: tuple[str, ...] = ("P0-Immediate", "P1-NextCycle", "P3-Monitor")
ALERT_SEVERITY_VALUES: tuple[str, ...] = ("Low", "Medium", "High", "Critical")
ALERT_STATUS_VALUES: tuple[str, ...] = ("new", "investigating", "resolved", "false_positive")
BREACH_STATUS_VALUES: tuple[str, ...] = ("new", "notified", "password_reset", "resolved")

_RAW_CONFIG = ConfigDict(extra="ignore", populate_by_name=True, str_strip_whitespace=True)


class RawIdentityRow(BaseModel):
    """One row of the phishing-awareness user export (kb4)."""

    model_config = _RAW_CONFIG

    user_id: str = ""
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    department: str = ""
    division: str = ""
    location: str = ""
    job_title: str = ""
    manager_name: str = ""
    manager_email: str = ""
    employee_number: str = ""
    status: str = ""
    last_sign_in: str = ""
    current_risk_score: str = ""
    phish_prone_percentage: str = ""
    organization: str = ""


class RawDeviceGroupRow(BaseModel):
    """One row of the firmware vulnerability summary (ncm); lists a group of devices."""

    model_config = _RAW_CONFIG

    update_priority: str = Field(default="", alias="UpdatePriority")
    fw_series: str = Field(default="", alias="FW_Series")
    fw_version: str = Field(default="", alias="FW_Version")
    hw_models: str = Field(default="", alias="HW_Models")
    total_cve_instances: str = Field(default="", alias="TotalCVEInstances")
    max_kev_active_exploit: str = Field(default="", alias="MaxKEV_ActiveExploit")
    max_critical_cve: str = Field(default="", alias="MaxCriticalCVE")
    max_cvss: str = Field(default="", alias="MaxCVSS")
    all_device_names: str = Field(default="", alias="AllDeviceNames")
    all_device_ips: str = Field(default="", alias="AllDeviceIPs")
    action_required: str = Field(default="", alias="ActionRequired")


class RawAlertRow(BaseModel):
    """One row of the EDR detection export; headers are defined by the upstream console."""

    model_config = _RAW_CONFIG

    severity: str = Field(default="", alias="伺服器性")
    detected_at: str = Field(default="", alias="偵測時間")
    hostname: str = Field(default="", alias="主機名稱")
    ioa_name: str = Field(default="", alias="IOA 名稱")
    domain: str = Field(default="", alias="針對此偵測的特定資料")
    file_sha256: str = Field(default="", alias="可疑檔案的 SHA256")
    file_path: str = Field(default="", alias="檔案路徑")
    vt_verdict: str = Field(default="", alias="VT verdict")


class RawBreachRow(BaseModel):
    """One row of the breached-credential report (hibp)."""

    model_config = _RAW_CONFIG

    timestamp: str = Field(default="", alias="Timestamp")
    run_id: str = Field(default="", alias="RunId")
    domain: str = Field(default="", alias="Domain")
    email: str = Field(default="", alias="Email")
    alias: str = Field(default="", alias="Alias")
    breach_name: str = Field(default="", alias="BreachName")
    breach_date: str = Field(default="", alias="BreachDate")


class IdentityRiskRow(BaseModel):
    """Typed identity-risk row ready for upsert by user_id."""

    user_id: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    first_name: str = ""
    last_name: str = ""
    department: str | None = None
    division: str | None = None
    location: str | None = None
    job_title: str | None = None
    manager_name: str | None = None
    manager_email: str | None = None
    employee_number: str | None = None
    organization: str | None = None
    status: str = "active"
    current_risk_score: float = 0.0
    phish_prone_percentage: float = 0.0
    last_sign_in: datetime | None = None


class DeviceEntry(BaseModel):
    """A single device fanned out from a device-group row."""

    device_name: str = Field(..., min_length=1)
    device_ip: str | None = None
    hw_model: str | None = None
    fw_series: str | None = None
    fw_version: str | None = None
    update_priority: str = "P3-Monitor"
    total_cve_instances: int = 0
    max_kev_active_exploit: int = 0
    max_critical_cve: int = 0
    max_cvss: float = 0.0
    action_required: str | None = None

    @property
    def key(self) -> tuple[str, str | None]:
        return (self.device_name, self.device_ip)


class AlertRow(BaseModel):
    """Typed EDR alert row; detected_at is timezone-aware UTC."""

    hostname: str = Field(..., min_length=1)
    detected_at: datetime
    severity: str = "Low"
    ioa_name: str = ""
    domain: str | None = None
    file_sha256: str | None = None
    file_path: str | None = None
    vt_verdict: str | None = None


class BreachRow(BaseModel):
    """Typed breach row ready for insert-if-absent by (email, breach_name)."""

    email: str = Field(..., min_length=1)
    breach_name: str = Field(..., min_length=1)
    domain: str = ""
    alias: str | None = None
    breach_date: datetime | None = None
    discovered_at: datetime | None = None
