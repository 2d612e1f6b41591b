"""Time-clock Pydantic schemas: canonical records, parse issues, config, results."""


import uuid
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from hr_compliance.common.constants import PunchType, TimeclockSystem


# ═════════════════════════════════════════════════════════════════════
# Canonical attendance record
# ═════════════════════════════════════════════════════════════════════


class Punch(BaseModel):
    time: str
    type: PunchType


class TimeclockRecord(BaseModel):
    """One employee-day of punches, independent of the vendor format."""

    employee_tax_id: str
    employee_name: Optional[str] = None
    date: date
    punches: list[Punch] = Field(default_factory=list)
    total_hours: Optional[float] = None
    overtime: Optional[float] = None
    absences: Optional[int] = None
    raw_data: Optional[str] = None


class ParseIssue(BaseModel):
    """A line the adapter could not turn into a record."""

    line: int
    reason: str
    raw: str = ""


# ═════════════════════════════════════════════════════════════════════
# Import / preview results
# ═════════════════════════════════════════════════════════════════════


class TimeclockImportResult(BaseModel):
    success: bool = True
    total_records: int = 0
    imported: int = 0
    errors: list[dict[str, Any]] = Field(default_factory=list)
    alerts: int = 0


class TimeclockPreview(BaseModel):
    total_records: int
    preview: list[TimeclockRecord]
    issues: list[ParseIssue] = Field(default_factory=list)


class ManualUploadResult(BaseModel):
    success: bool
    document_id: Optional[uuid.UUID] = None
    error: Optional[str] = None


# ═════════════════════════════════════════════════════════════════════
# Configuration (persisted as the "timeclock" AppSetting)
# ═════════════════════════════════════════════════════════════════════


class TimeclockConfig(BaseModel):
    system: TimeclockSystem = TimeclockSystem.generic
    api_url: Optional[str] = None
    api_key: Optional[str] = None
    enabled: bool = False
    sync_interval: Optional[int] = Field(default=None, ge=1, description="Minutes")
    last_sync: Optional[datetime] = None


class TimeclockConfigUpdate(BaseModel):
    system: Optional[TimeclockSystem] = None
    api_url: Optional[str] = None
    api_key: Optional[str] = None
    enabled: Optional[bool] = None
    sync_interval: Optional[int] = Field(default=None, ge=1)


class TimeclockConfigResponse(BaseModel):
    """Config as returned by the API; the key is masked."""

    system: TimeclockSystem
    api_url: Optional[str] = None
    has_api_key: bool = False
    enabled: bool
    sync_interval: Optional[int] = None
    last_sync: Optional[datetime] = None

    @classmethod
    def from_config(cls, config: TimeclockConfig) -> "TimeclockConfigResponse":
        return cls(
            system=config.system,
            api_url=config.api_url,
            has_api_key=bool(config.api_key),
            enabled=config.enabled,
            sync_interval=config.sync_interval,
            last_sync=config.last_sync,
        )
