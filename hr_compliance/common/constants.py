"""Enums and constants for HR Compliance — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Employee / Core HR ──────────────────────────────────────────────

class EmployeeStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    on_leave = "on_leave"


# ── Obligation documents ────────────────────────────────────────────

class DocumentCategory(str, enum.Enum):
    admission = "admission"
    recurring = "recurring"
    compliance = "compliance"
    personal = "personal"


class DocumentStatus(str, enum.Enum):
    pending = "pending"
    valid = "valid"
    expired = "expired"
    rejected = "rejected"


# ── Recurring documents (timesheets / payslips) ─────────────────────

class RecurringDocumentType(str, enum.Enum):
    timesheet = "timesheet"
    payslip = "payslip"


class ComplianceStatus(str, enum.Enum):
    pending = "pending"
    compliant = "compliant"
    warning = "warning"
    non_compliant = "non_compliant"


# ── Alerts ──────────────────────────────────────────────────────────

class AlertType(str, enum.Enum):
    late_arrival = "late_arrival"
    early_departure = "early_departure"
    unauthorized_overtime = "unauthorized_overtime"
    missing_punch = "missing_punch"
    absence_without_justification = "absence_without_justification"
    payslip_calculation_error = "payslip_calculation_error"
    irregular_discount = "irregular_discount"
    salary_mismatch = "salary_mismatch"
    document_expired = "document_expired"
    document_missing = "document_missing"
    document_expiring_soon = "document_expiring_soon"


class AlertSeverity(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class AlertStatus(str, enum.Enum):
    open = "open"
    acknowledged = "acknowledged"
    resolved = "resolved"
    dismissed = "dismissed"


# ── Time clock ──────────────────────────────────────────────────────

class TimeclockSystem(str, enum.Enum):
    generic = "generic"
    dimep = "dimep"
    henry = "henry"
    secullum = "secullum"
    topdata = "topdata"
    manual = "manual"


class PunchType(str, enum.Enum):
    entry = "entry"
    exit = "exit"
    break_start = "break_start"
    break_end = "break_end"


# ── Misc constants ──────────────────────────────────────────────────

DATE_FORMAT = "%d/%m/%Y"          # Brazilian format: 19/02/2026
DEFAULT_COMPLIANCE_SCORE = 100
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
