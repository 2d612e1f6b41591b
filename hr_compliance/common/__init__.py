"""Common module — shared utilities for the compliance service."""

from hr_compliance.common.audit import AuditTrail, create_audit_entry
from hr_compliance.common.constants import (
    DATE_FORMAT,
    DEFAULT_COMPLIANCE_SCORE,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    AlertSeverity,
    AlertStatus,
    AlertType,
    ComplianceStatus,
    DocumentCategory,
    DocumentStatus,
    EmployeeStatus,
    PunchType,
    RecurringDocumentType,
    TimeclockSystem,
)
from hr_compliance.common.exceptions import (
    AnalysisError,
    AppException,
    ConflictError,
    NotFoundException,
    ValidationException,
    register_exception_handlers,
)
from hr_compliance.common.models import AppSetting, get_setting, put_setting
from hr_compliance.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "AlertSeverity",
    "AlertStatus",
    "AlertType",
    "ComplianceStatus",
    "DocumentCategory",
    "DocumentStatus",
    "EmployeeStatus",
    "PunchType",
    "RecurringDocumentType",
    "TimeclockSystem",
    "DATE_FORMAT",
    "DEFAULT_COMPLIANCE_SCORE",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AnalysisError",
    "AppException",
    "ConflictError",
    "NotFoundException",
    "ValidationException",
    "register_exception_handlers",
    # Settings rows
    "AppSetting",
    "get_setting",
    "put_setting",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
