"""Recurring document Pydantic schemas."""


import uuid
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from hr_compliance.common.constants import ComplianceStatus, RecurringDocumentType


class RecurringDocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    type: RecurringDocumentType
    reference_date: date
    file_name: str
    file_url: str
    extracted_data: Optional[dict[str, Any]] = None
    ai_analysis: Optional[dict[str, Any]] = None
    compliance_score: Optional[int] = None
    compliance_status: ComplianceStatus
    processed_at: Optional[datetime] = None
    uploaded_by: Optional[uuid.UUID] = None
    created_at: datetime


class RecurringUploadResponse(BaseModel):
    """Upload result: the document plus the verdict, or the analysis error."""

    document: RecurringDocumentResponse
    analyzed: bool
    alerts: int = 0
    error: Optional[str] = None
