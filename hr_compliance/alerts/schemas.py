"""Compliance alert Pydantic schemas."""


import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from hr_compliance.common.constants import AlertSeverity, AlertStatus, AlertType


class AlertResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    recurring_document_id: Optional[uuid.UUID] = None
    document_id: Optional[uuid.UUID] = None
    type: AlertType
    severity: AlertSeverity
    title: str
    description: str
    details: Optional[dict[str, Any]] = None
    status: AlertStatus
    resolved_by: Optional[uuid.UUID] = None
    resolved_at: Optional[datetime] = None
    resolution_notes: Optional[str] = None
    created_at: datetime


class AlertStatusUpdate(BaseModel):
    """Body for acknowledging, resolving or dismissing an alert."""

    status: AlertStatus
    resolution_notes: Optional[str] = Field(default=None, max_length=2000)
    resolved_by: Optional[uuid.UUID] = None
