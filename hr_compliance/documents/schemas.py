"""Document / template Pydantic v2 schemas.

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Response          → response bodies (read)
  - *Result            → outcomes of engine operations
"""


import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from hr_compliance.common.constants import DocumentCategory, DocumentStatus


# ═════════════════════════════════════════════════════════════════════
# Document types
# ═════════════════════════════════════════════════════════════════════


class DocumentTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    category: DocumentCategory
    is_required: bool = True
    validity_days: Optional[int] = Field(default=None, ge=1)


class DocumentTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    category: DocumentCategory
    is_required: bool
    validity_days: Optional[int] = None


# ═════════════════════════════════════════════════════════════════════
# Templates
# ═════════════════════════════════════════════════════════════════════


class TemplateItemCreate(BaseModel):
    document_type_id: uuid.UUID
    is_required: bool = True
    has_expiration: bool = False
    expiration_days: Optional[int] = Field(default=None, ge=1)
    alert_days_before: Optional[int] = Field(default=None, ge=0)
    requires_signature: bool = False
    is_auto_generated: bool = False
    sort_order: int = 0
    condition: Optional[dict[str, Any]] = None


class TemplateItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    template_id: uuid.UUID
    document_type_id: uuid.UUID
    is_required: bool
    has_expiration: bool
    expiration_days: Optional[int] = None
    alert_days_before: Optional[int] = None
    requires_signature: bool
    is_auto_generated: bool
    sort_order: int
    condition: Optional[dict[str, Any]] = None
    document_type: Optional[DocumentTypeResponse] = None
    inherited: bool = False


class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    position: Optional[str] = Field(default=None, max_length=100)
    department_id: Optional[uuid.UUID] = None
    parent_template_id: Optional[uuid.UUID] = None
    is_base: bool = False
    is_active: bool = True
    items: list[TemplateItemCreate] = Field(default_factory=list)


class TemplateUpdate(BaseModel):
    """Partial update; only supplied fields are changed."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    description: Optional[str] = None
    position: Optional[str] = Field(default=None, max_length=100)
    department_id: Optional[uuid.UUID] = None
    parent_template_id: Optional[uuid.UUID] = None
    is_base: Optional[bool] = None
    is_active: Optional[bool] = None


class TemplateDuplicate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    position: Optional[str] = Field(default=None, max_length=100)


class TemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    position: Optional[str] = None
    department_id: Optional[uuid.UUID] = None
    parent_template_id: Optional[uuid.UUID] = None
    is_base: bool
    is_active: bool
    created_at: datetime


class TemplateWithItems(TemplateResponse):
    items: list[TemplateItemResponse] = Field(default_factory=list)


# ═════════════════════════════════════════════════════════════════════
# Documents
# ═════════════════════════════════════════════════════════════════════


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    document_type_id: uuid.UUID
    file_name: str
    file_url: str
    mime_type: Optional[str] = None
    file_size: Optional[int] = None
    status: DocumentStatus
    expires_at: Optional[datetime] = None
    extracted_data: Optional[dict[str, Any]] = None
    created_at: datetime


class DocumentWithType(DocumentResponse):
    document_type: Optional[DocumentTypeResponse] = None


# ═════════════════════════════════════════════════════════════════════
# Engine results
# ═════════════════════════════════════════════════════════════════════


class TemplateApplicationRequest(BaseModel):
    template_ids: Optional[list[uuid.UUID]] = None
    skip_existing: bool = False


class TemplateApplicationResult(BaseModel):
    success: bool = True
    applied_templates: list[uuid.UUID] = Field(default_factory=list)
    created_documents: int = 0
    errors: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)


class ExtraDocumentRequest(BaseModel):
    document_type_id: uuid.UUID
    is_required: bool = False
    expiration_days: Optional[int] = Field(default=None, ge=1)


class ExtraDocumentResult(BaseModel):
    success: bool
    document_id: Optional[uuid.UUID] = None
    created: bool = False
    error: Optional[str] = None


class EmployeeTemplateStatus(BaseModel):
    applied_templates: list[TemplateResponse] = Field(default_factory=list)
    pending_documents: list[DocumentWithType] = Field(default_factory=list)
    completed_documents: list[DocumentWithType] = Field(default_factory=list)
    completion_percentage: int = 0


class BulkApplicationResult(BaseModel):
    success: bool = True
    processed_employees: int = 0
    total_documents_created: int = 0
    errors: list[str] = Field(default_factory=list)


class ExpiryScanResult(BaseModel):
    expired: int = 0
    expiring_soon: int = 0
    alerts_created: int = 0
