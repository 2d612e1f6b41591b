"""Core HR Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Response          → response bodies (read)
"""


import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from hr_compliance.common.constants import EmployeeStatus
from hr_compliance.core_hr.models import normalize_tax_id
from hr_compliance.documents.schemas import TemplateApplicationResult


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class DepartmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    created_at: datetime


# ═════════════════════════════════════════════════════════════════════
# Employee — write schemas
# ═════════════════════════════════════════════════════════════════════


class EmployeeCreate(BaseModel):
    """Payload for registering an employee."""

    name: str = Field(..., min_length=1, max_length=200)
    tax_id: str = Field(..., min_length=1, max_length=20)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    position: Optional[str] = Field(None, max_length=100)
    department_id: Optional[uuid.UUID] = None
    admission_date: Optional[date] = None
    salary: Optional[Decimal] = Field(None, ge=0)
    work_hours: Optional[str] = Field(None, max_length=50)

    @field_validator("tax_id")
    @classmethod
    def _digits_only(cls, value: str) -> str:
        digits = normalize_tax_id(value)
        if not digits:
            raise ValueError("tax_id must contain digits")
        return digits


class EmployeeUpdate(BaseModel):
    """Partial-update payload (all fields optional)."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    position: Optional[str] = Field(None, max_length=100)
    department_id: Optional[uuid.UUID] = None
    admission_date: Optional[date] = None
    salary: Optional[Decimal] = Field(None, ge=0)
    work_hours: Optional[str] = Field(None, max_length=50)
    status: Optional[EmployeeStatus] = None


# ═════════════════════════════════════════════════════════════════════
# Employee — read schemas
# ═════════════════════════════════════════════════════════════════════


class EmployeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    tax_id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    position: Optional[str] = None
    department_id: Optional[uuid.UUID] = None
    admission_date: Optional[date] = None
    salary: Optional[Decimal] = None
    work_hours: str
    status: EmployeeStatus
    compliance_score: int
    created_at: datetime


class EmployeeCreated(BaseModel):
    """Employee plus the outcome of the automatic template application."""

    employee: EmployeeResponse
    templates: TemplateApplicationResult
