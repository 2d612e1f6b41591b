"""Core HR ORM models: Department, Employee.

SQLAlchemy 2.0 async-compatible models with Mapped[] annotations.
``Employee.compliance_score`` is the rolling score maintained by the
analysis pipeline; every other column is owned by HR actions.
"""

from __future__ import annotations

import re
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_compliance.common.constants import DEFAULT_COMPLIANCE_SCORE, EmployeeStatus
from hr_compliance.database import Base

if TYPE_CHECKING:
    from hr_compliance.alerts.models import ComplianceAlert
    from hr_compliance.documents.models import Document
    from hr_compliance.recurring.models import RecurringDocument


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class Department(Base):
    """Organisational department."""

    __tablename__ = "departments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )

    # ── Relationships ───────────────────────────────────────────────
    employees: Mapped[list[Employee]] = relationship(
        back_populates="department",
    )

    def __repr__(self) -> str:
        return f"<Department {self.name!r}>"


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class Employee(Base):
    """Core employee record — central entity for compliance tracking."""

    __tablename__ = "employees"

    # ── Primary key ─────────────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # ── Identity ────────────────────────────────────────────────────
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    # Digits only; see normalize_tax_id()
    tax_id: Mapped[str] = mapped_column(
        sa.String(14), unique=True, nullable=False,
    )
    email: Mapped[Optional[str]] = mapped_column(sa.String(320))
    phone: Mapped[Optional[str]] = mapped_column(sa.String(20))

    # ── Role / org ──────────────────────────────────────────────────
    position: Mapped[Optional[str]] = mapped_column(sa.String(100))
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("departments.id"),
    )
    admission_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    salary: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(10, 2))
    work_hours: Mapped[str] = mapped_column(
        sa.String(50), default="08:00-17:00",
    )

    # ── Lifecycle / compliance ──────────────────────────────────────
    status: Mapped[EmployeeStatus] = mapped_column(
        sa.Enum(EmployeeStatus, name="employee_status"),
        default=EmployeeStatus.active,
        nullable=False,
    )
    compliance_score: Mapped[int] = mapped_column(
        sa.Integer, default=DEFAULT_COMPLIANCE_SCORE,
    )

    # ── Timestamps ──────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
    )

    # ── Relationships ───────────────────────────────────────────────
    department: Mapped[Optional[Department]] = relationship(
        back_populates="employees",
    )
    documents: Mapped[list["Document"]] = relationship(
        back_populates="employee",
    )
    recurring_documents: Mapped[list["RecurringDocument"]] = relationship(
        back_populates="employee",
    )
    alerts: Mapped[list["ComplianceAlert"]] = relationship(
        back_populates="employee",
    )

    def __repr__(self) -> str:
        return f"<Employee {self.name!r} ({self.tax_id})>"


def normalize_tax_id(value: Optional[str]) -> str:
    """Strip every non-digit character: ``"123.456.789-00" → "12345678900"``."""
    return re.sub(r"[^0-9]", "", value or "")
