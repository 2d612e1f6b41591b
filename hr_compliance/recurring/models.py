"""RecurringDocument ORM model (time sheets and payslips)."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_compliance.common.constants import ComplianceStatus, RecurringDocumentType
from hr_compliance.database import Base

if TYPE_CHECKING:
    from hr_compliance.core_hr.models import Employee


class RecurringDocument(Base):
    """A periodic document whose content is analyzed for conformance.

    Rows start ``pending`` with ``processed_at`` NULL; only a completed
    analysis moves them to compliant / warning / non_compliant.
    """

    __tablename__ = "recurring_documents"
    __table_args__ = (
        sa.Index("ix_recurring_documents_employee_ref", "employee_id", "reference_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id"),
        nullable=False,
    )
    type: Mapped[RecurringDocumentType] = mapped_column(
        sa.Enum(RecurringDocumentType, name="recurring_document_type"),
        nullable=False,
    )
    reference_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    file_name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    file_url: Mapped[str] = mapped_column(sa.Text, nullable=False)
    file_key: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    ocr_text: Mapped[Optional[str]] = mapped_column(sa.Text)
    extracted_data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB)
    ai_analysis: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB)
    compliance_score: Mapped[Optional[int]] = mapped_column(sa.Integer)
    compliance_status: Mapped[ComplianceStatus] = mapped_column(
        sa.Enum(ComplianceStatus, name="compliance_status"),
        default=ComplianceStatus.pending,
        nullable=False,
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    uploaded_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    employee: Mapped["Employee"] = relationship(back_populates="recurring_documents")

    def __repr__(self) -> str:
        return (
            f"<RecurringDocument {self.type.value} {self.reference_date}"
            f" [{self.compliance_status.value}]>"
        )
