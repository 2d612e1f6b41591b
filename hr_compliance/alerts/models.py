"""ComplianceAlert ORM model."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_compliance.common.constants import AlertSeverity, AlertStatus, AlertType
from hr_compliance.database import Base

if TYPE_CHECKING:
    from hr_compliance.core_hr.models import Employee


class ComplianceAlert(Base):
    """Severity-tagged finding about an employee.

    Alerts are created ``open``; acknowledging, resolving and dismissing are
    HR actions outside the lifecycle engine.
    """

    __tablename__ = "compliance_alerts"
    __table_args__ = (
        sa.Index("ix_compliance_alerts_employee_status", "employee_id", "status"),
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
    recurring_document_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("recurring_documents.id"),
    )
    document_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("documents.id"),
    )
    type: Mapped[AlertType] = mapped_column(
        sa.Enum(AlertType, name="alert_type"), nullable=False,
    )
    severity: Mapped[AlertSeverity] = mapped_column(
        sa.Enum(AlertSeverity, name="alert_severity"), nullable=False,
    )
    title: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    description: Mapped[str] = mapped_column(sa.Text, nullable=False)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB)
    status: Mapped[AlertStatus] = mapped_column(
        sa.Enum(AlertStatus, name="alert_status"),
        default=AlertStatus.open,
        nullable=False,
    )
    resolved_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    resolved_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    resolution_notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    employee: Mapped["Employee"] = relationship(back_populates="alerts")

    def __repr__(self) -> str:
        return f"<ComplianceAlert {self.type.value} ({self.severity.value})>"
