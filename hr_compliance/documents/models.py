"""Document obligation ORM models: DocumentType, Document, DocumentTemplate,
TemplateItem."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_compliance.common.constants import DocumentCategory, DocumentStatus
from hr_compliance.database import Base

if TYPE_CHECKING:
    from hr_compliance.core_hr.models import Employee


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentType(Base):
    __tablename__ = "document_types"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    category: Mapped[DocumentCategory] = mapped_column(
        sa.Enum(DocumentCategory, name="document_category"), nullable=False,
    )
    is_required: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    # NULL = no expiration
    validity_days: Mapped[Optional[int]] = mapped_column(sa.Integer)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )

    def __repr__(self) -> str:
        return f"<DocumentType {self.name!r} ({self.category.value})>"


class Document(Base):
    """One obligation instance: a document an employee holds or still owes.

    Template-created rows start as ``pending`` with an empty ``file_url``;
    the upload flow fills the artifact in and moves them to ``valid``.
    """

    __tablename__ = "documents"
    __table_args__ = (
        sa.Index("ix_documents_employee_type", "employee_id", "document_type_id"),
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
    document_type_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("document_types.id"),
        nullable=False,
    )
    file_name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    file_url: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")
    file_key: Mapped[str] = mapped_column(sa.String(255), nullable=False, default="")
    mime_type: Mapped[Optional[str]] = mapped_column(sa.String(100))
    file_size: Mapped[Optional[int]] = mapped_column(sa.Integer)
    status: Mapped[DocumentStatus] = mapped_column(
        sa.Enum(DocumentStatus, name="document_status"),
        default=DocumentStatus.pending,
        nullable=False,
    )
    expires_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    extracted_data: Mapped[Optional[dict]] = mapped_column(JSONB)
    uploaded_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
    )

    # Relationships
    employee: Mapped["Employee"] = relationship(
        back_populates="documents",
    )
    document_type: Mapped[DocumentType] = relationship()

    @property
    def is_completed(self) -> bool:
        return self.status == DocumentStatus.valid and bool(self.file_url)

    @property
    def is_outstanding(self) -> bool:
        return self.status == DocumentStatus.pending or not self.file_url


class DocumentTemplate(Base):
    """Reusable bundle of document obligations.

    Selection: ``is_base`` applies to everyone; ``department_id`` without a
    position applies to a whole department; ``position`` targets a role.
    """

    __tablename__ = "document_templates"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    position: Mapped[Optional[str]] = mapped_column(sa.String(100))
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("departments.id"),
    )
    parent_template_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("document_templates.id"),
    )
    is_base: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
    )

    # Relationships
    items: Mapped[list[TemplateItem]] = relationship(
        back_populates="template",
        order_by="TemplateItem.sort_order",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<DocumentTemplate {self.name!r}>"


class TemplateItem(Base):
    __tablename__ = "template_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    template_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("document_templates.id", ondelete="CASCADE"),
        nullable=False,
    )
    document_type_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("document_types.id"),
        nullable=False,
    )
    is_required: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    has_expiration: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    expiration_days: Mapped[Optional[int]] = mapped_column(sa.Integer)
    alert_days_before: Mapped[Optional[int]] = mapped_column(sa.Integer)
    requires_signature: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    is_auto_generated: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    sort_order: Mapped[int] = mapped_column(sa.Integer, default=0)
    condition: Mapped[Optional[dict]] = mapped_column(JSONB)

    # Relationships
    template: Mapped[DocumentTemplate] = relationship(back_populates="items")
    document_type: Mapped[DocumentType] = relationship()
