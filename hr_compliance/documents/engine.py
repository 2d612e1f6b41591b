"""Template resolution engine.

Resolves which document templates apply to an employee and materializes
their items as ``pending`` Document placeholders, idempotently: a
placeholder is never created for an (employee, document type) pair that
already has a Document, whatever its status.

Template precedence is fixed: base templates, then department-only
templates (no position), then position templates. The three groups are
fetched independently and concatenated without de-duplication.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hr_compliance.alerts.service import AlertService
from hr_compliance.analysis.scoring import round_half_up
from hr_compliance.common.constants import (
    DATE_FORMAT,
    AlertSeverity,
    AlertType,
    DocumentStatus,
    EmployeeStatus,
)
from hr_compliance.common.exceptions import AppException, NotFoundException
from hr_compliance.core_hr.models import Employee
from hr_compliance.documents.models import (
    Document,
    DocumentTemplate,
    DocumentType,
    TemplateItem,
)
from hr_compliance.documents.schemas import (
    BulkApplicationResult,
    DocumentWithType,
    EmployeeTemplateStatus,
    ExtraDocumentResult,
    TemplateApplicationResult,
    TemplateResponse,
)

logger = logging.getLogger(__name__)

SKIP_EXISTING_NOTE = "Employee already has documents, skipping template application"
PENDING_PREFIX = "[PENDING]"


async def _find_document(
    db: AsyncSession,
    employee_id: uuid.UUID,
    document_type_id: uuid.UUID,
) -> Optional[Document]:
    result = await db.execute(
        select(Document)
        .where(
            Document.employee_id == employee_id,
            Document.document_type_id == document_type_id,
        )
        .limit(1)
    )
    return result.scalars().first()


async def _create_placeholder(
    db: AsyncSession,
    employee_id: uuid.UUID,
    doc_type: DocumentType,
    *,
    is_required: bool,
    expiration_days: Optional[int],
    alert_title: str,
    alert_reason: str,
) -> Optional[Document]:
    """Create a pending Document (and its missing-document alert) unless one exists."""
    if await _find_document(db, employee_id, doc_type.id) is not None:
        return None

    expires_at = None
    if expiration_days:
        expires_at = datetime.now(timezone.utc) + timedelta(days=expiration_days)

    document = Document(
        employee_id=employee_id,
        document_type_id=doc_type.id,
        file_name=f"{PENDING_PREFIX} {doc_type.name}",
        file_url="",
        file_key="",
        status=DocumentStatus.pending,
        expires_at=expires_at,
    )
    db.add(document)
    await db.flush()

    if is_required:
        description = f'The document "{doc_type.name}" {alert_reason}.'
        if expires_at is not None:
            description += f" Due: {expires_at.strftime(DATE_FORMAT)}"
        await AlertService.create_alert(
            db,
            employee_id=employee_id,
            document_id=document.id,
            type=AlertType.document_missing,
            severity=AlertSeverity.medium,
            title=f"{alert_title}: {doc_type.name}",
            description=description,
            details={
                "document_type": doc_type.name,
                "due_date": expires_at.date().isoformat() if expires_at else None,
            },
        )
    return document


class TemplateApplicationService:
    """Template resolution, application and completion tracking."""

    # ── Resolution ──────────────────────────────────────────────────

    @staticmethod
    async def find_matching_templates(
        db: AsyncSession,
        position: Optional[str],
        department_id: Optional[uuid.UUID],
    ) -> list[DocumentTemplate]:
        """Active templates for a role, ordered base → department → position."""
        base = (
            await db.execute(
                select(DocumentTemplate)
                .where(
                    DocumentTemplate.is_base.is_(True),
                    DocumentTemplate.is_active.is_(True),
                )
                .order_by(DocumentTemplate.created_at)
            )
        ).scalars().all()

        department: Sequence[DocumentTemplate] = []
        if department_id is not None:
            department = (
                await db.execute(
                    select(DocumentTemplate)
                    .where(
                        DocumentTemplate.department_id == department_id,
                        DocumentTemplate.position.is_(None),
                        DocumentTemplate.is_active.is_(True),
                        DocumentTemplate.is_base.is_(False),
                    )
                    .order_by(DocumentTemplate.created_at)
                )
            ).scalars().all()

        by_position: Sequence[DocumentTemplate] = []
        if position:
            by_position = (
                await db.execute(
                    select(DocumentTemplate)
                    .where(
                        DocumentTemplate.position == position,
                        DocumentTemplate.is_active.is_(True),
                        DocumentTemplate.is_base.is_(False),
                    )
                    .order_by(DocumentTemplate.created_at)
                )
            ).scalars().all()

        return [*base, *department, *by_position]

    # ── Application ─────────────────────────────────────────────────

    @staticmethod
    async def _apply_template(
        db: AsyncSession,
        employee_id: uuid.UUID,
        template: DocumentTemplate,
    ) -> int:
        rows = (
            await db.execute(
                select(TemplateItem, DocumentType)
                .join(DocumentType, TemplateItem.document_type_id == DocumentType.id)
                .where(TemplateItem.template_id == template.id)
                .order_by(TemplateItem.sort_order)
            )
        ).all()

        created = 0
        for item, doc_type in rows:
            document = await _create_placeholder(
                db,
                employee_id,
                doc_type,
                is_required=item.is_required,
                expiration_days=item.expiration_days if item.has_expiration else None,
                alert_title="Pending document",
                alert_reason="is required and has not been submitted yet",
            )
            if document is not None:
                created += 1
        return created

    @staticmethod
    async def apply_templates_to_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        template_ids: Optional[Sequence[uuid.UUID]] = None,
        skip_existing: bool = False,
    ) -> TemplateApplicationResult:
        """Create pending placeholders for every item of the resolved templates.

        Each template runs inside its own SAVEPOINT; a failing template is
        rolled back, reported in ``errors`` and the remaining ones still run.
        """
        employee = await db.get(Employee, employee_id)
        if employee is None:
            raise NotFoundException("Employee", str(employee_id))

        result = TemplateApplicationResult()

        if skip_existing:
            has_any = (
                await db.execute(
                    select(Document.id).where(Document.employee_id == employee_id).limit(1)
                )
            ).first()
            if has_any is not None:
                result.notes.append(SKIP_EXISTING_NOTE)
                return result

        if template_ids:
            found = (
                await db.execute(
                    select(DocumentTemplate).where(
                        DocumentTemplate.id.in_(list(template_ids)),
                        DocumentTemplate.is_active.is_(True),
                    )
                )
            ).scalars().all()
            order = {tid: i for i, tid in enumerate(template_ids)}
            templates = sorted(found, key=lambda t: order[t.id])
        else:
            templates = await TemplateApplicationService.find_matching_templates(
                db, employee.position, employee.department_id,
            )

        for template in templates:
            try:
                async with db.begin_nested():
                    created = await TemplateApplicationService._apply_template(
                        db, employee_id, template,
                    )
            except SQLAlchemyError as exc:
                logger.error("Template %s failed for employee %s: %s", template.id, employee_id, exc)
                result.errors.append(f"Error applying template {template.id}: {exc}")
                continue
            result.applied_templates.append(template.id)
            result.created_documents += created

        result.success = not result.errors
        logger.info(
            "Applied %d template(s) to employee %s: %d document(s) created",
            len(result.applied_templates), employee_id, result.created_documents,
        )
        return result

    @staticmethod
    async def add_extra_document(
        db: AsyncSession,
        employee_id: uuid.UUID,
        document_type_id: uuid.UUID,
        *,
        is_required: bool = False,
        expiration_days: Optional[int] = None,
    ) -> ExtraDocumentResult:
        """Single-item version of template application, outside any template."""
        if await db.get(Employee, employee_id) is None:
            raise NotFoundException("Employee", str(employee_id))
        doc_type = await db.get(DocumentType, document_type_id)
        if doc_type is None:
            raise NotFoundException("DocumentType", str(document_type_id))

        document = await _create_placeholder(
            db,
            employee_id,
            doc_type,
            is_required=is_required,
            expiration_days=expiration_days,
            alert_title="Additional document pending",
            alert_reason="was added as required",
        )
        if document is None:
            existing = await _find_document(db, employee_id, document_type_id)
            return ExtraDocumentResult(
                success=True,
                document_id=existing.id if existing else None,
                created=False,
            )
        return ExtraDocumentResult(success=True, document_id=document.id, created=True)

    # ── Status ──────────────────────────────────────────────────────

    @staticmethod
    async def get_employee_template_status(
        db: AsyncSession,
        employee_id: uuid.UUID,
    ) -> EmployeeTemplateStatus:
        """Live completion status; degrades to an empty result on DB errors."""
        try:
            employee = await db.get(Employee, employee_id)
            if employee is None:
                return EmployeeTemplateStatus()

            templates = await TemplateApplicationService.find_matching_templates(
                db, employee.position, employee.department_id,
            )
            documents = (
                await db.execute(
                    select(Document)
                    .where(Document.employee_id == employee_id)
                    .options(selectinload(Document.document_type))
                    .order_by(Document.created_at)
                    .execution_options(populate_existing=True)
                )
            ).scalars().all()
        except SQLAlchemyError:
            logger.exception("Could not compute template status for %s", employee_id)
            return EmployeeTemplateStatus()

        pending = [d for d in documents if d.is_outstanding]
        completed = [d for d in documents if d.is_completed]
        total = len(documents)
        percentage = (
            round_half_up(Decimal(len(completed)) * 100 / Decimal(total)) if total else 100
        )

        return EmployeeTemplateStatus(
            applied_templates=[TemplateResponse.model_validate(t) for t in templates],
            pending_documents=[DocumentWithType.model_validate(d) for d in pending],
            completed_documents=[DocumentWithType.model_validate(d) for d in completed],
            completion_percentage=percentage,
        )

    # ── Batch ───────────────────────────────────────────────────────

    @staticmethod
    async def bulk_apply_templates(db: AsyncSession) -> BulkApplicationResult:
        """Apply templates to every active employee that has no documents yet.

        Runs sequentially; one employee's failure is recorded and the loop
        moves on.
        """
        result = BulkApplicationResult()
        try:
            employee_ids = (
                await db.execute(
                    select(Employee.id)
                    .where(Employee.status == EmployeeStatus.active)
                    .order_by(Employee.created_at)
                )
            ).scalars().all()
        except SQLAlchemyError as exc:
            logger.exception("Could not list employees for bulk template application")
            return BulkApplicationResult(success=False, errors=[str(exc)])

        for employee_id in employee_ids:
            try:
                applied = await TemplateApplicationService.apply_templates_to_employee(
                    db, employee_id, skip_existing=True,
                )
            except (AppException, SQLAlchemyError) as exc:
                logger.error("Bulk template application failed for %s: %s", employee_id, exc)
                result.errors.append(f"Employee {employee_id}: {exc}")
                continue

            if applied.created_documents > 0:
                result.processed_employees += 1
                result.total_documents_created += applied.created_documents
            result.errors.extend(f"Employee {employee_id}: {e}" for e in applied.errors)

        result.success = not result.errors
        logger.info(
            "Bulk template application: %d employee(s), %d document(s), %d error(s)",
            result.processed_employees, result.total_documents_created, len(result.errors),
        )
        return result

    @staticmethod
    async def get_available_positions(db: AsyncSession) -> list[str]:
        """Distinct positions held by active employees."""
        try:
            rows = (
                await db.execute(
                    select(Employee.position)
                    .where(
                        Employee.status == EmployeeStatus.active,
                        Employee.position.is_not(None),
                    )
                    .distinct()
                    .order_by(Employee.position)
                )
            ).scalars().all()
        except SQLAlchemyError:
            logger.exception("Could not list positions")
            return []
        return list(rows)
