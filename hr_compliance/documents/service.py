"""Document service layer — document types, template CRUD, submission, expiry.

Uses:
  - ``TemplateApplicationService`` (engine.py) for obligation placeholders
  - ``AlertService`` for expiry alerts
  - ``ArtifactStorage`` and the analysis client for submitted files
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hr_compliance.alerts.service import AlertService
from hr_compliance.analysis.service import Classifier
from hr_compliance.common.audit import create_audit_entry
from hr_compliance.common.constants import (
    DATE_FORMAT,
    AlertSeverity,
    AlertType,
    DocumentStatus,
)
from hr_compliance.common.exceptions import (
    AnalysisError,
    NotFoundException,
    ValidationException,
)
from hr_compliance.common.pagination import PaginatedResponse, PaginationParams, paginate
from hr_compliance.config import settings
from hr_compliance.core_hr.models import Employee
from hr_compliance.documents.models import (
    Document,
    DocumentTemplate,
    DocumentType,
    TemplateItem,
)
from hr_compliance.documents.schemas import (
    DocumentTypeCreate,
    ExpiryScanResult,
    TemplateCreate,
    TemplateItemCreate,
    TemplateItemResponse,
    TemplateUpdate,
    TemplateWithItems,
)
from hr_compliance.storage.provider import ArtifactStorage

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
# DocumentTypeService
# ═════════════════════════════════════════════════════════════════════


class DocumentTypeService:

    @staticmethod
    async def list_types(db: AsyncSession) -> Sequence[DocumentType]:
        result = await db.execute(select(DocumentType).order_by(DocumentType.name))
        return result.scalars().all()

    @staticmethod
    async def create_type(db: AsyncSession, data: DocumentTypeCreate) -> DocumentType:
        doc_type = DocumentType(**data.model_dump())
        db.add(doc_type)
        await db.flush()
        return doc_type


# ═════════════════════════════════════════════════════════════════════
# TemplateService
# ═════════════════════════════════════════════════════════════════════


class TemplateService:
    """CRUD for document templates and their items."""

    @staticmethod
    async def _load(db: AsyncSession, template_id: uuid.UUID) -> DocumentTemplate:
        result = await db.execute(
            select(DocumentTemplate)
            .where(DocumentTemplate.id == template_id)
            .options(
                selectinload(DocumentTemplate.items).selectinload(TemplateItem.document_type),
            )
            .execution_options(populate_existing=True)
        )
        template = result.scalars().first()
        if template is None:
            raise NotFoundException("DocumentTemplate", str(template_id))
        return template

    @staticmethod
    async def _check_document_type(db: AsyncSession, document_type_id: uuid.UUID) -> None:
        if await db.get(DocumentType, document_type_id) is None:
            raise ValidationException(
                {"document_type_id": [f"Document type '{document_type_id}' does not exist."]},
            )

    @staticmethod
    async def create_template(db: AsyncSession, data: TemplateCreate) -> TemplateWithItems:
        template = DocumentTemplate(**data.model_dump(exclude={"items"}))
        db.add(template)
        await db.flush()

        for item in data.items:
            await TemplateService._check_document_type(db, item.document_type_id)
            db.add(TemplateItem(template_id=template.id, **item.model_dump()))
        await db.flush()

        await create_audit_entry(
            db,
            action="create_template",
            entity_type="document_template",
            entity_id=template.id,
            new_values=data.model_dump(mode="json"),
        )
        return await TemplateService.get_template_with_items(db, template.id)

    @staticmethod
    async def list_templates(
        db: AsyncSession,
        *,
        include_inactive: bool = False,
    ) -> Sequence[DocumentTemplate]:
        query = select(DocumentTemplate).order_by(DocumentTemplate.created_at)
        if not include_inactive:
            query = query.where(DocumentTemplate.is_active.is_(True))
        return (await db.execute(query)).scalars().all()

    @staticmethod
    async def get_template_with_items(
        db: AsyncSession,
        template_id: uuid.UUID,
    ) -> TemplateWithItems:
        template = await TemplateService._load(db, template_id)
        return TemplateWithItems.model_validate(template)

    @staticmethod
    async def get_template_by_position(
        db: AsyncSession,
        position: str,
    ) -> Optional[TemplateWithItems]:
        """Active template for *position*, falling back to the base template."""
        result = await db.execute(
            select(DocumentTemplate.id)
            .where(
                DocumentTemplate.position == position,
                DocumentTemplate.is_active.is_(True),
            )
            .order_by(DocumentTemplate.created_at)
            .limit(1)
        )
        template_id = result.scalars().first()
        if template_id is None:
            result = await db.execute(
                select(DocumentTemplate.id)
                .where(
                    DocumentTemplate.is_base.is_(True),
                    DocumentTemplate.is_active.is_(True),
                )
                .order_by(DocumentTemplate.created_at)
                .limit(1)
            )
            template_id = result.scalars().first()
        if template_id is None:
            return None
        return await TemplateService.get_template_with_items(db, template_id)

    @staticmethod
    async def update_template(
        db: AsyncSession,
        template_id: uuid.UUID,
        data: TemplateUpdate,
    ) -> TemplateWithItems:
        template = await db.get(DocumentTemplate, template_id)
        if template is None:
            raise NotFoundException("DocumentTemplate", str(template_id))

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return await TemplateService.get_template_with_items(db, template_id)

        old_values = {}
        for field, value in changes.items():
            old_values[field] = getattr(template, field)
            setattr(template, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update_template",
            entity_type="document_template",
            entity_id=template.id,
            old_values={k: str(v) if isinstance(v, uuid.UUID) else v for k, v in old_values.items()},
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return await TemplateService.get_template_with_items(db, template_id)

    @staticmethod
    async def add_template_item(
        db: AsyncSession,
        template_id: uuid.UUID,
        data: TemplateItemCreate,
    ) -> TemplateItem:
        if await db.get(DocumentTemplate, template_id) is None:
            raise NotFoundException("DocumentTemplate", str(template_id))
        await TemplateService._check_document_type(db, data.document_type_id)

        item = TemplateItem(template_id=template_id, **data.model_dump())
        db.add(item)
        await db.flush()
        await db.refresh(item, ["document_type"])
        return item

    @staticmethod
    async def remove_template_item(db: AsyncSession, item_id: uuid.UUID) -> None:
        item = await db.get(TemplateItem, item_id)
        if item is None:
            raise NotFoundException("TemplateItem", str(item_id))
        await db.delete(item)
        await db.flush()

    @staticmethod
    async def duplicate_template(
        db: AsyncSession,
        template_id: uuid.UUID,
        name: str,
        position: Optional[str] = None,
    ) -> TemplateWithItems:
        """Copy a template and its items; the copy links back as its child."""
        original = await TemplateService._load(db, template_id)

        copy = DocumentTemplate(
            name=name,
            description=original.description,
            position=position,
            department_id=original.department_id,
            parent_template_id=original.id,
            is_base=False,
            is_active=True,
        )
        db.add(copy)
        await db.flush()

        for item in original.items:
            db.add(TemplateItem(
                template_id=copy.id,
                document_type_id=item.document_type_id,
                is_required=item.is_required,
                has_expiration=item.has_expiration,
                expiration_days=item.expiration_days,
                alert_days_before=item.alert_days_before,
                requires_signature=item.requires_signature,
                is_auto_generated=item.is_auto_generated,
                sort_order=item.sort_order,
                condition=item.condition,
            ))
        await db.flush()
        return await TemplateService.get_template_with_items(db, copy.id)

    @staticmethod
    async def get_inherited_items(
        db: AsyncSession,
        template_id: uuid.UUID,
    ) -> list[TemplateItemResponse]:
        """Items of the parent template, if any."""
        template = await db.get(DocumentTemplate, template_id)
        if template is None:
            raise NotFoundException("DocumentTemplate", str(template_id))
        if template.parent_template_id is None:
            return []

        parent = await TemplateService._load(db, template.parent_template_id)
        return [
            TemplateItemResponse.model_validate(item).model_copy(update={"inherited": True})
            for item in parent.items
        ]

    @staticmethod
    async def get_all_template_items(
        db: AsyncSession,
        template_id: uuid.UUID,
    ) -> list[TemplateItemResponse]:
        """Inherited items first, then the template's own."""
        inherited = await TemplateService.get_inherited_items(db, template_id)
        own = await TemplateService.get_template_with_items(db, template_id)
        return [*inherited, *own.items]


# ═════════════════════════════════════════════════════════════════════
# DocumentService
# ═════════════════════════════════════════════════════════════════════


class DocumentService:
    """Obligation documents: listing, submission and expiry tracking."""

    @staticmethod
    async def list_documents(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        status: Optional[DocumentStatus] = None,
    ) -> PaginatedResponse:
        query = select(Document)
        if employee_id is not None:
            query = query.where(Document.employee_id == employee_id)
        if status is not None:
            query = query.where(Document.status == status)
        if not pagination.sort:
            query = query.order_by(Document.created_at)
        return await paginate(db, query, pagination, model=Document)

    @staticmethod
    async def submit_document(
        db: AsyncSession,
        storage: ArtifactStorage,
        *,
        employee_id: uuid.UUID,
        document_type_id: uuid.UUID,
        file_name: str,
        data: bytes,
        mime_type: str,
        expires_at: Optional[datetime] = None,
        uploaded_by: Optional[uuid.UUID] = None,
        client: Optional[Classifier] = None,
    ) -> Document:
        """Attach an uploaded artifact to the employee's document of this type.

        The existing row (usually a pending placeholder) is filled in and
        moved to ``valid``; a new row is created only when none exists.
        Expiry comes from *expires_at*, else the type's ``validity_days``,
        else the placeholder's own due date is kept.
        """
        if await db.get(Employee, employee_id) is None:
            raise NotFoundException("Employee", str(employee_id))
        doc_type = await db.get(DocumentType, document_type_id)
        if doc_type is None:
            raise NotFoundException("DocumentType", str(document_type_id))

        key = f"documents/{employee_id}/{secrets.token_hex(8)}-{file_name}"
        stored = await storage.put(key, data, mime_type)

        result = await db.execute(
            select(Document)
            .where(
                Document.employee_id == employee_id,
                Document.document_type_id == document_type_id,
            )
            .order_by(Document.created_at)
            .limit(1)
        )
        document = result.scalars().first()
        old_status = document.status.value if document else None
        if document is None:
            document = Document(employee_id=employee_id, document_type_id=document_type_id)
            db.add(document)

        if expires_at is None and doc_type.validity_days:
            expires_at = datetime.now(timezone.utc) + timedelta(days=doc_type.validity_days)

        document.file_name = file_name
        document.file_url = stored.url
        document.file_key = stored.key
        document.mime_type = mime_type
        document.file_size = len(data)
        document.status = DocumentStatus.valid
        document.uploaded_by = uploaded_by
        if expires_at is not None:
            document.expires_at = expires_at

        if client is not None:
            try:
                classification = await asyncio.wait_for(
                    client.classify(stored.url),
                    timeout=settings.ANALYSIS_TIMEOUT_SECONDS,
                )
                document.extracted_data = classification.model_dump(mode="json")
            except (AnalysisError, asyncio.TimeoutError) as exc:
                logger.warning("Classification failed for %s: %s", stored.key, exc)

        await db.flush()
        await create_audit_entry(
            db,
            action="submit_document",
            entity_type="document",
            entity_id=document.id,
            actor_id=uploaded_by,
            old_values={"status": old_status} if old_status else None,
            new_values={"status": DocumentStatus.valid.value, "file_key": stored.key},
        )
        return document

    @staticmethod
    async def scan_expirations(
        db: AsyncSession,
        *,
        now: Optional[datetime] = None,
        warning_days: Optional[int] = None,
    ) -> ExpiryScanResult:
        """Expire past-due valid documents and warn about ones expiring soon.

        Each document gets at most one alert of each kind.
        """
        now = now or datetime.now(timezone.utc)
        window_end = now + timedelta(
            days=warning_days if warning_days is not None else settings.EXPIRY_WARNING_DAYS,
        )
        result = ExpiryScanResult()

        past_due = (
            await db.execute(
                select(Document)
                .where(
                    Document.status == DocumentStatus.valid,
                    Document.expires_at.is_not(None),
                    Document.expires_at <= now,
                )
                .options(selectinload(Document.document_type))
                .execution_options(populate_existing=True)
            )
        ).scalars().all()

        for document in past_due:
            document.status = DocumentStatus.expired
            result.expired += 1
            if await AlertService.has_alert_for_document(db, document.id, AlertType.document_expired):
                continue
            await AlertService.create_alert(
                db,
                employee_id=document.employee_id,
                document_id=document.id,
                type=AlertType.document_expired,
                severity=AlertSeverity.high,
                title=f"Document expired: {document.document_type.name}",
                description=(
                    f'The document "{document.document_type.name}" expired on '
                    f"{document.expires_at.strftime(DATE_FORMAT)}."
                ),
                details={"expires_at": document.expires_at.isoformat()},
            )
            result.alerts_created += 1

        expiring = (
            await db.execute(
                select(Document)
                .where(
                    Document.status == DocumentStatus.valid,
                    Document.expires_at > now,
                    Document.expires_at <= window_end,
                )
                .options(selectinload(Document.document_type))
                .execution_options(populate_existing=True)
            )
        ).scalars().all()

        for document in expiring:
            result.expiring_soon += 1
            if await AlertService.has_alert_for_document(
                db, document.id, AlertType.document_expiring_soon,
            ):
                continue
            await AlertService.create_alert(
                db,
                employee_id=document.employee_id,
                document_id=document.id,
                type=AlertType.document_expiring_soon,
                severity=AlertSeverity.medium,
                title=f"Document expiring soon: {document.document_type.name}",
                description=(
                    f'The document "{document.document_type.name}" expires on '
                    f"{document.expires_at.strftime(DATE_FORMAT)}."
                ),
                details={"expires_at": document.expires_at.isoformat()},
            )
            result.alerts_created += 1

        await db.flush()
        logger.info(
            "Expiry scan: %d expired, %d expiring soon, %d alert(s) created",
            result.expired, result.expiring_soon, result.alerts_created,
        )
        return result
