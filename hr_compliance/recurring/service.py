"""Recurring document service — upload with synchronous analysis, reprocess."""

from __future__ import annotations

import secrets
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_compliance.analysis.scoring import UPLOAD_THRESHOLDS
from hr_compliance.analysis.service import AnalysisOutcome, AnalysisService, Classifier
from hr_compliance.analysis.tasks import AnalysisTaskQueue
from hr_compliance.common.audit import create_audit_entry
from hr_compliance.common.constants import ComplianceStatus, RecurringDocumentType
from hr_compliance.common.exceptions import NotFoundException
from hr_compliance.common.pagination import PaginatedResponse, PaginationParams, paginate
from hr_compliance.core_hr.models import Employee
from hr_compliance.recurring.models import RecurringDocument
from hr_compliance.storage.provider import ArtifactStorage


class RecurringDocumentService:

    @staticmethod
    async def list_documents(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        type: Optional[RecurringDocumentType] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> PaginatedResponse:
        query = select(RecurringDocument)
        if employee_id is not None:
            query = query.where(RecurringDocument.employee_id == employee_id)
        if type is not None:
            query = query.where(RecurringDocument.type == type)
        if start_date is not None:
            query = query.where(RecurringDocument.reference_date >= start_date)
        if end_date is not None:
            query = query.where(RecurringDocument.reference_date <= end_date)
        if not pagination.sort:
            query = query.order_by(RecurringDocument.reference_date.desc())
        return await paginate(db, query, pagination, model=RecurringDocument)

    @staticmethod
    async def get_document(db: AsyncSession, document_id: uuid.UUID) -> RecurringDocument:
        document = await db.get(RecurringDocument, document_id)
        if document is None:
            raise NotFoundException("RecurringDocument", str(document_id))
        return document

    @staticmethod
    async def upload(
        db: AsyncSession,
        storage: ArtifactStorage,
        client: Classifier,
        *,
        employee_id: uuid.UUID,
        type: RecurringDocumentType,
        reference_date: date,
        file_name: str,
        data: bytes,
        mime_type: str,
        actor_id: Optional[uuid.UUID] = None,
    ) -> AnalysisOutcome:
        """Store the file, create a pending document and analyze it inline.

        A classifier failure leaves the document ``pending``; the upload
        itself still succeeds and the error is carried on the outcome.
        """
        employee = await db.get(Employee, employee_id)
        if employee is None:
            raise NotFoundException("Employee", str(employee_id))

        key = f"recurring/{employee_id}/{type.value}/{secrets.token_hex(8)}-{file_name}"
        stored = await storage.put(key, data, mime_type)

        document = RecurringDocument(
            employee_id=employee_id,
            type=type,
            reference_date=reference_date,
            file_name=file_name,
            file_url=stored.url,
            file_key=stored.key,
            compliance_status=ComplianceStatus.pending,
            uploaded_by=actor_id,
        )
        db.add(document)
        try:
            await db.flush()
        except SQLAlchemyError:
            await storage.delete(stored.key)
            raise

        await create_audit_entry(
            db,
            action="upload_recurring_document",
            entity_type="recurring_document",
            entity_id=document.id,
            actor_id=actor_id,
            new_values={"type": type.value, "reference_date": reference_date.isoformat()},
        )

        return await AnalysisService.process_document(db, client, document, UPLOAD_THRESHOLDS)

    @staticmethod
    async def reprocess(
        db: AsyncSession,
        queue: AnalysisTaskQueue,
        document_id: uuid.UUID,
    ) -> RecurringDocument:
        """Queue a fresh analysis of an already-stored document."""
        document = await RecurringDocumentService.get_document(db, document_id)
        queue.submit(document.id, UPLOAD_THRESHOLDS)
        return document
