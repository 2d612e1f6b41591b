"""Recurring document endpoints — list, upload, reprocess."""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from hr_compliance.analysis.client import get_analysis_client
from hr_compliance.analysis.service import Classifier
from hr_compliance.analysis.tasks import AnalysisTaskQueue, get_analysis_queue
from hr_compliance.common.constants import RecurringDocumentType
from hr_compliance.common.exceptions import ValidationException
from hr_compliance.common.pagination import PaginationParams
from hr_compliance.config import settings
from hr_compliance.database import get_db
from hr_compliance.recurring.schemas import RecurringDocumentResponse, RecurringUploadResponse
from hr_compliance.recurring.service import RecurringDocumentService
from hr_compliance.storage.provider import ArtifactStorage, get_storage

router = APIRouter(prefix="", tags=["recurring"])


async def read_upload(file: UploadFile) -> bytes:
    """Read an upload, enforcing ``MAX_UPLOAD_SIZE_MB``."""
    contents = await file.read()
    if len(contents) > settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024:
        raise ValidationException(
            {"file": [f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE_MB} MB."]},
        )
    return contents


@router.get("")
async def list_recurring_documents(
    employee_id: Optional[uuid.UUID] = Query(None),
    type: Optional[RecurringDocumentType] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    result = await RecurringDocumentService.list_documents(
        db,
        pagination,
        employee_id=employee_id,
        type=type,
        start_date=start_date,
        end_date=end_date,
    )
    return {
        "data": [
            RecurringDocumentResponse.model_validate(d).model_dump(mode="json")
            for d in result.data
        ],
        "meta": result.meta.model_dump(),
    }


# ── POST /upload — store + synchronous analysis ─────────────────────

@router.post("/upload", status_code=201, response_model=RecurringUploadResponse)
async def upload_recurring_document(
    employee_id: uuid.UUID = Form(...),
    type: RecurringDocumentType = Form(...),
    reference_date: date = Form(...),
    uploaded_by: Optional[uuid.UUID] = Form(None),
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    storage: ArtifactStorage = Depends(get_storage),
    client: Classifier = Depends(get_analysis_client),
):
    contents = await read_upload(file)
    outcome = await RecurringDocumentService.upload(
        db,
        storage,
        client,
        employee_id=employee_id,
        type=type,
        reference_date=reference_date,
        file_name=file.filename or "upload",
        data=contents,
        mime_type=file.content_type or "application/octet-stream",
        actor_id=uploaded_by,
    )
    return RecurringUploadResponse(
        document=RecurringDocumentResponse.model_validate(outcome.document),
        analyzed=outcome.succeeded,
        alerts=len(outcome.alerts),
        error=outcome.error,
    )


@router.get("/{document_id}", response_model=RecurringDocumentResponse)
async def get_recurring_document(
    document_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await RecurringDocumentService.get_document(db, document_id)


# ── POST /{id}/reprocess — queue a background re-analysis ───────────

@router.post("/{document_id}/reprocess", status_code=202)
async def reprocess_recurring_document(
    document_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    queue: AnalysisTaskQueue = Depends(get_analysis_queue),
):
    document = await RecurringDocumentService.reprocess(db, queue, document_id)
    return {"success": True, "message": "Reprocessing started", "document_id": str(document.id)}
