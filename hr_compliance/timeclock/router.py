"""Time-clock endpoints.

Routes:
    /config          — Get, update integration settings
    /import          — Batch import of a vendor export (synchronous analysis)
    /preview         — Parse an export without importing
    /upload-manual   — Single time-sheet file (background analysis)
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from hr_compliance.analysis.client import get_analysis_client
from hr_compliance.analysis.service import Classifier
from hr_compliance.analysis.tasks import AnalysisTaskQueue, get_analysis_queue
from hr_compliance.common.constants import TimeclockSystem
from hr_compliance.common.rate_limit import IMPORT_RATE_LIMIT, limiter
from hr_compliance.database import get_db
from hr_compliance.recurring.router import read_upload
from hr_compliance.storage.provider import ArtifactStorage, get_storage
from hr_compliance.timeclock.parsers import decode_export
from hr_compliance.timeclock.schemas import (
    ManualUploadResult,
    TimeclockConfigResponse,
    TimeclockConfigUpdate,
    TimeclockImportResult,
    TimeclockPreview,
)
from hr_compliance.timeclock.service import TimeclockService

router = APIRouter(prefix="", tags=["timeclock"])


# ── Config ──────────────────────────────────────────────────────────

@router.get("/config", response_model=TimeclockConfigResponse)
async def get_timeclock_config(db: AsyncSession = Depends(get_db)):
    config = await TimeclockService.get_config(db)
    return TimeclockConfigResponse.from_config(config)


@router.put("/config", response_model=TimeclockConfigResponse)
async def update_timeclock_config(
    body: TimeclockConfigUpdate,
    db: AsyncSession = Depends(get_db),
):
    config = await TimeclockService.update_config(db, body)
    return TimeclockConfigResponse.from_config(config)


# ── POST /import ────────────────────────────────────────────────────
# ``format`` falls back to the configured system when omitted.

@router.post("/import", response_model=TimeclockImportResult)
@limiter.limit(IMPORT_RATE_LIMIT)
async def import_timeclock(
    request: Request,
    file: UploadFile = File(...),
    format: Optional[TimeclockSystem] = Form(None),
    uploaded_by: Optional[uuid.UUID] = Form(None),
    db: AsyncSession = Depends(get_db),
    storage: ArtifactStorage = Depends(get_storage),
    client: Classifier = Depends(get_analysis_client),
):
    content = decode_export(await read_upload(file))
    if format is None:
        format = (await TimeclockService.get_config(db)).system
    return await TimeclockService.import_file(
        db, storage, client, content, format, actor_id=uploaded_by,
    )


@router.post("/preview", response_model=TimeclockPreview)
async def preview_timeclock(
    file: UploadFile = File(...),
    format: Optional[TimeclockSystem] = Form(None),
    db: AsyncSession = Depends(get_db),
):
    content = decode_export(await read_upload(file))
    if format is None:
        format = (await TimeclockService.get_config(db)).system
    return TimeclockService.preview(content, format)


# ── POST /upload-manual ─────────────────────────────────────────────

@router.post("/upload-manual", response_model=ManualUploadResult, status_code=202)
async def upload_manual_timesheet(
    employee_id: uuid.UUID = Form(...),
    reference_date: date = Form(...),
    uploaded_by: Optional[uuid.UUID] = Form(None),
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    storage: ArtifactStorage = Depends(get_storage),
    queue: AnalysisTaskQueue = Depends(get_analysis_queue),
):
    contents = await read_upload(file)
    return await TimeclockService.process_manual_upload(
        db,
        storage,
        queue,
        employee_id=employee_id,
        reference_date=reference_date,
        file_name=file.filename or "timesheet",
        data=contents,
        mime_type=file.content_type or "application/octet-stream",
        actor_id=uploaded_by,
    )
