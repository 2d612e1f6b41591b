"""Document obligation endpoints.

Routes (mounted at /api/v1/documents and /api/v1/templates):
    documents_router
        /types                         — List, create document types
        ""                             — List documents
        /submit                        — Upload an artifact for an obligation
        /expiry-scan                   — Expire past-due documents, raise alerts
        /employees/{id}/apply-templates
        /employees/{id}/extra
        /employees/{id}/status
        /bulk-apply                    — Apply templates to every active employee
    templates_router
        CRUD, items, duplicate, inherited items, positions
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from hr_compliance.analysis.client import get_analysis_client
from hr_compliance.analysis.service import Classifier
from hr_compliance.common.constants import DocumentStatus
from hr_compliance.common.pagination import PaginationParams
from hr_compliance.database import get_db
from hr_compliance.documents.engine import TemplateApplicationService
from hr_compliance.documents.schemas import (
    BulkApplicationResult,
    DocumentResponse,
    DocumentTypeCreate,
    DocumentTypeResponse,
    EmployeeTemplateStatus,
    ExpiryScanResult,
    ExtraDocumentRequest,
    ExtraDocumentResult,
    TemplateApplicationRequest,
    TemplateApplicationResult,
    TemplateCreate,
    TemplateDuplicate,
    TemplateItemCreate,
    TemplateItemResponse,
    TemplateResponse,
    TemplateUpdate,
    TemplateWithItems,
)
from hr_compliance.documents.service import (
    DocumentService,
    DocumentTypeService,
    TemplateService,
)
from hr_compliance.recurring.router import read_upload
from hr_compliance.storage.provider import ArtifactStorage, get_storage

documents_router = APIRouter(prefix="", tags=["documents"])
templates_router = APIRouter(prefix="", tags=["templates"])


# ═════════════════════════════════════════════════════════════════════
# Document types
# ═════════════════════════════════════════════════════════════════════


@documents_router.get("/types", response_model=list[DocumentTypeResponse])
async def list_document_types(db: AsyncSession = Depends(get_db)):
    return await DocumentTypeService.list_types(db)


@documents_router.post("/types", status_code=201, response_model=DocumentTypeResponse)
async def create_document_type(
    body: DocumentTypeCreate,
    db: AsyncSession = Depends(get_db),
):
    return await DocumentTypeService.create_type(db, body)


# ═════════════════════════════════════════════════════════════════════
# Documents
# ═════════════════════════════════════════════════════════════════════


@documents_router.get("")
async def list_documents(
    employee_id: Optional[uuid.UUID] = Query(None),
    status: Optional[DocumentStatus] = Query(None),
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    result = await DocumentService.list_documents(
        db, pagination, employee_id=employee_id, status=status,
    )
    return {
        "data": [
            DocumentResponse.model_validate(d).model_dump(mode="json") for d in result.data
        ],
        "meta": result.meta.model_dump(),
    }


@documents_router.post("/submit", status_code=201, response_model=DocumentResponse)
async def submit_document(
    employee_id: uuid.UUID = Form(...),
    document_type_id: uuid.UUID = Form(...),
    uploaded_by: Optional[uuid.UUID] = Form(None),
    classify: bool = Form(False),
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    storage: ArtifactStorage = Depends(get_storage),
    client: Classifier = Depends(get_analysis_client),
):
    contents = await read_upload(file)
    return await DocumentService.submit_document(
        db,
        storage,
        employee_id=employee_id,
        document_type_id=document_type_id,
        file_name=file.filename or "document",
        data=contents,
        mime_type=file.content_type or "application/octet-stream",
        uploaded_by=uploaded_by,
        client=client if classify else None,
    )


@documents_router.post("/expiry-scan", response_model=ExpiryScanResult)
async def scan_document_expirations(
    warning_days: Optional[int] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
):
    return await DocumentService.scan_expirations(db, warning_days=warning_days)


# ── Template application per employee ───────────────────────────────

@documents_router.post(
    "/employees/{employee_id}/apply-templates",
    response_model=TemplateApplicationResult,
)
async def apply_templates(
    employee_id: uuid.UUID,
    body: Optional[TemplateApplicationRequest] = None,
    db: AsyncSession = Depends(get_db),
):
    body = body or TemplateApplicationRequest()
    return await TemplateApplicationService.apply_templates_to_employee(
        db,
        employee_id,
        template_ids=body.template_ids,
        skip_existing=body.skip_existing,
    )


@documents_router.post(
    "/employees/{employee_id}/extra",
    status_code=201,
    response_model=ExtraDocumentResult,
)
async def add_extra_document(
    employee_id: uuid.UUID,
    body: ExtraDocumentRequest,
    db: AsyncSession = Depends(get_db),
):
    return await TemplateApplicationService.add_extra_document(
        db,
        employee_id,
        body.document_type_id,
        is_required=body.is_required,
        expiration_days=body.expiration_days,
    )


@documents_router.get(
    "/employees/{employee_id}/status",
    response_model=EmployeeTemplateStatus,
)
async def get_employee_template_status(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await TemplateApplicationService.get_employee_template_status(db, employee_id)


@documents_router.post("/bulk-apply", response_model=BulkApplicationResult)
async def bulk_apply_templates(db: AsyncSession = Depends(get_db)):
    return await TemplateApplicationService.bulk_apply_templates(db)


# ═════════════════════════════════════════════════════════════════════
# Templates
# ═════════════════════════════════════════════════════════════════════


@templates_router.get("", response_model=list[TemplateResponse])
async def list_templates(
    include_inactive: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    return await TemplateService.list_templates(db, include_inactive=include_inactive)


@templates_router.post("", status_code=201, response_model=TemplateWithItems)
async def create_template(
    body: TemplateCreate,
    db: AsyncSession = Depends(get_db),
):
    return await TemplateService.create_template(db, body)


@templates_router.get("/positions", response_model=list[str])
async def list_positions(db: AsyncSession = Depends(get_db)):
    return await TemplateApplicationService.get_available_positions(db)


@templates_router.get("/by-position/{position}", response_model=Optional[TemplateWithItems])
async def get_template_by_position(
    position: str,
    db: AsyncSession = Depends(get_db),
):
    return await TemplateService.get_template_by_position(db, position)


@templates_router.get("/{template_id}", response_model=TemplateWithItems)
async def get_template(
    template_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await TemplateService.get_template_with_items(db, template_id)


@templates_router.patch("/{template_id}", response_model=TemplateWithItems)
async def update_template(
    template_id: uuid.UUID,
    body: TemplateUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await TemplateService.update_template(db, template_id, body)


@templates_router.post(
    "/{template_id}/items",
    status_code=201,
    response_model=TemplateItemResponse,
)
async def add_template_item(
    template_id: uuid.UUID,
    body: TemplateItemCreate,
    db: AsyncSession = Depends(get_db),
):
    return await TemplateService.add_template_item(db, template_id, body)


@templates_router.delete("/items/{item_id}", status_code=204)
async def remove_template_item(
    item_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    await TemplateService.remove_template_item(db, item_id)


@templates_router.post(
    "/{template_id}/duplicate",
    status_code=201,
    response_model=TemplateWithItems,
)
async def duplicate_template(
    template_id: uuid.UUID,
    body: TemplateDuplicate,
    db: AsyncSession = Depends(get_db),
):
    return await TemplateService.duplicate_template(
        db, template_id, body.name, body.position,
    )


@templates_router.get("/{template_id}/all-items", response_model=list[TemplateItemResponse])
async def get_all_template_items(
    template_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await TemplateService.get_all_template_items(db, template_id)
