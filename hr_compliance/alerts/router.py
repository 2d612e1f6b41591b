"""Compliance alert endpoints — list, change status."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hr_compliance.alerts.schemas import AlertResponse, AlertStatusUpdate
from hr_compliance.alerts.service import AlertService
from hr_compliance.common.constants import AlertSeverity, AlertStatus, AlertType
from hr_compliance.common.pagination import PaginationParams
from hr_compliance.database import get_db

router = APIRouter(prefix="", tags=["alerts"])


# ── GET / — list alerts ─────────────────────────────────────────────

@router.get("")
async def list_alerts(
    employee_id: Optional[uuid.UUID] = Query(None, description="Filter by employee"),
    status: Optional[AlertStatus] = Query(None, description="Filter by status"),
    severity: Optional[AlertSeverity] = Query(None, description="Filter by severity"),
    type: Optional[AlertType] = Query(None, description="Filter by alert type"),
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    result = await AlertService.list_alerts(
        db,
        pagination,
        employee_id=employee_id,
        status=status,
        severity=severity,
        type=type,
    )
    return {
        "data": [
            AlertResponse.model_validate(a).model_dump(mode="json") for a in result.data
        ],
        "meta": result.meta.model_dump(),
    }


# ── PUT /{alert_id}/status ──────────────────────────────────────────

@router.put("/{alert_id}/status")
async def update_alert_status(
    alert_id: uuid.UUID,
    body: AlertStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    alert = await AlertService.update_status(
        db,
        alert_id,
        body.status,
        resolution_notes=body.resolution_notes,
        actor_id=body.resolved_by,
    )
    return {"data": AlertResponse.model_validate(alert).model_dump(mode="json")}
