"""Alert store — create and query compliance alerts."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_compliance.alerts.models import ComplianceAlert
from hr_compliance.common.audit import create_audit_entry
from hr_compliance.common.constants import AlertSeverity, AlertStatus, AlertType
from hr_compliance.common.exceptions import NotFoundException, ValidationException
from hr_compliance.common.pagination import PaginatedResponse, PaginationParams, paginate


class AlertService:
    """Async operations on ``ComplianceAlert`` rows."""

    @staticmethod
    async def create_alert(
        db: AsyncSession,
        *,
        employee_id: uuid.UUID,
        type: AlertType,
        severity: AlertSeverity,
        title: str,
        description: str,
        details: Optional[dict[str, Any]] = None,
        recurring_document_id: Optional[uuid.UUID] = None,
        document_id: Optional[uuid.UUID] = None,
    ) -> ComplianceAlert:
        """Create an ``open`` alert and flush it."""
        alert = ComplianceAlert(
            employee_id=employee_id,
            type=type,
            severity=severity,
            title=title,
            description=description,
            details=details,
            recurring_document_id=recurring_document_id,
            document_id=document_id,
            status=AlertStatus.open,
        )
        db.add(alert)
        await db.flush()
        return alert

    @staticmethod
    async def list_alerts(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        status: Optional[AlertStatus] = None,
        severity: Optional[AlertSeverity] = None,
        type: Optional[AlertType] = None,
    ) -> PaginatedResponse:
        query = select(ComplianceAlert)
        if employee_id is not None:
            query = query.where(ComplianceAlert.employee_id == employee_id)
        if status is not None:
            query = query.where(ComplianceAlert.status == status)
        if severity is not None:
            query = query.where(ComplianceAlert.severity == severity)
        if type is not None:
            query = query.where(ComplianceAlert.type == type)
        if not pagination.sort:
            query = query.order_by(ComplianceAlert.created_at.desc())
        return await paginate(db, query, pagination, model=ComplianceAlert)

    @staticmethod
    async def has_alert_for_document(
        db: AsyncSession,
        document_id: uuid.UUID,
        type: AlertType,
    ) -> bool:
        result = await db.execute(
            select(ComplianceAlert.id)
            .where(
                ComplianceAlert.document_id == document_id,
                ComplianceAlert.type == type,
            )
            .limit(1)
        )
        return result.first() is not None

    @staticmethod
    async def update_status(
        db: AsyncSession,
        alert_id: uuid.UUID,
        status: AlertStatus,
        *,
        resolution_notes: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> ComplianceAlert:
        """Acknowledge, resolve or dismiss an alert (HR action)."""
        if status == AlertStatus.open:
            raise ValidationException({"status": ["Alerts cannot be reopened."]})

        alert = await db.get(ComplianceAlert, alert_id)
        if alert is None:
            raise NotFoundException("ComplianceAlert", str(alert_id))

        old_status = alert.status.value
        alert.status = status
        if status in (AlertStatus.resolved, AlertStatus.dismissed):
            alert.resolved_at = datetime.now(timezone.utc)
            alert.resolved_by = actor_id
            alert.resolution_notes = resolution_notes
        await db.flush()

        await create_audit_entry(
            db,
            action=f"alert_{status.value}",
            entity_type="compliance_alert",
            entity_id=alert.id,
            actor_id=actor_id,
            old_values={"status": old_status},
            new_values={"status": status.value, "resolution_notes": resolution_notes},
        )
        return alert
