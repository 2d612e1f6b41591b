"""Time-clock orchestration: employee resolution, batch import, manual upload,
preview and persisted configuration.

Uses:
  - ``parse_timeclock_report`` from hr_compliance.timeclock.parsers
  - ``AnalysisService`` (sync path) and ``AnalysisTaskQueue`` (fire-and-forget)
  - ``ArtifactStorage`` for the rendered / uploaded artifacts
  - ``get_setting / put_setting`` for the "timeclock" configuration row
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional, Sequence, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_compliance.analysis.scoring import TIMECLOCK_THRESHOLDS
from hr_compliance.analysis.service import AnalysisService, Classifier
from hr_compliance.analysis.tasks import AnalysisTaskQueue
from hr_compliance.common.audit import create_audit_entry
from hr_compliance.common.constants import (
    DATE_FORMAT,
    ComplianceStatus,
    PunchType,
    RecurringDocumentType,
    TimeclockSystem,
)
from hr_compliance.common.models import get_setting, put_setting
from hr_compliance.config import settings
from hr_compliance.core_hr.models import Employee, normalize_tax_id
from hr_compliance.recurring.models import RecurringDocument
from hr_compliance.storage.provider import ArtifactStorage
from hr_compliance.timeclock.parsers import parse_timeclock_report
from hr_compliance.timeclock.schemas import (
    ManualUploadResult,
    TimeclockConfig,
    TimeclockConfigUpdate,
    TimeclockImportResult,
    TimeclockPreview,
    TimeclockRecord,
)

logger = logging.getLogger(__name__)

CONFIG_KEY = "timeclock"
PREVIEW_SIZE = 10

PUNCH_LABELS: dict[PunchType, str] = {
    PunchType.entry: "Entry",
    PunchType.exit: "Exit",
    PunchType.break_start: "Break start",
    PunchType.break_end: "Break end",
}


# ═════════════════════════════════════════════════════════════════════
# Employee resolution
# ═════════════════════════════════════════════════════════════════════


@dataclass
class ResolvedRecord:
    index: int              # 1-based position in the parsed batch
    record: TimeclockRecord
    employee: Employee


@dataclass
class ResolutionResult:
    resolved: list[ResolvedRecord] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)


def resolve_records(
    records: Sequence[TimeclockRecord],
    employees: Iterable[Employee],
) -> ResolutionResult:
    """Match records to employees by digits-only tax id."""
    by_tax_id = {normalize_tax_id(e.tax_id): e for e in employees}
    result = ResolutionResult()
    for i, record in enumerate(records, start=1):
        tax_id = normalize_tax_id(record.employee_tax_id)
        employee = by_tax_id.get(tax_id)
        if employee is None:
            result.errors.append({
                "record": i,
                "error": f"Employee not found: tax id {record.employee_tax_id}",
            })
            continue
        result.resolved.append(ResolvedRecord(index=i, record=record, employee=employee))
    return result


def render_timesheet(record: TimeclockRecord, employee_name: str) -> str:
    """Deterministic plain-text time sheet for one record."""
    lines = [
        "TIME SHEET",
        f"Employee: {employee_name}",
        f"Tax ID: {record.employee_tax_id}",
        f"Date: {record.date.strftime(DATE_FORMAT)}",
        "",
        "PUNCHES:",
    ]
    for punch in record.punches:
        lines.append(f"{punch.time} - {PUNCH_LABELS[punch.type]}")
    if record.total_hours is not None:
        lines.extend(["", f"Total hours: {record.total_hours:.2f}h"])
    if record.overtime is not None and record.overtime > 0:
        lines.append(f"Overtime: {record.overtime:.2f}h")
    return "\n".join(lines)


def _audit_view(config: TimeclockConfig, changes: dict[str, Any]) -> dict[str, Any]:
    dumped = config.model_dump(mode="json")
    return {k: dumped[k] for k in changes if k != "api_key"}


def _artifact_key(employee_id: uuid.UUID, ref: date, suffix: str = "") -> str:
    token = secrets.token_hex(3)
    return f"timesheets/{employee_id}/{ref.isoformat()}-{token}{suffix}"


# ═════════════════════════════════════════════════════════════════════
# TimeclockService
# ═════════════════════════════════════════════════════════════════════


class TimeclockService:
    """Batch and single-file time-sheet ingestion."""

    # ── Configuration ───────────────────────────────────────────────

    @staticmethod
    async def get_config(db: AsyncSession) -> TimeclockConfig:
        stored = await get_setting(db, CONFIG_KEY)
        return TimeclockConfig.model_validate(stored) if stored else TimeclockConfig()

    @staticmethod
    async def update_config(
        db: AsyncSession,
        data: TimeclockConfigUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> TimeclockConfig:
        current = await TimeclockService.get_config(db)
        changes = data.model_dump(exclude_unset=True)
        updated = current.model_copy(update=changes)
        await put_setting(
            db,
            CONFIG_KEY,
            updated.model_dump(mode="json"),
            description="Time-clock integration settings",
        )
        await create_audit_entry(
            db,
            action="update_timeclock_config",
            entity_type="timeclock",
            actor_id=actor_id,
            old_values=_audit_view(current, changes),
            new_values=_audit_view(updated, changes),
        )
        return updated

    # ── Preview ─────────────────────────────────────────────────────

    @staticmethod
    def preview(content: str, system: Union[TimeclockSystem, str]) -> TimeclockPreview:
        """Parse without importing; returns the first records and any issues."""
        records, issues = parse_timeclock_report(content, system)
        return TimeclockPreview(
            total_records=len(records),
            preview=records[:PREVIEW_SIZE],
            issues=issues,
        )

    # ── Batch import (synchronous analysis) ─────────────────────────

    @staticmethod
    async def import_records(
        db: AsyncSession,
        storage: ArtifactStorage,
        client: Classifier,
        records: Sequence[TimeclockRecord],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> TimeclockImportResult:
        """Resolve, store, create and analyze each record sequentially.

        Every failure is recorded against its 1-based record index; the
        batch always runs to the end. ``success`` is true only when no
        record produced an error.
        """
        result = TimeclockImportResult(total_records=len(records))

        employees = (await db.execute(select(Employee))).scalars().all()
        resolution = resolve_records(records, employees)
        result.errors.extend(resolution.errors)

        analyzed = 0
        for item in resolution.resolved:
            record, employee = item.record, item.employee
            content = render_timesheet(record, employee.name)
            key = _artifact_key(employee.id, record.date, ".txt")
            stored = None
            try:
                stored = await storage.put(key, content.encode("utf-8"), "text/plain")
                async with db.begin_nested():
                    document = RecurringDocument(
                        employee_id=employee.id,
                        type=RecurringDocumentType.timesheet,
                        reference_date=record.date,
                        file_name=f"timesheet-{record.date.isoformat()}.txt",
                        file_url=stored.url,
                        file_key=stored.key,
                        ocr_text=content,
                        extracted_data={
                            "punches": [p.model_dump(mode="json") for p in record.punches],
                            "total_hours": record.total_hours,
                            "overtime": record.overtime,
                        },
                        compliance_status=ComplianceStatus.pending,
                        uploaded_by=actor_id,
                    )
                    db.add(document)
            except (OSError, SQLAlchemyError) as exc:
                logger.error("Timeclock record %d could not be stored: %s", item.index, exc)
                if stored is not None:
                    await storage.delete(stored.key)
                result.errors.append({"record": item.index, "error": str(exc)})
                continue

            result.imported += 1

            if analyzed and settings.ANALYSIS_CALL_DELAY_SECONDS > 0:
                await asyncio.sleep(settings.ANALYSIS_CALL_DELAY_SECONDS)
            analyzed += 1

            outcome = await AnalysisService.process_document(
                db, client, document, TIMECLOCK_THRESHOLDS,
            )
            if outcome.succeeded:
                result.alerts += len(outcome.alerts)
            else:
                result.errors.append({
                    "record": item.index,
                    "stage": "analysis",
                    "error": outcome.error,
                })

        result.success = not result.errors
        logger.info(
            "Timeclock import: %d record(s), %d imported, %d error(s), %d alert(s)",
            result.total_records, result.imported, len(result.errors), result.alerts,
        )
        return result

    @staticmethod
    async def import_file(
        db: AsyncSession,
        storage: ArtifactStorage,
        client: Classifier,
        content: str,
        system: Union[TimeclockSystem, str],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> TimeclockImportResult:
        """Parse an export, import its records and write the audit entry."""
        system = TimeclockSystem(system)
        records, issues = parse_timeclock_report(content, system)
        result = await TimeclockService.import_records(
            db, storage, client, records, actor_id=actor_id,
        )
        if issues:
            result.errors.extend(
                {"line": issue.line, "error": issue.reason} for issue in issues
            )
            result.success = False

        await create_audit_entry(
            db,
            action="import_timeclock",
            entity_type="timeclock",
            actor_id=actor_id,
            new_values={
                "format": system.value,
                "total": result.total_records,
                "imported": result.imported,
                "errors": len(result.errors),
            },
        )
        await TimeclockService.mark_synced(db)
        return result

    # ── Manual single-file upload (fire-and-forget analysis) ────────

    @staticmethod
    async def process_manual_upload(
        db: AsyncSession,
        storage: ArtifactStorage,
        queue: AnalysisTaskQueue,
        *,
        employee_id: uuid.UUID,
        reference_date: date,
        file_name: str,
        data: bytes,
        mime_type: str,
        actor_id: Optional[uuid.UUID] = None,
    ) -> ManualUploadResult:
        """Store the file, create a pending time sheet and queue its analysis.

        Returns as soon as the document is committed; the verdict lands later.
        """
        employee = await db.get(Employee, employee_id)
        if employee is None:
            return ManualUploadResult(success=False, error="Employee not found")

        key = _artifact_key(employee_id, reference_date, f"-{file_name}")
        stored = None
        try:
            stored = await storage.put(key, data, mime_type)
            document = RecurringDocument(
                employee_id=employee_id,
                type=RecurringDocumentType.timesheet,
                reference_date=reference_date,
                file_name=file_name,
                file_url=stored.url,
                file_key=stored.key,
                compliance_status=ComplianceStatus.pending,
                uploaded_by=actor_id,
            )
            db.add(document)
            await db.flush()
            await db.commit()
        except (OSError, SQLAlchemyError) as exc:
            logger.error("Manual time sheet upload failed for %s: %s", employee_id, exc)
            await db.rollback()
            if stored is not None:
                await storage.delete(stored.key)
            return ManualUploadResult(success=False, error=str(exc))

        queue.submit(document.id, TIMECLOCK_THRESHOLDS)
        return ManualUploadResult(success=True, document_id=document.id)

    @staticmethod
    async def mark_synced(db: AsyncSession) -> TimeclockConfig:
        """Stamp ``last_sync`` on the stored configuration."""
        config = await TimeclockService.get_config(db)
        config.last_sync = datetime.now(timezone.utc)
        await put_setting(db, CONFIG_KEY, config.model_dump(mode="json"))
        return config
