"""Analysis dispatcher.

Sends a recurring document to the classifier, then folds the verdict into
the document (score, status, ``processed_at``), the alert store and the
employee's rolling compliance score.

Callers own the item boundary: ``process_document`` never raises for a
classifier failure or a failed write of the result. It logs the failure,
leaves the document ``pending`` and reports the error on the returned outcome.

A document that was already analyzed keeps one set of alerts and counts once
towards the employee score: re-analysis replaces its alerts and does not
blend the score again.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_compliance.alerts.models import ComplianceAlert
from hr_compliance.alerts.service import AlertService
from hr_compliance.alerts.taxonomy import resolve_alert_type
from hr_compliance.analysis.schemas import (
    AnalysisContext,
    AnalysisVerdict,
    DocumentClassification,
    PayslipAnalysis,
    TimesheetAnalysis,
)
from hr_compliance.analysis.scoring import ThresholdPolicy, blend_compliance_score
from hr_compliance.common.constants import DEFAULT_COMPLIANCE_SCORE, RecurringDocumentType
from hr_compliance.common.exceptions import AnalysisError
from hr_compliance.config import settings
from hr_compliance.core_hr.models import Employee
from hr_compliance.recurring.models import RecurringDocument

logger = logging.getLogger(__name__)

ALERT_TITLE_MAX_LENGTH = 255


class Classifier(Protocol):
    async def analyze_timesheet(
        self, file_url: str, context: AnalysisContext, *, text: Optional[str] = None,
    ) -> TimesheetAnalysis: ...

    async def analyze_payslip(
        self, file_url: str, context: AnalysisContext, *, text: Optional[str] = None,
    ) -> PayslipAnalysis: ...

    async def classify(self, file_url: str) -> DocumentClassification: ...


@dataclass
class AnalysisOutcome:
    document: RecurringDocument
    verdict: Optional[AnalysisVerdict] = None
    alerts: list[ComplianceAlert] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.verdict is not None


def build_context(employee: Optional[Employee]) -> AnalysisContext:
    if employee is None:
        return AnalysisContext(work_hours=settings.DEFAULT_WORK_HOURS)
    return AnalysisContext(
        name=employee.name,
        work_hours=employee.work_hours or settings.DEFAULT_WORK_HOURS,
        salary=float(employee.salary) if employee.salary is not None else None,
    )


class AnalysisService:
    """Dispatch documents to the classifier and apply verdicts."""

    @staticmethod
    async def analyze(
        client: Classifier,
        doc_type: RecurringDocumentType,
        file_url: str,
        context: AnalysisContext,
        *,
        text: Optional[str] = None,
    ) -> AnalysisVerdict:
        """Ask the classifier for a verdict, bounded by the configured timeout."""
        if doc_type == RecurringDocumentType.timesheet:
            call = client.analyze_timesheet(file_url, context, text=text)
        else:
            call = client.analyze_payslip(file_url, context, text=text)

        try:
            return await asyncio.wait_for(call, timeout=settings.ANALYSIS_TIMEOUT_SECONDS)
        except asyncio.TimeoutError as exc:
            raise AnalysisError(
                f"Classifier timed out after {settings.ANALYSIS_TIMEOUT_SECONDS:g}s"
            ) from exc

    @staticmethod
    async def apply_verdict(
        db: AsyncSession,
        document: RecurringDocument,
        employee: Optional[Employee],
        verdict: AnalysisVerdict,
        policy: ThresholdPolicy,
    ) -> list[ComplianceAlert]:
        """Persist *verdict* on *document*, open its alerts and blend the score."""
        reanalysis = document.processed_at is not None
        if reanalysis:
            await db.execute(
                delete(ComplianceAlert).where(
                    ComplianceAlert.recurring_document_id == document.id,
                )
            )

        score = verdict.compliance_score
        document.ai_analysis = verdict.model_dump(mode="json", by_alias=True)
        document.compliance_score = score
        document.compliance_status = policy.status_for(score)
        document.processed_at = datetime.now(timezone.utc)

        alerts: list[ComplianceAlert] = []
        for raw in verdict.alerts:
            alert_type, by_default = resolve_alert_type(raw.type, document.type)
            alert = await AlertService.create_alert(
                db,
                employee_id=document.employee_id,
                recurring_document_id=document.id,
                type=alert_type,
                severity=raw.severity,
                title=raw.type[:ALERT_TITLE_MAX_LENGTH],
                description=raw.description,
                details={
                    "date": raw.date,
                    "raw_type": raw.type,
                    "mapped_by_default": by_default,
                },
            )
            alerts.append(alert)

        if employee is not None and not reanalysis:
            previous = (
                employee.compliance_score
                if employee.compliance_score is not None
                else DEFAULT_COMPLIANCE_SCORE
            )
            employee.compliance_score = blend_compliance_score(previous, score)

        await db.flush()
        logger.info(
            "Analyzed %s %s: score=%d status=%s alerts=%d",
            document.type.value, document.id, score,
            document.compliance_status.value, len(alerts),
        )
        return alerts

    @staticmethod
    async def process_document(
        db: AsyncSession,
        client: Classifier,
        document: RecurringDocument,
        policy: ThresholdPolicy,
    ) -> AnalysisOutcome:
        """Analyze *document* and apply the verdict; failures stay on the outcome."""
        employee = await db.get(Employee, document.employee_id)
        try:
            verdict = await AnalysisService.analyze(
                client,
                document.type,
                document.file_url,
                build_context(employee),
                text=document.ocr_text,
            )
        except AnalysisError as exc:
            logger.warning(
                "Analysis failed for %s %s; left pending: %s",
                document.type.value, document.id, exc.detail,
            )
            return AnalysisOutcome(document=document, error=exc.detail)

        try:
            async with db.begin_nested():
                alerts = await AnalysisService.apply_verdict(
                    db, document, employee, verdict, policy,
                )
        except SQLAlchemyError as exc:
            logger.error(
                "Could not save analysis for %s %s; left pending: %s",
                document.type.value, document.id, exc,
            )
            await db.refresh(document)
            if employee is not None:
                await db.refresh(employee)
            return AnalysisOutcome(
                document=document,
                error=f"Analysis result could not be saved: {exc}",
            )
        return AnalysisOutcome(document=document, verdict=verdict, alerts=alerts)
