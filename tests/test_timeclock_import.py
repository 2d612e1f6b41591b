"""Time-clock batch import tests — employee resolution, rendering, per-record
error accounting, configuration and the HTTP endpoints.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_compliance.alerts.models import ComplianceAlert
from hr_compliance.alerts.service import AlertService
from hr_compliance.common.audit import AuditTrail
from hr_compliance.common.constants import (
    ComplianceStatus,
    PunchType,
    RecurringDocumentType,
    TimeclockSystem,
)
from hr_compliance.recurring.models import RecurringDocument
from hr_compliance.timeclock import service as timeclock_service
from hr_compliance.timeclock.schemas import Punch, TimeclockConfigUpdate, TimeclockRecord
from hr_compliance.timeclock.service import (
    TimeclockService,
    render_timesheet,
    resolve_records,
)
from tests.conftest import _make_employee, seed_employee


def _record(tax_id: str, day: int = 15, **kwargs) -> TimeclockRecord:
    return TimeclockRecord(
        employee_tax_id=tax_id,
        date=date(2024, 1, day),
        punches=[
            Punch(time="08:00", type=PunchType.entry),
            Punch(time="17:00", type=PunchType.exit),
        ],
        **kwargs,
    )


async def _documents(db: AsyncSession) -> list[RecurringDocument]:
    result = await db.execute(select(RecurringDocument).order_by(RecurringDocument.reference_date))
    return list(result.scalars().all())


# ═════════════════════════════════════════════════════════════════════
# 1. RESOLUTION + RENDERING
# ═════════════════════════════════════════════════════════════════════


class TestResolution:

    def test_matches_on_digits_only(self):
        from hr_compliance.core_hr.models import Employee

        emp = Employee(**_make_employee(tax_id="12345678900"))
        result = resolve_records(
            [_record("123.456.789-00"), _record("99999999999")],
            [emp],
        )

        assert [r.employee for r in result.resolved] == [emp]
        assert result.resolved[0].index == 1
        assert result.errors == [
            {"record": 2, "error": "Employee not found: tax id 99999999999"},
        ]

    def test_render_timesheet(self):
        record = _record("12345678900", total_hours=8.0, overtime=0.5)
        record.punches.insert(1, Punch(time="12:00", type=PunchType.break_start))

        text = render_timesheet(record, "Maria Souza")

        assert text.splitlines() == [
            "TIME SHEET",
            "Employee: Maria Souza",
            "Tax ID: 12345678900",
            "Date: 15/01/2024",
            "",
            "PUNCHES:",
            "08:00 - Entry",
            "12:00 - Break start",
            "17:00 - Exit",
            "",
            "Total hours: 8.00h",
            "Overtime: 0.50h",
        ]

    def test_render_omits_missing_totals(self):
        text = render_timesheet(_record("12345678900"), "Maria")
        assert "Total hours" not in text
        assert text.endswith("17:00 - Exit")


# ═════════════════════════════════════════════════════════════════════
# 2. BATCH IMPORT
# ═════════════════════════════════════════════════════════════════════


class TestImportRecords:

    async def test_unknown_tax_ids_do_not_stop_the_batch(self, db, storage, fake_client):
        known = [await seed_employee(db, tax_id=f"1000000000{i}") for i in range(3)]
        records = [
            _record(known[0].tax_id, day=1),
            _record("55555555555", day=2),
            _record(known[1].tax_id, day=3),
            _record("66666666666", day=4),
            _record(known[2].tax_id, day=5),
        ]

        result = await TimeclockService.import_records(db, storage, fake_client, records)

        assert result.total_records == 5
        assert result.imported == 3
        assert result.success is False
        assert [e["record"] for e in result.errors] == [2, 4]
        docs = await _documents(db)
        assert [d.employee_id for d in docs] == [e.id for e in known]
        assert len(storage.files) == 3

    async def test_imported_documents_are_analyzed_with_timeclock_cutoffs(
        self, db, storage, fake_client,
    ):
        emp = await seed_employee(db, tax_id="12345678900", compliance_score=100)
        fake_client.score = 55
        fake_client.alerts = [
            {"type": "Atraso", "severity": "medium", "description": "08:20 entry"},
            {"type": "Batida faltante", "severity": "high", "description": "no exit"},
        ]

        result = await TimeclockService.import_records(
            db, storage, fake_client, [_record("12345678900")],
        )

        assert result.success is True
        assert result.alerts == 2
        doc = (await _documents(db))[0]
        assert doc.type == RecurringDocumentType.timesheet
        assert doc.compliance_status == ComplianceStatus.non_compliant
        assert doc.ocr_text.startswith("TIME SHEET")
        assert doc.extracted_data["punches"][0] == {"time": "08:00", "type": "entry"}
        assert doc.file_key.startswith(f"timesheets/{emp.id}/2024-01-15-")
        assert fake_client.calls[0]["text"] == doc.ocr_text
        assert emp.compliance_score == 87

    async def test_analysis_failure_keeps_document_and_reports_error(
        self, db, storage, fake_client,
    ):
        await seed_employee(db, tax_id="12345678900")
        await seed_employee(db, tax_id="22233344455")
        fake_client.failures = 1

        result = await TimeclockService.import_records(
            db, storage, fake_client,
            [_record("12345678900", day=1), _record("22233344455", day=2)],
        )

        assert result.imported == 2
        assert result.success is False
        assert result.errors == [
            {"record": 1, "stage": "analysis", "error": "Classifier unavailable"},
        ]
        first, second = await _documents(db)
        assert first.compliance_status == ComplianceStatus.pending
        assert second.compliance_status == ComplianceStatus.compliant

    async def test_failed_result_write_is_reported_for_that_record(
        self, db, storage, fake_client, monkeypatch,
    ):
        first_emp = await seed_employee(db, tax_id="12345678900", compliance_score=100)
        await seed_employee(db, tax_id="22233344455")
        fake_client.alerts = [{"type": "Atraso", "severity": "low", "description": "late"}]
        create_alert = AlertService.create_alert
        attempts = []

        async def failing_once(session, **kwargs):
            attempts.append(kwargs["recurring_document_id"])
            if len(attempts) == 1:
                raise SQLAlchemyError("value too long")
            return await create_alert(session, **kwargs)

        monkeypatch.setattr(AlertService, "create_alert", staticmethod(failing_once))

        result = await TimeclockService.import_records(
            db, storage, fake_client,
            [_record("12345678900", day=1), _record("22233344455", day=2)],
        )

        assert result.imported == 2
        assert result.alerts == 1
        assert result.errors == [{
            "record": 1,
            "stage": "analysis",
            "error": "Analysis result could not be saved: value too long",
        }]
        first, second = await _documents(db)
        assert first.compliance_status == ComplianceStatus.pending
        assert first.processed_at is None
        assert second.compliance_status == ComplianceStatus.compliant
        assert first_emp.compliance_score == 100
        alerts = (await db.execute(select(ComplianceAlert))).scalars().all()
        assert [a.recurring_document_id for a in alerts] == [second.id]

    async def test_failed_insert_removes_stored_artifact(
        self, db, storage, fake_client, monkeypatch,
    ):
        await seed_employee(db, tax_id="12345678900")

        def broken_document(**kwargs):
            raise SQLAlchemyError("insert failed")

        monkeypatch.setattr(timeclock_service, "RecurringDocument", broken_document)

        result = await TimeclockService.import_records(
            db, storage, fake_client, [_record("12345678900")],
        )

        assert result.imported == 0
        assert result.errors == [{"record": 1, "error": "insert failed"}]
        assert storage.files == {}
        assert fake_client.calls == []

    async def test_failed_manual_upload_removes_stored_artifact(
        self, db, storage, queue, monkeypatch,
    ):
        emp = await seed_employee(db)
        await db.commit()

        def broken_document(**kwargs):
            raise SQLAlchemyError("insert failed")

        monkeypatch.setattr(timeclock_service, "RecurringDocument", broken_document)

        result = await TimeclockService.process_manual_upload(
            db, storage, queue,
            employee_id=emp.id,
            reference_date=date(2024, 6, 3),
            file_name="sheet.jpg",
            data=b"jpeg",
            mime_type="image/jpeg",
        )

        assert result.success is False
        assert result.error == "insert failed"
        assert storage.files == {}

    async def test_import_file_reports_parse_issues_and_audits(self, db, storage, fake_client):
        await seed_employee(db, tax_id="12345678900")
        content = "123.456.789-00;15/01/2024;08:00;17:00\n12345678900;99/99/2024;08:00"

        result = await TimeclockService.import_file(
            db, storage, fake_client, content, TimeclockSystem.generic,
        )

        assert result.imported == 1
        assert result.success is False
        assert result.errors == [{"line": 2, "error": "Unparseable date '99/99/2024'"}]

        audit = (
            await db.execute(select(AuditTrail).where(AuditTrail.action == "import_timeclock"))
        ).scalars().one()
        assert audit.new_values["format"] == "generic"
        assert audit.new_values["imported"] == 1

        config = await TimeclockService.get_config(db)
        assert config.last_sync is not None

    async def test_empty_export(self, db, storage, fake_client):
        result = await TimeclockService.import_file(db, storage, fake_client, "", "generic")

        assert result.total_records == 0
        assert result.imported == 0
        assert result.success is True


# ═════════════════════════════════════════════════════════════════════
# 3. CONFIGURATION + PREVIEW
# ═════════════════════════════════════════════════════════════════════


class TestConfigAndPreview:

    async def test_defaults_then_partial_update(self, db: AsyncSession):
        config = await TimeclockService.get_config(db)
        assert config.system == TimeclockSystem.generic
        assert config.enabled is False

        await TimeclockService.update_config(
            db, TimeclockConfigUpdate(system=TimeclockSystem.dimep, api_key="secret"),
        )
        await TimeclockService.update_config(db, TimeclockConfigUpdate(enabled=True))

        config = await TimeclockService.get_config(db)
        assert config.system == TimeclockSystem.dimep
        assert config.api_key == "secret"
        assert config.enabled is True

        audits = (
            await db.execute(
                select(AuditTrail).where(AuditTrail.action == "update_timeclock_config")
            )
        ).scalars().all()
        assert len(audits) == 2
        assert "api_key" not in audits[0].new_values

    def test_preview_caps_records(self):
        content = "\n".join(f"1112223334{i % 10};{(i % 28) + 1:02d}/01/2024;08:00" for i in range(12))

        preview = TimeclockService.preview(content, "generic")

        assert preview.total_records == 12
        assert len(preview.preview) == 10


# ═════════════════════════════════════════════════════════════════════
# 4. HTTP
# ═════════════════════════════════════════════════════════════════════


class TestTimeclockEndpoints:

    async def test_import_uses_configured_format(self, client, db, fake_client):
        await seed_employee(db, tax_id="12345678901")
        await db.commit()
        await client.put("/api/v1/timeclock/config", json={"system": "dimep"})
        line = "3000000001150120240800012345678901"

        resp = await client.post(
            "/api/v1/timeclock/import",
            files={"file": ("afd.txt", line.encode(), "text/plain")},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["imported"] == 1
        assert body["success"] is True

    async def test_config_masks_api_key(self, client):
        resp = await client.put(
            "/api/v1/timeclock/config", json={"api_key": "secret", "enabled": True},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["has_api_key"] is True
        assert "api_key" not in body

    async def test_manual_upload_is_accepted(self, client, db, queue):
        emp = await seed_employee(db)
        await db.commit()

        resp = await client.post(
            "/api/v1/timeclock/upload-manual",
            data={"employee_id": str(emp.id), "reference_date": "2024-06-03"},
            files={"file": ("sheet.png", b"png", "image/png")},
        )
        await queue.join()

        assert resp.status_code == 202
        assert resp.json()["success"] is True
        count = (
            await db.execute(select(func.count()).select_from(ComplianceAlert))
        ).scalar_one()
        assert count == 0
