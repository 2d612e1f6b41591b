"""Document service tests — submission, expiry scanning and template CRUD."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_compliance.alerts.models import ComplianceAlert
from hr_compliance.common.audit import AuditTrail
from hr_compliance.common.constants import AlertSeverity, AlertType, DocumentStatus
from hr_compliance.common.exceptions import NotFoundException, ValidationException
from hr_compliance.documents.engine import TemplateApplicationService
from hr_compliance.documents.models import Document
from hr_compliance.documents.schemas import (
    TemplateCreate,
    TemplateItemCreate,
    TemplateUpdate,
)
from hr_compliance.documents.service import DocumentService, TemplateService
from tests.conftest import seed_document_type, seed_employee, seed_template


async def _submit(db, storage, employee_id, document_type_id, **kwargs):
    return await DocumentService.submit_document(
        db,
        storage,
        employee_id=employee_id,
        document_type_id=document_type_id,
        file_name="id.pdf",
        data=b"%PDF-1.4 id",
        mime_type="application/pdf",
        **kwargs,
    )


def _valid_document(employee_id, document_type_id, expires_at, status=DocumentStatus.valid):
    return Document(
        employee_id=employee_id,
        document_type_id=document_type_id,
        file_name="doc.pdf",
        file_url="https://files.test/doc.pdf",
        status=status,
        expires_at=expires_at,
    )


# ═════════════════════════════════════════════════════════════════════
# 1. SUBMISSION
# ═════════════════════════════════════════════════════════════════════


class TestSubmitDocument:

    async def test_fills_the_pending_placeholder(self, db: AsyncSession, storage):
        emp = await seed_employee(db)
        doc_type = await seed_document_type(db)
        extra = await TemplateApplicationService.add_extra_document(db, emp.id, doc_type.id)

        document = await _submit(db, storage, emp.id, doc_type.id)

        assert document.id == extra.document_id
        assert document.status == DocumentStatus.valid
        assert document.file_name == "id.pdf"
        assert document.file_size == len(b"%PDF-1.4 id")
        assert document.file_url.startswith(f"https://files.test/documents/{emp.id}/")
        assert document.file_key in storage.files
        count = (
            await db.execute(
                select(func.count()).select_from(Document).where(Document.employee_id == emp.id)
            )
        ).scalar_one()
        assert count == 1

        audit = (
            await db.execute(select(AuditTrail).where(AuditTrail.action == "submit_document"))
        ).scalars().one()
        assert audit.old_values == {"status": "pending"}
        assert audit.new_values["status"] == "valid"

    async def test_validity_days_set_expiry_on_new_row(self, db: AsyncSession, storage):
        emp = await seed_employee(db)
        doc_type = await seed_document_type(db, name="Health certificate", validity_days=365)

        document = await _submit(db, storage, emp.id, doc_type.id)

        remaining = document.expires_at - datetime.now(timezone.utc)
        assert timedelta(days=364) < remaining <= timedelta(days=365)

    async def test_explicit_expiry_wins(self, db: AsyncSession, storage):
        emp = await seed_employee(db)
        doc_type = await seed_document_type(db, validity_days=365)
        expires = datetime(2030, 1, 1, tzinfo=timezone.utc)

        document = await _submit(db, storage, emp.id, doc_type.id, expires_at=expires)

        assert document.expires_at == expires

    async def test_classification_is_stored(self, db: AsyncSession, storage, fake_client):
        emp = await seed_employee(db)
        doc_type = await seed_document_type(db)

        document = await _submit(db, storage, emp.id, doc_type.id, client=fake_client)

        assert fake_client.calls == [{"kind": "classify", "url": document.file_url}]
        assert document.extracted_data["document_type"] == "rg"
        assert document.extracted_data["extracted_data"] == {"number": "12.345.678-9"}

    async def test_classification_failure_does_not_block_submission(
        self, db: AsyncSession, storage, fake_client, caplog,
    ):
        emp = await seed_employee(db)
        doc_type = await seed_document_type(db)
        fake_client.fail_always = True

        document = await _submit(db, storage, emp.id, doc_type.id, client=fake_client)

        assert document.status == DocumentStatus.valid
        assert document.extracted_data is None
        assert "Classification failed" in caplog.text

    async def test_unknown_employee_raises(self, db: AsyncSession, storage):
        doc_type = await seed_document_type(db)
        with pytest.raises(NotFoundException):
            await _submit(db, storage, uuid.uuid4(), doc_type.id)
        assert storage.files == {}


# ═════════════════════════════════════════════════════════════════════
# 2. EXPIRY SCAN
# ═════════════════════════════════════════════════════════════════════


class TestExpiryScan:

    NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    async def _seed(self, db: AsyncSession):
        emp = await seed_employee(db)
        doc_type = await seed_document_type(db, name="Driver licence")
        docs = {
            "past": _valid_document(emp.id, doc_type.id, datetime(2024, 5, 20, tzinfo=timezone.utc)),
            "soon": _valid_document(emp.id, doc_type.id, datetime(2024, 6, 10, tzinfo=timezone.utc)),
            "later": _valid_document(emp.id, doc_type.id, datetime(2024, 9, 1, tzinfo=timezone.utc)),
            "pending": _valid_document(
                emp.id, doc_type.id, datetime(2024, 5, 1, tzinfo=timezone.utc),
                status=DocumentStatus.pending,
            ),
        }
        db.add_all(docs.values())
        await db.flush()
        return emp, docs

    async def test_expires_and_warns(self, db: AsyncSession):
        emp, docs = await self._seed(db)

        result = await DocumentService.scan_expirations(db, now=self.NOW, warning_days=30)

        assert result.expired == 1
        assert result.expiring_soon == 1
        assert result.alerts_created == 2
        assert docs["past"].status == DocumentStatus.expired
        assert docs["soon"].status == DocumentStatus.valid
        assert docs["pending"].status == DocumentStatus.pending

        alerts = {
            a.type: a
            for a in (
                await db.execute(
                    select(ComplianceAlert).where(ComplianceAlert.employee_id == emp.id)
                )
            ).scalars()
        }
        expired = alerts[AlertType.document_expired]
        assert expired.severity == AlertSeverity.high
        assert expired.document_id == docs["past"].id
        assert expired.title == "Document expired: Driver licence"
        assert "20/05/2024" in expired.description

        soon = alerts[AlertType.document_expiring_soon]
        assert soon.severity == AlertSeverity.medium
        assert soon.document_id == docs["soon"].id
        assert "10/06/2024" in soon.description

    async def test_repeat_scan_raises_no_new_alerts(self, db: AsyncSession):
        await self._seed(db)
        await DocumentService.scan_expirations(db, now=self.NOW, warning_days=30)

        result = await DocumentService.scan_expirations(db, now=self.NOW, warning_days=30)

        assert result.expired == 0
        assert result.expiring_soon == 1
        assert result.alerts_created == 0
        count = (
            await db.execute(select(func.count()).select_from(ComplianceAlert))
        ).scalar_one()
        assert count == 2

    async def test_narrow_window_skips_later_documents(self, db: AsyncSession):
        await self._seed(db)

        result = await DocumentService.scan_expirations(db, now=self.NOW, warning_days=5)

        assert result.expiring_soon == 0
        assert result.alerts_created == 1


# ═════════════════════════════════════════════════════════════════════
# 3. TEMPLATE CRUD
# ═════════════════════════════════════════════════════════════════════


class TestTemplateService:

    async def test_create_with_items(self, db: AsyncSession):
        id_card = await seed_document_type(db, name="ID card")
        contract = await seed_document_type(db, name="Contract")

        template = await TemplateService.create_template(
            db,
            TemplateCreate(
                name="Admission",
                is_base=True,
                items=[
                    TemplateItemCreate(document_type_id=id_card.id, sort_order=0),
                    TemplateItemCreate(document_type_id=contract.id, sort_order=1),
                ],
            ),
        )

        assert template.is_base is True
        assert [i.document_type.name for i in template.items] == ["ID card", "Contract"]

    async def test_create_rejects_unknown_document_type(self, db: AsyncSession):
        with pytest.raises(ValidationException):
            await TemplateService.create_template(
                db,
                TemplateCreate(
                    name="Broken",
                    items=[TemplateItemCreate(document_type_id=uuid.uuid4())],
                ),
            )

    async def test_add_and_remove_item(self, db: AsyncSession):
        doc_type = await seed_document_type(db)
        template = await seed_template(db, name="Drivers", position="Driver")

        item = await TemplateService.add_template_item(
            db, template.id, TemplateItemCreate(document_type_id=doc_type.id),
        )
        assert item.document_type.name == "ID card"
        assert len((await TemplateService.get_template_with_items(db, template.id)).items) == 1

        await TemplateService.remove_template_item(db, item.id)
        assert (await TemplateService.get_template_with_items(db, template.id)).items == []

    async def test_deactivated_templates_are_hidden(self, db: AsyncSession):
        template = await seed_template(db, name="Old")

        await TemplateService.update_template(db, template.id, TemplateUpdate(is_active=False))

        assert await TemplateService.list_templates(db) == []
        listed = await TemplateService.list_templates(db, include_inactive=True)
        assert [t.id for t in listed] == [template.id]

    async def test_by_position_falls_back_to_base(self, db: AsyncSession):
        assert await TemplateService.get_template_by_position(db, "Driver") is None

        base = await seed_template(db, name="Everyone", is_base=True)
        assert (await TemplateService.get_template_by_position(db, "Driver")).id == base.id

        drivers = await seed_template(db, name="Drivers", position="Driver")
        assert (await TemplateService.get_template_by_position(db, "Driver")).id == drivers.id

    async def test_duplicate_copies_items_and_links_parent(self, db: AsyncSession):
        doc_type = await seed_document_type(db)
        original = await seed_template(
            db,
            name="Drivers",
            position="Driver",
            items=[{"document_type_id": doc_type.id, "has_expiration": True, "expiration_days": 90}],
        )

        copy = await TemplateService.duplicate_template(db, original.id, "Senior drivers", "Senior Driver")

        assert copy.id != original.id
        assert copy.parent_template_id == original.id
        assert copy.position == "Senior Driver"
        assert len(copy.items) == 1
        assert copy.items[0].expiration_days == 90
        assert copy.items[0].id != (await TemplateService.get_template_with_items(db, original.id)).items[0].id

    async def test_all_items_lists_inherited_first(self, db: AsyncSession):
        parent_type = await seed_document_type(db, name="ID card")
        own_type = await seed_document_type(db, name="Driver licence")
        parent = await seed_template(
            db, name="Everyone", is_base=True, items=[{"document_type_id": parent_type.id}],
        )
        child = await seed_template(
            db,
            name="Drivers",
            position="Driver",
            parent_template_id=parent.id,
            items=[{"document_type_id": own_type.id}],
        )

        items = await TemplateService.get_all_template_items(db, child.id)

        assert [(i.document_type_id, i.inherited) for i in items] == [
            (parent_type.id, True),
            (own_type.id, False),
        ]
        assert await TemplateService.get_inherited_items(db, parent.id) == []

    async def test_unknown_template_raises(self, db: AsyncSession):
        with pytest.raises(NotFoundException):
            await TemplateService.get_template_with_items(db, uuid.uuid4())
