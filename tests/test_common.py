"""Tests for common utilities — pagination, settings rows and the audit trail."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_compliance.common.audit import AuditTrail, create_audit_entry
from hr_compliance.common.models import get_setting, put_setting
from hr_compliance.common.pagination import PaginationParams, paginate
from hr_compliance.core_hr.models import Employee, normalize_tax_id
from tests.conftest import seed_employee


# ═════════════════════════════════════════════════════════════════════
# PAGINATION
# ═════════════════════════════════════════════════════════════════════


class TestPaginate:

    async def test_meta_and_sorting(self, db: AsyncSession):
        for name in ("Carla", "Ana", "Bruno"):
            await seed_employee(db, name=name)

        result = await paginate(
            db, select(Employee), PaginationParams(page=1, page_size=2, sort="name"),
            model=Employee,
        )

        assert [e.name for e in result.data] == ["Ana", "Bruno"]
        assert result.meta.total == 3
        assert result.meta.total_pages == 2
        assert result.meta.has_next is True
        assert result.meta.has_prev is False

    async def test_descending_second_page(self, db: AsyncSession):
        for name in ("Carla", "Ana", "Bruno"):
            await seed_employee(db, name=name)

        result = await paginate(
            db, select(Employee), PaginationParams(page=2, page_size=2, sort="-name"),
            model=Employee,
        )

        assert [e.name for e in result.data] == ["Ana"]
        assert result.meta.has_next is False
        assert result.meta.has_prev is True

    async def test_unknown_sort_field_is_ignored(self, db: AsyncSession):
        await seed_employee(db)

        result = await paginate(
            db, select(Employee), PaginationParams(page=1, page_size=10, sort="nope"),
            model=Employee,
        )
        assert result.meta.total == 1

    async def test_empty(self, db: AsyncSession):
        result = await paginate(
            db, select(Employee), PaginationParams(page=1, page_size=10, sort=None),
            model=Employee,
        )
        assert result.data == []
        assert result.meta.total_pages == 0


# ═════════════════════════════════════════════════════════════════════
# SETTINGS + AUDIT
# ═════════════════════════════════════════════════════════════════════


class TestSettings:

    async def test_missing_key(self, db: AsyncSession):
        assert await get_setting(db, "timeclock") is None

    async def test_put_replaces_value(self, db: AsyncSession):
        await put_setting(db, "timeclock", {"system": "generic"}, description="Clock")
        await put_setting(db, "timeclock", {"system": "dimep"})

        assert await get_setting(db, "timeclock") == {"system": "dimep"}


class TestAuditTrail:

    async def test_entry_is_recorded(self, db: AsyncSession):
        emp = await seed_employee(db)

        await create_audit_entry(
            db,
            action="update_employee",
            entity_type="employee",
            entity_id=emp.id,
            old_values={"position": None},
            new_values={"position": "Driver"},
        )

        entry = (await db.execute(select(AuditTrail))).scalars().one()
        assert entry.entity_id == emp.id
        assert entry.new_values == {"position": "Driver"}
        assert entry.actor_id is None


def test_normalize_tax_id():
    assert normalize_tax_id("123.456.789-09") == "12345678909"
    assert normalize_tax_id(" 12 34 ") == "1234"
    assert normalize_tax_id("abc") == ""
