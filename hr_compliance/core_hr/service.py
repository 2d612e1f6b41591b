"""Core HR service layer — async CRUD + template hooks.

Uses:
  - ``paginate()`` from hr_compliance.common.pagination
  - ``create_audit_entry`` from hr_compliance.common.audit
  - ``TemplateApplicationService`` to materialize document obligations
    whenever an employee is hired or changes role
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_compliance.common.audit import create_audit_entry
from hr_compliance.common.constants import EmployeeStatus
from hr_compliance.common.exceptions import ConflictError, NotFoundException
from hr_compliance.common.pagination import PaginatedResponse, PaginationParams, paginate
from hr_compliance.config import settings
from hr_compliance.core_hr.models import Department, Employee
from hr_compliance.core_hr.schemas import (
    DepartmentCreate,
    EmployeeCreate,
    EmployeeUpdate,
)
from hr_compliance.documents.engine import TemplateApplicationService
from hr_compliance.documents.schemas import TemplateApplicationResult

logger = logging.getLogger(__name__)

# Changing either of these can change the template set.
_ROLE_FIELDS = ("position", "department_id")


def _jsonable(value):
    if isinstance(value, (uuid.UUID, Decimal)):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    return value


# ═════════════════════════════════════════════════════════════════════
# EmployeeService
# ═════════════════════════════════════════════════════════════════════


class EmployeeService:
    """Async CRUD operations for employees."""

    @staticmethod
    async def list_employees(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        department_id: Optional[uuid.UUID] = None,
        position: Optional[str] = None,
        status: Optional[EmployeeStatus] = None,
    ) -> PaginatedResponse:
        query = select(Employee)
        if department_id is not None:
            query = query.where(Employee.department_id == department_id)
        if position:
            query = query.where(Employee.position == position)
        if status is not None:
            query = query.where(Employee.status == status)
        if not pagination.sort:
            query = query.order_by(Employee.name)
        return await paginate(db, query, pagination, model=Employee)

    @staticmethod
    async def get_employee(db: AsyncSession, employee_id: uuid.UUID) -> Employee:
        employee = await db.get(Employee, employee_id)
        if employee is None:
            raise NotFoundException("Employee", str(employee_id))
        return employee

    @staticmethod
    async def _check_department(db: AsyncSession, department_id: Optional[uuid.UUID]) -> None:
        if department_id is not None and await db.get(Department, department_id) is None:
            raise NotFoundException("Department", str(department_id))

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_employee(
        db: AsyncSession,
        data: EmployeeCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> tuple[Employee, TemplateApplicationResult]:
        """Create an employee and apply the templates matching their role."""
        existing = await db.execute(select(Employee.id).where(Employee.tax_id == data.tax_id))
        if existing.first() is not None:
            raise ConflictError("tax_id", data.tax_id)
        await EmployeeService._check_department(db, data.department_id)

        values = data.model_dump()
        values["work_hours"] = values["work_hours"] or settings.DEFAULT_WORK_HOURS
        employee = Employee(**values)
        db.add(employee)
        await db.flush()

        await create_audit_entry(
            db,
            action="create_employee",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )

        templates = await TemplateApplicationService.apply_templates_to_employee(
            db, employee.id,
        )
        return employee, templates

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: EmployeeUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Partial update; re-applies templates when the role changes.

        Re-application is idempotent, so documents already owed are kept
        and only the new role's obligations are added.
        """
        employee = await EmployeeService.get_employee(db, employee_id)
        changes = data.model_dump(exclude_unset=True)
        if "department_id" in changes:
            await EmployeeService._check_department(db, changes["department_id"])

        old_values = {}
        for field, value in changes.items():
            current = getattr(employee, field)
            if current != value:
                old_values[field] = _jsonable(current)
                setattr(employee, field, value)

        if not old_values:
            return employee
        await db.flush()

        await create_audit_entry(
            db,
            action="update_employee",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values={k: _jsonable(getattr(employee, k)) for k in old_values},
        )

        if any(field in old_values for field in _ROLE_FIELDS):
            result = await TemplateApplicationService.apply_templates_to_employee(
                db, employee.id,
            )
            logger.info(
                "Role change for employee %s: %d new document(s) required",
                employee.id, result.created_documents,
            )
        return employee


# ═════════════════════════════════════════════════════════════════════
# DepartmentService
# ═════════════════════════════════════════════════════════════════════


class DepartmentService:

    @staticmethod
    async def list_departments(db: AsyncSession) -> Sequence[Department]:
        result = await db.execute(select(Department).order_by(Department.name))
        return result.scalars().all()

    @staticmethod
    async def get_department(db: AsyncSession, department_id: uuid.UUID) -> Department:
        department = await db.get(Department, department_id)
        if department is None:
            raise NotFoundException("Department", str(department_id))
        return department

    @staticmethod
    async def create_department(
        db: AsyncSession,
        data: DepartmentCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Department:
        department = Department(**data.model_dump())
        db.add(department)
        await db.flush()
        await create_audit_entry(
            db,
            action="create_department",
            entity_type="department",
            entity_id=department.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        return department
