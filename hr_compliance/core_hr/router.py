"""Core HR router — Employee and Department API endpoints.

Routes:
    /employees              — List, create employees
    /employees/{id}         — Get, update employee
    /departments            — List, create departments
    /departments/{id}       — Department detail
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hr_compliance.common.constants import EmployeeStatus
from hr_compliance.common.pagination import PaginationParams
from hr_compliance.core_hr.schemas import (
    DepartmentCreate,
    DepartmentResponse,
    EmployeeCreate,
    EmployeeCreated,
    EmployeeResponse,
    EmployeeUpdate,
)
from hr_compliance.core_hr.service import DepartmentService, EmployeeService
from hr_compliance.database import get_db

employees_router = APIRouter(prefix="", tags=["employees"])
departments_router = APIRouter(prefix="", tags=["departments"])


# ═════════════════════════════════════════════════════════════════════
# Employee Endpoints
# ═════════════════════════════════════════════════════════════════════


@employees_router.get("")
async def list_employees(
    department_id: Optional[uuid.UUID] = Query(None, description="Filter by department"),
    position: Optional[str] = Query(None, description="Filter by position"),
    status: Optional[EmployeeStatus] = Query(None, description="Filter by status"),
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    result = await EmployeeService.list_employees(
        db,
        pagination,
        department_id=department_id,
        position=position,
        status=status,
    )
    return {
        "data": [
            EmployeeResponse.model_validate(e).model_dump(mode="json") for e in result.data
        ],
        "meta": result.meta.model_dump(),
    }


# ── POST /employees — Create (applies matching templates) ───────────

@employees_router.post("", status_code=201, response_model=EmployeeCreated)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
):
    employee, templates = await EmployeeService.create_employee(db, body)
    return EmployeeCreated(
        employee=EmployeeResponse.model_validate(employee),
        templates=templates,
    )


@employees_router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await EmployeeService.get_employee(db, employee_id)


@employees_router.patch("/{employee_id}", response_model=EmployeeResponse)
async def update_employee(
    employee_id: uuid.UUID,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await EmployeeService.update_employee(db, employee_id, body)


# ═════════════════════════════════════════════════════════════════════
# Department Endpoints
# ═════════════════════════════════════════════════════════════════════


@departments_router.get("", response_model=list[DepartmentResponse])
async def list_departments(db: AsyncSession = Depends(get_db)):
    return await DepartmentService.list_departments(db)


@departments_router.post("", status_code=201, response_model=DepartmentResponse)
async def create_department(
    body: DepartmentCreate,
    db: AsyncSession = Depends(get_db),
):
    return await DepartmentService.create_department(db, body)


@departments_router.get("/{department_id}", response_model=DepartmentResponse)
async def get_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await DepartmentService.get_department(db, department_id)
