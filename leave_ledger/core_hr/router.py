"""Core HR router — employee profiles and whole-ledger storage.

Routes:
    /employees                   — List, create employees
    /employees/{id}              — Delete an employee and their ledger
    /employees/{id}/activate     — Recompute tenure entitlements
    /employees/{id}/ledger       — Get / replace the ledger
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.common.constants import LedgerOutcome
from leave_ledger.common.exceptions import (
    NotFoundException,
    PersistenceException,
    VersionConflictError,
)
from leave_ledger.common.rate_limit import limiter
from leave_ledger.core_hr.schemas import EmployeeCreate, EmployeeProfile
from leave_ledger.core_hr.service import EmployeeService
from leave_ledger.database import get_db
from leave_ledger.leave.schemas import EmployeeLedger, LedgerOut, LedgerResult, LedgerUpdate

router = APIRouter(prefix="", tags=["employees"])


def _ledger_out(result: LedgerResult, employee_id: uuid.UUID) -> LedgerOut:
    """Map storage outcomes to HTTP errors; return the stored ledger otherwise."""
    if result.outcome is LedgerOutcome.conflict:
        raise VersionConflictError("Ledger", employee_id)
    if result.outcome is LedgerOutcome.persistence_failed:
        raise PersistenceException(result.detail or "Ledger could not be saved.")
    return LedgerOut(**result.ledger.model_dump(), version=result.version or 0)


# ── GET /employees ──────────────────────────────────────────────────

@router.get("", response_model=list[EmployeeProfile])
async def list_employees(db: AsyncSession = Depends(get_db)):
    """All employee profiles (without ledgers)."""
    employees = await EmployeeService.list_employees(db)
    return [EmployeeProfile.model_validate(emp) for emp in employees]


# ── POST /employees ─────────────────────────────────────────────────

@router.post("", response_model=EmployeeProfile, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def create_employee(
    request: Request,
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
):
    """Onboard an employee; the ledger is seeded from their hire date."""
    employee = await EmployeeService.create_employee(db, body)
    return EmployeeProfile.model_validate(employee)


# ── DELETE /employees/{id} ──────────────────────────────────────────

@router.delete("/{employee_id}")
async def delete_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Delete an employee and their ledger."""
    if not await EmployeeService.delete_employee(db, employee_id):
        raise NotFoundException("Employee", employee_id)
    return {"success": True}


# ── POST /employees/{id}/activate ───────────────────────────────────

@router.post("/{employee_id}/activate", response_model=LedgerOut)
async def activate_employee(
    employee_id: uuid.UUID,
    as_of: Optional[date] = Query(None, description="Reference date; defaults to today"),
    db: AsyncSession = Depends(get_db),
):
    """Make the employee the active ledger owner, refreshing tenure totals."""
    result = await EmployeeService.activate(db, employee_id, as_of=as_of)
    if result is None:
        raise NotFoundException("Employee", employee_id)
    return _ledger_out(result, employee_id)


# ── GET /employees/{id}/ledger ──────────────────────────────────────

@router.get("/{employee_id}/ledger", response_model=LedgerOut)
async def get_ledger(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    found = await EmployeeService.get_ledger(db, employee_id)
    if found is None:
        raise NotFoundException("Employee", employee_id)
    ledger, version = found
    return LedgerOut(**ledger.model_dump(), version=version)


# ── PUT /employees/{id}/ledger ──────────────────────────────────────

@router.put("/{employee_id}/ledger")
async def replace_ledger(
    employee_id: uuid.UUID,
    body: LedgerUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Replace the whole ledger. Send ``expectedVersion`` to reject stale writes."""
    ledger = EmployeeLedger(**body.model_dump(exclude={"expected_version"}))
    result = await EmployeeService.save_ledger(
        db, employee_id, ledger, expected_version=body.expected_version,
    )
    if result is None:
        raise NotFoundException("Employee", employee_id)
    stored = _ledger_out(result, employee_id)
    return {"success": True, "version": stored.version}
