"""Leave router — book, approve and clear days; manage the leave catalog.

Ledger operations answer 200 with an ``outcome`` tag for rejected or no-op
requests; only an unknown employee (404), a concurrent write (409) and a
storage failure (503) are HTTP errors.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.common.constants import LedgerOutcome
from leave_ledger.common.exceptions import (
    NotFoundException,
    PersistenceException,
    VersionConflictError,
)
from leave_ledger.config import settings
from leave_ledger.core_hr.service import EmployeeService
from leave_ledger.database import get_db
from leave_ledger.leave.entitlements import (
    calculate_personal_leave_days,
    calculate_vacation_days,
    completed_triennials,
    completed_years_of_service,
)
from leave_ledger.leave.schemas import (
    AssignRequest,
    EntitlementOut,
    LeaveTypeCreate,
    LeaveTypeInfo,
    LeaveTypeUpdate,
    LedgerActionOut,
    LedgerResult,
    WorkDaysUpdate,
)
from leave_ledger.leave.service import LedgerService

router = APIRouter(prefix="", tags=["leave"])


def get_ledger_service() -> LedgerService:
    """Ledger state machine configured from settings."""
    return LedgerService(allow_clear_approved=settings.ALLOW_CLEAR_APPROVED)


def _action_out(result: Optional[LedgerResult], employee_id: uuid.UUID) -> LedgerActionOut:
    if result is None:
        raise NotFoundException("Employee", employee_id)
    if result.outcome is LedgerOutcome.conflict:
        raise VersionConflictError("Ledger", employee_id)
    if result.outcome is LedgerOutcome.persistence_failed:
        raise PersistenceException(result.detail or "Ledger could not be saved.")
    return LedgerActionOut(
        outcome=result.outcome,
        detail=result.detail,
        version=result.version,
        ledger=result.ledger,
    )


# ── GET /entitlements ───────────────────────────────────────────────

@router.get("/entitlements", response_model=EntitlementOut)
async def get_entitlements(
    hire_date: date = Query(...),
    as_of: Optional[date] = Query(None, description="Reference date; defaults to today"),
):
    """Tenure-based vacation and personal-leave allowances."""
    as_of = as_of or date.today()
    return EntitlementOut(
        hire_date=hire_date,
        as_of=as_of,
        years_of_service=completed_years_of_service(hire_date, as_of),
        triennials=completed_triennials(hire_date, as_of),
        vacation_days=calculate_vacation_days(hire_date, as_of),
        personal_leave_days=calculate_personal_leave_days(hire_date, as_of),
    )


# ── POST /{employee_id}/days/{day} ──────────────────────────────────

@router.post("/{employee_id}/days/{day}", response_model=LedgerActionOut)
async def assign_day(
    employee_id: uuid.UUID,
    day: date,
    body: AssignRequest,
    db: AsyncSession = Depends(get_db),
    ledger_service: LedgerService = Depends(get_ledger_service),
):
    """Book a day as requested leave. An occupied day is not overwritten."""
    result = await EmployeeService.apply(
        db, employee_id,
        lambda ledger: ledger_service.assign(ledger, day, body.category_key),
        action="assign",
        audit_values={"date": day.isoformat(), "categoryKey": body.category_key},
    )
    return _action_out(result, employee_id)


# ── POST /{employee_id}/days/{day}/approve ──────────────────────────

@router.post("/{employee_id}/days/{day}/approve", response_model=LedgerActionOut)
async def approve_day(
    employee_id: uuid.UUID,
    day: date,
    db: AsyncSession = Depends(get_db),
    ledger_service: LedgerService = Depends(get_ledger_service),
):
    """Approve a requested day. Approval cannot be undone."""
    result = await EmployeeService.apply(
        db, employee_id,
        lambda ledger: ledger_service.approve(ledger, day),
        action="approve",
        audit_values={"date": day.isoformat()},
    )
    return _action_out(result, employee_id)


# ── DELETE /{employee_id}/days/{day} ────────────────────────────────

@router.delete("/{employee_id}/days/{day}", response_model=LedgerActionOut)
async def clear_day(
    employee_id: uuid.UUID,
    day: date,
    db: AsyncSession = Depends(get_db),
    ledger_service: LedgerService = Depends(get_ledger_service),
):
    """Un-book a day."""
    result = await EmployeeService.apply(
        db, employee_id,
        lambda ledger: ledger_service.clear(ledger, day),
        action="clear",
        audit_values={"date": day.isoformat()},
    )
    return _action_out(result, employee_id)


# ── PUT /{employee_id}/work-days ────────────────────────────────────

@router.put("/{employee_id}/work-days", response_model=LedgerActionOut)
async def set_work_days(
    employee_id: uuid.UUID,
    body: WorkDaysUpdate,
    db: AsyncSession = Depends(get_db),
):
    result = await EmployeeService.apply(
        db, employee_id,
        lambda ledger: LedgerService.set_work_days(ledger, body.work_days),
        action="set_work_days",
        audit_values={"workDays": list(body.work_days)},
    )
    return _action_out(result, employee_id)


# ── Catalog ─────────────────────────────────────────────────────────

@router.post("/{employee_id}/categories", response_model=LedgerActionOut)
async def add_category(
    employee_id: uuid.UUID,
    body: LeaveTypeCreate,
    db: AsyncSession = Depends(get_db),
):
    """Add a leave category; the key is normalized to UPPER_SNAKE_CASE."""
    info = LeaveTypeInfo(**body.model_dump(exclude={"key"}))
    result = await EmployeeService.apply(
        db, employee_id,
        lambda ledger: LedgerService.add_category(ledger, body.key, info),
        action="add_category",
        audit_values={"key": body.key},
    )
    return _action_out(result, employee_id)


@router.put("/{employee_id}/categories/{key}", response_model=LedgerActionOut)
async def update_category(
    employee_id: uuid.UUID,
    key: str,
    body: LeaveTypeUpdate,
    db: AsyncSession = Depends(get_db),
):
    result = await EmployeeService.apply(
        db, employee_id,
        lambda ledger: LedgerService.update_category(ledger, key, body),
        action="update_category",
        audit_values={"key": key, **body.model_dump(mode="json", exclude_none=True)},
    )
    return _action_out(result, employee_id)


@router.delete("/{employee_id}/categories/{key}", response_model=LedgerActionOut)
async def delete_category(
    employee_id: uuid.UUID,
    key: str,
    db: AsyncSession = Depends(get_db),
):
    """Delete a category. Tenure categories and categories in use are kept."""
    result = await EmployeeService.apply(
        db, employee_id,
        lambda ledger: LedgerService.delete_category(ledger, key),
        action="delete_category",
        audit_values={"key": key},
    )
    return _action_out(result, employee_id)
