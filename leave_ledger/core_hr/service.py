"""Core HR service layer — employee onboarding and ledger persistence.

Business logic:
  - Onboarding seeds the ledger catalog from tenure (entitlement calculators)
  - Ledger operations run against a snapshot loaded from storage; a failed
    write rolls back and hands the pre-mutation snapshot back to the caller
  - ``ledger_version`` guards against concurrent writers (optimistic locking)

Lookups of unknown employees return None rather than raising; routers turn
that into a 404.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from leave_ledger.common.audit import create_audit_entry
from leave_ledger.common.constants import DEFAULT_WORK_DAYS, LedgerOutcome
from leave_ledger.common.exceptions import ConflictError
from leave_ledger.core_hr.models import Employee
from leave_ledger.core_hr.schemas import EmployeeCreate
from leave_ledger.leave.entitlements import refresh_entitlements, seed_leave_types
from leave_ledger.leave.schemas import EmployeeLedger, LedgerResult

logger = logging.getLogger(__name__)

LedgerOperation = Callable[[EmployeeLedger], LedgerResult]


class EmployeeService:
    """Async employee and ledger storage operations."""

    # ─────────────────────────────────────────────────────────────────
    # Ledger <-> row mapping
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def load_ledger(employee: Employee) -> EmployeeLedger:
        """Build an immutable ledger snapshot from the stored JSON columns."""
        return EmployeeLedger.model_validate(
            {
                "leaveDays": employee.leave_days or {},
                "leaveTypes": employee.leave_types or {},
                "workDays": employee.work_days or list(DEFAULT_WORK_DAYS),
            }
        )

    @staticmethod
    def _write_ledger(employee: Employee, ledger: EmployeeLedger) -> None:
        stored = ledger.to_storage()
        employee.leave_days = stored["leaveDays"]
        employee.leave_types = stored["leaveTypes"]
        employee.work_days = stored["workDays"]

    # ─────────────────────────────────────────────────────────────────
    # Employees
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_employees(db: AsyncSession) -> list[Employee]:
        """All employees ordered by name."""
        result = await db.execute(select(Employee).order_by(Employee.name, Employee.id))
        return list(result.scalars().all())

    @staticmethod
    async def get_employee(db: AsyncSession, employee_id: uuid.UUID) -> Optional[Employee]:
        result = await db.execute(select(Employee).where(Employee.id == employee_id))
        return result.scalars().first()

    @staticmethod
    async def create_employee(
        db: AsyncSession,
        data: EmployeeCreate,
        *,
        as_of: Optional[date] = None,
    ) -> Employee:
        """Create an employee and seed their ledger with tenure-based totals."""

        ledger = EmployeeLedger(leave_types=seed_leave_types(data.hire_date, as_of or date.today()))
        employee = Employee(**data.model_dump())
        EmployeeService._write_ledger(employee, ledger)

        db.add(employee)
        try:
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            if "id_number" in str(exc.orig):
                raise ConflictError("id_number", data.id_number)
            raise

        await create_audit_entry(
            db,
            action="create",
            entity_type="employee",
            entity_id=employee.id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Onboarded employee %s (%s)", employee.id, employee.id_number)
        return employee

    @staticmethod
    async def delete_employee(db: AsyncSession, employee_id: uuid.UUID) -> bool:
        """Delete an employee together with their ledger. False if absent."""
        employee = await EmployeeService.get_employee(db, employee_id)
        if employee is None:
            return False

        old_values = {
            "name": employee.name,
            "idNumber": employee.id_number,
            **EmployeeService.load_ledger(employee).to_storage(),
        }
        await db.delete(employee)
        await create_audit_entry(
            db,
            action="delete",
            entity_type="employee",
            entity_id=employee_id,
            old_values=old_values,
        )
        logger.info("Deleted employee %s", employee_id)
        return True

    # ─────────────────────────────────────────────────────────────────
    # Ledgers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_ledger(
        db: AsyncSession,
        employee_id: uuid.UUID,
    ) -> Optional[tuple[EmployeeLedger, int]]:
        """(ledger, version) for an employee, or None if absent."""
        employee = await EmployeeService.get_employee(db, employee_id)
        if employee is None:
            return None
        return EmployeeService.load_ledger(employee), employee.ledger_version

    @staticmethod
    async def load_all_ledgers(db: AsyncSession) -> dict[str, EmployeeLedger]:
        """Every employee's ledger keyed by employee id string."""
        employees = await EmployeeService.list_employees(db)
        return {str(emp.id): EmployeeService.load_ledger(emp) for emp in employees}

    @staticmethod
    async def apply(
        db: AsyncSession,
        employee_id: uuid.UUID,
        operation: LedgerOperation,
        *,
        action: str,
        audit_values: Optional[dict[str, Any]] = None,
    ) -> Optional[LedgerResult]:
        """Run a pure ledger operation against the stored ledger and persist it.

        Returns None when the employee does not exist. Non-applied outcomes
        are returned without touching storage.
        """
        employee = await EmployeeService.get_employee(db, employee_id)
        if employee is None:
            return None

        snapshot = EmployeeService.load_ledger(employee)
        version = employee.ledger_version
        result = operation(snapshot)
        if not result.applied:
            return result.model_copy(update={"version": version})

        return await EmployeeService._persist(
            db, employee, snapshot, result, action=action, audit_values=audit_values,
        )

    @staticmethod
    async def save_ledger(
        db: AsyncSession,
        employee_id: uuid.UUID,
        ledger: EmployeeLedger,
        *,
        expected_version: Optional[int] = None,
    ) -> Optional[LedgerResult]:
        """Replace an employee's whole ledger.

        A stale ``expected_version`` yields a ``conflict`` outcome and no write.
        """
        employee = await EmployeeService.get_employee(db, employee_id)
        if employee is None:
            return None

        snapshot = EmployeeService.load_ledger(employee)
        if expected_version is not None and expected_version != employee.ledger_version:
            logger.info(
                "Stale ledger write for %s: expected v%s, stored v%s",
                employee_id, expected_version, employee.ledger_version,
            )
            return LedgerResult(
                ledger=snapshot,
                outcome=LedgerOutcome.conflict,
                detail="The ledger was changed by another writer.",
                version=employee.ledger_version,
            )

        result = LedgerResult(ledger=ledger, outcome=LedgerOutcome.applied)
        return await EmployeeService._persist(db, employee, snapshot, result, action="replace_ledger")

    @staticmethod
    async def activate(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        as_of: Optional[date] = None,
    ) -> Optional[LedgerResult]:
        """Make an employee the active ledger owner: recompute tenure totals."""
        employee = await EmployeeService.get_employee(db, employee_id)
        if employee is None:
            return None
        hire_date = employee.hire_date
        as_of = as_of or date.today()

        def _refresh(ledger: EmployeeLedger) -> LedgerResult:
            refreshed = refresh_entitlements(ledger, hire_date, as_of)
            outcome = LedgerOutcome.unchanged if refreshed is ledger else LedgerOutcome.applied
            return LedgerResult(ledger=refreshed, outcome=outcome)

        return await EmployeeService.apply(
            db, employee_id, _refresh,
            action="activate", audit_values={"asOf": as_of.isoformat()},
        )

    # ─────────────────────────────────────────────────────────────────
    # Persistence with rollback
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _persist(
        db: AsyncSession,
        employee: Employee,
        snapshot: EmployeeLedger,
        result: LedgerResult,
        *,
        action: str,
        audit_values: Optional[dict[str, Any]] = None,
    ) -> LedgerResult:
        employee_id = employee.id
        try:
            EmployeeService._write_ledger(employee, result.ledger)
            await create_audit_entry(
                db,
                action=action,
                entity_type="ledger",
                entity_id=employee_id,
                new_values=audit_values,
            )
        except StaleDataError:
            await db.rollback()
            logger.warning("Concurrent ledger write detected for %s (%s)", employee_id, action)
            return LedgerResult(
                ledger=snapshot,
                outcome=LedgerOutcome.conflict,
                detail="The ledger was changed by another writer.",
            )
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("Ledger write failed for %s (%s): %s", employee_id, action, exc)
            return LedgerResult(
                ledger=snapshot,
                outcome=LedgerOutcome.persistence_failed,
                detail="The change could not be saved; the previous ledger was kept.",
            )

        logger.info("Ledger %s for %s -> v%s", action, employee_id, employee.ledger_version)
        return result.model_copy(update={"version": employee.ledger_version})
