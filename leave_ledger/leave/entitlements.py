"""Tenure-based entitlement calculators.

Both calculators take the reference date explicitly so that results are
reproducible for tests and for historical report years. Only the computed
totals are stored, in the ``total`` of the matching catalog entries.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from leave_ledger.common.constants import (
    DEFAULT_LEAVE_TYPES,
    PERSONAL_LEAVE_KEY,
    VACATION_KEY,
)
from leave_ledger.leave.schemas import EmployeeLedger, LeaveTypeInfo

BASE_VACATION_DAYS = 22
BASE_PERSONAL_LEAVE_DAYS = 6

# (minimum full years, extra days): highest threshold met applies
VACATION_SENIORITY_STEPS: tuple[tuple[int, int], ...] = (
    (35, 5),
    (30, 4),
    (25, 3),
    (20, 2),
    (15, 1),
)


def completed_years_of_service(hire_date: date, as_of: Optional[date] = None) -> int:
    """Full years elapsed since *hire_date*; 0 for future hire dates."""
    as_of = as_of or date.today()
    years = as_of.year - hire_date.year
    if (as_of.month, as_of.day) < (hire_date.month, hire_date.day):
        years -= 1
    return max(years, 0)


def completed_triennials(hire_date: date, as_of: Optional[date] = None) -> int:
    return completed_years_of_service(hire_date, as_of) // 3


def calculate_vacation_days(hire_date: date, as_of: Optional[date] = None) -> int:
    """Annual vacation days: 22 plus a seniority step from 15 years on."""
    years = completed_years_of_service(hire_date, as_of)
    for threshold, extra in VACATION_SENIORITY_STEPS:
        if years >= threshold:
            return BASE_VACATION_DAYS + extra
    return BASE_VACATION_DAYS


def calculate_personal_leave_days(hire_date: date, as_of: Optional[date] = None) -> int:
    """Annual personal leave days: 6, +2 from the 6th triennial,
    +1 more for every triennial after the 7th."""
    triennials = completed_triennials(hire_date, as_of)
    if triennials >= 8:
        additional = 2 + (triennials - 7)
    elif triennials >= 6:
        additional = 2
    else:
        additional = 0
    return BASE_PERSONAL_LEAVE_DAYS + additional


def seed_leave_types(hire_date: date, as_of: Optional[date] = None) -> dict[str, LeaveTypeInfo]:
    """Default catalog for a new employee with tenure-based totals filled in."""
    catalog = {key: LeaveTypeInfo.model_validate(raw) for key, raw in DEFAULT_LEAVE_TYPES.items()}
    return _with_tenure_totals(catalog, hire_date, as_of)


def refresh_entitlements(
    ledger: EmployeeLedger,
    hire_date: date,
    as_of: Optional[date] = None,
) -> EmployeeLedger:
    """Recompute the tenure category totals, overriding manual edits.

    Categories missing from the catalog are left missing.
    """
    leave_types = _with_tenure_totals(dict(ledger.leave_types), hire_date, as_of)
    if leave_types == ledger.leave_types:
        return ledger
    return ledger.model_copy(update={"leave_types": leave_types})


def _with_tenure_totals(
    catalog: dict[str, LeaveTypeInfo],
    hire_date: date,
    as_of: Optional[date],
) -> dict[str, LeaveTypeInfo]:
    totals = {
        VACATION_KEY: calculate_vacation_days(hire_date, as_of),
        PERSONAL_LEAVE_KEY: calculate_personal_leave_days(hire_date, as_of),
    }
    for key, total in totals.items():
        if key in catalog:
            catalog[key] = catalog[key].model_copy(update={"total": total})
    return catalog
