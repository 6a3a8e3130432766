"""Aggregation engine — turns employee ledgers into per-category,
per-employee and per-date statistics.

All functions are pure over their inputs: no I/O and no module state, so
concurrent report requests can call them freely.
"""

from __future__ import annotations

from typing import Mapping, Optional

from leave_ledger.common.constants import (
    CARRYOVER_WINDOW_DAYS,
    VACATION_KEY,
    JanuaryExclusionScope,
    LeaveStatus,
)
from leave_ledger.leave.schemas import EmployeeLedger, LeaveTypeInfo
from leave_ledger.leave.service import merge_catalogs
from leave_ledger.reports.schemas import (
    AggregatedStats,
    AggregationFilter,
    EmployeeDate,
    MostUsedCategory,
    ReportSummary,
)


# ── Scope helpers ───────────────────────────────────────────────────


def _employees_in_scope(
    ledgers: Mapping[str, EmployeeLedger],
    scope: AggregationFilter,
) -> list[str]:
    if scope.employee_ids is None:
        return list(ledgers)
    return [emp_id for emp_id in ledgers if emp_id in scope.employee_ids]


def effective_catalog(
    ledgers: Mapping[str, EmployeeLedger],
    catalog: Mapping[str, LeaveTypeInfo],
    scope: AggregationFilter,
) -> dict[str, LeaveTypeInfo]:
    """Categories reported on: the filtered employees' merged catalogs when
    an employee filter is set, else *catalog*; narrowed by category filter."""
    if scope.employee_ids is not None:
        base = merge_catalogs(
            ledgers[emp_id].leave_types for emp_id in _employees_in_scope(ledgers, scope)
        )
    else:
        base = dict(catalog)
    if scope.category_keys is not None:
        base = {k: v for k, v in base.items() if k in scope.category_keys}
    return base


def _applies_january_exclusion(
    scope: AggregationFilter,
    january_exclusion: JanuaryExclusionScope,
) -> bool:
    if january_exclusion is JanuaryExclusionScope.always:
        return True
    if january_exclusion is JanuaryExclusionScope.never:
        return False
    return scope.single_employee_id is not None


def is_carried_over(category_key: str, iso_date: str, carryover_days: int) -> bool:
    """Vacation booked in the first days of January belongs to the prior year."""
    return (
        category_key == VACATION_KEY
        and iso_date[5:7] == "01"
        and int(iso_date[8:10]) <= carryover_days
    )


# ── Aggregation ─────────────────────────────────────────────────────


def aggregate(
    ledgers: Mapping[str, EmployeeLedger],
    catalog: Mapping[str, LeaveTypeInfo],
    year: int,
    scope: Optional[AggregationFilter] = None,
    *,
    january_exclusion: JanuaryExclusionScope = JanuaryExclusionScope.single_employee,
    carryover_days: int = CARRYOVER_WINDOW_DAYS,
) -> dict[str, AggregatedStats]:
    """Count requested / approved days per category for *year*.

    Steps:
        1. zeroed stats for every category of the effective catalog
        2. walk each in-scope employee's entries dated in *year*
        3. skip carried-over January vacation when the exclusion applies
        4. sort date lists by ISO date (employee id breaks ties)
    Entries whose category is outside the effective catalog are ignored.
    """
    scope = scope or AggregationFilter()
    categories = effective_catalog(ledgers, catalog, scope)
    stats: dict[str, AggregatedStats] = {key: AggregatedStats() for key in categories}
    exclude_january = _applies_january_exclusion(scope, january_exclusion)
    year_prefix = f"{year:04d}-"

    for emp_id in _employees_in_scope(ledgers, scope):
        for iso_date, entry in ledgers[emp_id].leave_days.items():
            if not iso_date.startswith(year_prefix):
                continue
            bucket = stats.get(entry.category_key)
            if bucket is None:
                continue
            if exclude_january and is_carried_over(entry.category_key, iso_date, carryover_days):
                continue

            pair = EmployeeDate(employee_id=emp_id, date=iso_date)
            if entry.status is LeaveStatus.approved:
                bucket.approved_count += 1
                bucket.approved_dates.append(pair)
            else:
                bucket.requested_count += 1
                bucket.requested_dates.append(pair)

    for bucket in stats.values():
        bucket.requested_dates.sort(key=lambda p: (p.date, p.employee_id))
        bucket.approved_dates.sort(key=lambda p: (p.date, p.employee_id))

    single_id = scope.single_employee_id
    if single_id is not None and single_id in ledgers:
        own_types = ledgers[single_id].leave_types
        for key, bucket in stats.items():
            info = own_types.get(key)
            if info is not None and info.total > 0:
                bucket.allowance = info.total
                bucket.remaining = info.total - bucket.approved_count

    return stats


def build_report_summary(
    ledgers: Mapping[str, EmployeeLedger],
    catalog: Mapping[str, LeaveTypeInfo],
    year: int,
    scope: Optional[AggregationFilter] = None,
) -> ReportSummary:
    """Approved-day totals by category, employee and date.

    ``total_days_available`` sums the bounded allowances (total > 0) of
    every in-scope employee; consumption is approved / available, rounded.
    """
    scope = scope or AggregationFilter()
    employees = _employees_in_scope(ledgers, scope)
    categories = effective_catalog(ledgers, catalog, scope)

    summary = ReportSummary(year=year, employee_count=len(employees))
    year_prefix = f"{year:04d}-"

    for emp_id in employees:
        ledger = ledgers[emp_id]
        summary.total_days_available += sum(
            info.total for info in ledger.leave_types.values() if info.total > 0
        )
        for iso_date, entry in ledger.leave_days.items():
            if not iso_date.startswith(year_prefix):
                continue
            if entry.category_key not in categories or entry.status is not LeaveStatus.approved:
                continue
            summary.by_category[entry.category_key] = summary.by_category.get(entry.category_key, 0) + 1
            summary.by_employee[emp_id] = summary.by_employee.get(emp_id, 0) + 1
            summary.by_date[iso_date] = summary.by_date.get(iso_date, 0) + 1

    summary.total_approved_days = sum(summary.by_category.values())
    if summary.total_days_available > 0:
        summary.consumption_percentage = round(
            summary.total_approved_days / summary.total_days_available * 100
        )
    if summary.by_category:
        key, days = max(summary.by_category.items(), key=lambda kv: kv[1])
        summary.most_used_category = MostUsedCategory(
            key=key, label=categories[key].label, days=days,
        )
    summary.by_date = dict(sorted(summary.by_date.items()))
    return summary
