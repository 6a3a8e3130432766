"""Reports router — per-category stats and the yearly summary dashboard."""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.common.constants import JanuaryExclusionScope
from leave_ledger.config import settings
from leave_ledger.core_hr.service import EmployeeService
from leave_ledger.database import get_db
from leave_ledger.leave.service import merge_catalogs
from leave_ledger.reports.schemas import AggregatedStats, AggregationFilter, ReportSummary
from leave_ledger.reports.service import aggregate, build_report_summary

router = APIRouter(prefix="", tags=["reports"])


def _scope(
    category_keys: Optional[list[str]] = Query(None),
    employee_ids: Optional[list[str]] = Query(None),
) -> AggregationFilter:
    """Query-string filter; an omitted or empty list means "all"."""
    return AggregationFilter(
        category_keys=frozenset(category_keys) if category_keys else None,
        employee_ids=frozenset(employee_ids) if employee_ids else None,
    )


# ── GET /{year}/stats ───────────────────────────────────────────────

@router.get("/{year}/stats", response_model=dict[str, AggregatedStats])
async def get_stats(
    year: int = Path(..., ge=1, le=9999),
    january_exclusion: Optional[JanuaryExclusionScope] = Query(None),
    scope: AggregationFilter = Depends(_scope),
    db: AsyncSession = Depends(get_db),
):
    """Requested / approved counts and dates per leave category."""
    ledgers = await EmployeeService.load_all_ledgers(db)
    catalog = merge_catalogs(ledger.leave_types for ledger in ledgers.values())
    return aggregate(
        ledgers,
        catalog,
        year,
        scope,
        january_exclusion=january_exclusion or settings.JANUARY_EXCLUSION_SCOPE,
        carryover_days=settings.CARRYOVER_WINDOW_DAYS,
    )


# ── GET /{year}/summary ─────────────────────────────────────────────

@router.get("/{year}/summary", response_model=ReportSummary)
async def get_summary(
    year: int = Path(..., ge=1, le=9999),
    scope: AggregationFilter = Depends(_scope),
    db: AsyncSession = Depends(get_db),
):
    """Approved-day totals by category, employee and date."""
    ledgers = await EmployeeService.load_all_ledgers(db)
    catalog = merge_catalogs(ledger.leave_types for ledger in ledgers.values())
    return build_report_summary(ledgers, catalog, year, scope)
