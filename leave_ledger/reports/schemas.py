"""Report Pydantic v2 schemas — aggregated leave statistics."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EmployeeDate(BaseModel):
    """One booked date attributed to one employee."""

    model_config = ConfigDict(frozen=True)

    employee_id: str
    date: str


class AggregationFilter(BaseModel):
    """Optional restriction of the aggregation scope; None means "all"."""

    model_config = ConfigDict(frozen=True)

    category_keys: Optional[frozenset[str]] = None
    employee_ids: Optional[frozenset[str]] = None

    @property
    def single_employee_id(self) -> Optional[str]:
        """The employee id when the scope names exactly one employee."""
        if self.employee_ids is not None and len(self.employee_ids) == 1:
            return next(iter(self.employee_ids))
        return None


class AggregatedStats(BaseModel):
    """Per-category counters and ordered date lists for a reporting year."""

    requested_count: int = 0
    approved_count: int = 0
    requested_dates: list[EmployeeDate] = Field(default_factory=list)
    approved_dates: list[EmployeeDate] = Field(default_factory=list)

    # Filled only when the scope is a single employee
    allowance: Optional[int] = None
    remaining: Optional[int] = None


class MostUsedCategory(BaseModel):
    key: str
    label: str
    days: int


class ReportSummary(BaseModel):
    """Approved-day totals for the reports dashboard."""

    year: int
    employee_count: int = 0
    total_approved_days: int = 0
    total_days_available: int = 0
    consumption_percentage: int = 0
    most_used_category: Optional[MostUsedCategory] = None
    by_category: dict[str, int] = Field(default_factory=dict)
    by_employee: dict[str, int] = Field(default_factory=dict)
    by_date: dict[str, int] = Field(default_factory=dict)
