"""Leave ledger Pydantic v2 schemas — catalog entries, ledger entries, ledgers.

Ledger-shaped models serialize with camelCase aliases, the persisted
representation shared with storage and HTTP clients:

    {"leaveDays": {"2025-03-01": {"categoryKey": "VACATION", "status": "approved"}},
     "leaveTypes": {"VACATION": {"label": ..., "color": ..., "textColor": ..., "total": 23}},
     "workDays": [true, true, true, true, true, false, false]}

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Out               → response bodies (read)
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from leave_ledger.common.constants import DEFAULT_WORK_DAYS, LeaveStatus, LedgerOutcome

_LEDGER_CONFIG = ConfigDict(
    frozen=True,
    populate_by_name=True,
    alias_generator=to_camel,
)


def to_iso_date(value: date | str) -> str:
    """Normalize a date or date string to a zero-padded ISO key."""
    if isinstance(value, date):
        return value.isoformat()
    return date.fromisoformat(value).isoformat()


# ═════════════════════════════════════════════════════════════════════
# Catalog
# ═════════════════════════════════════════════════════════════════════


class LeaveTypeInfo(BaseModel):
    """One leave category in an employee's catalog."""

    model_config = _LEDGER_CONFIG

    label: str = Field(..., min_length=1, max_length=100)
    color: str = "bg-gray-500"
    text_color: str = "text-white"
    total: int = Field(0, ge=0, description="Annual allowance; 0 means tracked only")


class LeaveTypeUpdate(BaseModel):
    """Partial update of a catalog entry."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    label: Optional[str] = Field(None, min_length=1, max_length=100)
    color: Optional[str] = None
    text_color: Optional[str] = None
    total: Optional[int] = Field(None, ge=0)


class LeaveTypeCreate(LeaveTypeInfo):
    """Payload for adding a catalog entry; the key is normalized server-side."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    key: str = Field(..., min_length=1, max_length=60)


# ═════════════════════════════════════════════════════════════════════
# Ledger
# ═════════════════════════════════════════════════════════════════════


class LeaveEntry(BaseModel):
    """One calendar date claimed by one employee."""

    model_config = _LEDGER_CONFIG

    category_key: str = Field(..., min_length=1)
    status: LeaveStatus = LeaveStatus.requested


class EmployeeLedger(BaseModel):
    """Complete, immutable snapshot of one employee's leave state."""

    model_config = _LEDGER_CONFIG

    leave_days: dict[str, LeaveEntry] = Field(default_factory=dict)
    leave_types: dict[str, LeaveTypeInfo] = Field(default_factory=dict)
    work_days: tuple[bool, bool, bool, bool, bool, bool, bool] = DEFAULT_WORK_DAYS

    @field_validator("leave_days")
    @classmethod
    def normalize_date_keys(cls, v: dict[str, LeaveEntry]) -> dict[str, LeaveEntry]:
        normalized: dict[str, LeaveEntry] = {}
        for key, entry in v.items():
            try:
                normalized[to_iso_date(key)] = entry
            except ValueError:
                raise ValueError(f"'{key}' is not an ISO calendar date.")
        return normalized

    @model_validator(mode="after")
    def entries_use_known_categories(self) -> "EmployeeLedger":
        unknown = sorted(
            {entry.category_key for entry in self.leave_days.values()} - set(self.leave_types)
        )
        if unknown:
            raise ValueError(f"Leave days reference unknown leave types: {', '.join(unknown)}.")
        return self

    def entry(self, day: date | str) -> Optional[LeaveEntry]:
        """Entry for *day*, or None when the date is free."""
        return self.leave_days.get(to_iso_date(day))

    def to_storage(self) -> dict:
        """Plain JSON-ready dict in the persisted camelCase shape."""
        return self.model_dump(mode="json", by_alias=True)


class WorkDaysUpdate(BaseModel):
    """Monday-first weekly pattern."""

    work_days: tuple[bool, bool, bool, bool, bool, bool, bool] = Field(
        ..., alias="workDays",
    )

    model_config = ConfigDict(populate_by_name=True)


class AssignRequest(BaseModel):
    """Payload for booking a date."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    category_key: str = Field(..., min_length=1)


# ═════════════════════════════════════════════════════════════════════
# Operation results
# ═════════════════════════════════════════════════════════════════════


class LedgerResult(BaseModel):
    """Outcome of a ledger operation plus the resulting snapshot.

    ``ledger`` is the new snapshot when ``outcome`` is ``applied`` and the
    untouched input otherwise.
    """

    model_config = ConfigDict(frozen=True)

    ledger: EmployeeLedger
    outcome: LedgerOutcome
    detail: Optional[str] = None
    # Stored version after a persisted write; None for pure operations
    version: Optional[int] = None

    @property
    def applied(self) -> bool:
        return self.outcome is LedgerOutcome.applied


class LedgerOut(EmployeeLedger):
    """Ledger response with its optimistic version stamp."""

    version: int


class LedgerUpdate(EmployeeLedger):
    """Whole-ledger replacement; ``expectedVersion`` enables a stale-write check."""

    expected_version: Optional[int] = None


class LedgerActionOut(BaseModel):
    """Response for a single ledger operation."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    outcome: LedgerOutcome
    detail: Optional[str] = None
    version: Optional[int] = None
    ledger: EmployeeLedger


class EntitlementOut(BaseModel):
    """Tenure-based allowances for a hire date as of a reference date."""

    hire_date: date
    as_of: date
    years_of_service: int
    triennials: int
    vacation_days: int
    personal_leave_days: int
