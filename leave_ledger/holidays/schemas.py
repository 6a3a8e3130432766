"""Holiday calendar Pydantic v2 schemas."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from leave_ledger.common.constants import HolidayCategory


class HolidayEntry(BaseModel):
    """Classification of one non-working calendar date."""

    model_config = ConfigDict(frozen=True)

    name: str
    category: HolidayCategory


class FixedHoliday(BaseModel):
    """A (month, day) holiday that recurs on the same date every year."""

    model_config = ConfigDict(frozen=True)

    month: int = Field(..., ge=1, le=12)
    day: int = Field(..., ge=1, le=31)
    name: str = Field(..., min_length=1)
    category: HolidayCategory = HolidayCategory.local_fixed


class HolidayOut(BaseModel):
    """One holiday row in the yearly calendar response."""

    date: date
    name: str
    category: HolidayCategory


class HolidayCalendarOut(BaseModel):
    """Yearly holiday calendar."""

    year: int
    easter_sunday: date
    holidays: list[HolidayOut]
    total: int = 0
