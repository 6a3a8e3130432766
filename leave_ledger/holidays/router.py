"""Holiday router — yearly non-working calendar and working-day lookup."""

from datetime import date

from fastapi import APIRouter, Path, Query

from leave_ledger.common.constants import DEFAULT_WORK_DAYS, EARLIEST_GREGORIAN_YEAR
from leave_ledger.common.exceptions import ValidationException
from leave_ledger.config import settings
from leave_ledger.holidays.schemas import HolidayCalendarOut, HolidayOut
from leave_ledger.holidays.service import (
    easter_sunday,
    generate_holidays,
    parse_fixed_holidays,
    working_days_between,
)

router = APIRouter(prefix="", tags=["holidays"])


# ── GET /working-days ───────────────────────────────────────────────
# Declared before /{year} so the literal path wins.

@router.get("/working-days", response_model=list[date])
async def get_working_days(
    from_date: date = Query(...),
    to_date: date = Query(...),
):
    """Working dates (default Mon–Fri pattern) between two dates, inclusive."""
    if from_date > to_date:
        raise ValidationException({"from_date": ["from_date must be on or before to_date."]})
    if (to_date - from_date).days > 366:
        raise ValidationException({"to_date": ["Range cannot span more than 366 days."]})
    if from_date.year < EARLIEST_GREGORIAN_YEAR:
        raise ValidationException(
            {"from_date": [f"Year must be {EARLIEST_GREGORIAN_YEAR} or later."]}
        )
    return working_days_between(
        from_date,
        to_date,
        DEFAULT_WORK_DAYS,
        parse_fixed_holidays(settings.local_holidays_list),
    )


# ── GET /{year} ─────────────────────────────────────────────────────

@router.get("/{year}", response_model=HolidayCalendarOut)
async def get_holidays(
    year: int = Path(..., ge=EARLIEST_GREGORIAN_YEAR, le=9999),
):
    """Holiday calendar for a year, sorted by date."""
    calendar = generate_holidays(year, parse_fixed_holidays(settings.local_holidays_list))
    rows = [
        HolidayOut(date=date.fromisoformat(key), name=entry.name, category=entry.category)
        for key, entry in sorted(calendar.items())
    ]
    return HolidayCalendarOut(
        year=year,
        easter_sunday=easter_sunday(year),
        holidays=rows,
        total=len(rows),
    )
