"""Holiday calendar generator — fixed table, Easter-based movable feasts,
and working-day classification.

Everything here is pure: no I/O, no clock, no shared state. Holidays are
derived per requested year and never persisted.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable, Mapping, Sequence

from leave_ledger.common.constants import (
    DEFAULT_WORK_DAYS,
    EARLIEST_GREGORIAN_YEAR,
    DayKind,
    HolidayCategory,
)
from leave_ledger.holidays.schemas import FixedHoliday, HolidayEntry

logger = logging.getLogger(__name__)


# (month, day, name, category); written in this order, later rows win
FIXED_HOLIDAYS: tuple[FixedHoliday, ...] = tuple(
    FixedHoliday(month=m, day=d, name=name, category=cat)
    for m, d, name, cat in (
        (1, 1, "New Year's Day", HolidayCategory.national_fixed),
        (1, 6, "Epiphany", HolidayCategory.national_fixed),
        (5, 1, "Labour Day", HolidayCategory.national_fixed),
        (6, 24, "Saint John's Day", HolidayCategory.regional_fixed),
        (8, 15, "Assumption Day", HolidayCategory.national_fixed),
        (9, 11, "National Day of Catalonia", HolidayCategory.regional_fixed),
        (10, 12, "Spanish National Day", HolidayCategory.national_fixed),
        (11, 1, "All Saints' Day", HolidayCategory.national_fixed),
        (12, 6, "Constitution Day", HolidayCategory.national_fixed),
        (12, 8, "Immaculate Conception", HolidayCategory.national_fixed),
        (12, 25, "Christmas Day", HolidayCategory.national_fixed),
        (12, 26, "Saint Stephen's Day", HolidayCategory.regional_fixed),
    )
)

GOOD_FRIDAY_OFFSET = -2
EASTER_MONDAY_OFFSET = 1


def _check_year(year: int) -> None:
    if year < EARLIEST_GREGORIAN_YEAR:
        raise ValueError(
            f"Year {year} predates the Gregorian calendar "
            f"(minimum {EARLIEST_GREGORIAN_YEAR})."
        )


def easter_sunday(year: int) -> date:
    """Return Easter Sunday for *year* (Meeus/Jones/Butcher algorithm)."""
    _check_year(year)
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def generate_holidays(
    year: int,
    extra_fixed: Iterable[FixedHoliday] = (),
) -> dict[str, HolidayEntry]:
    """Build the holiday calendar for *year*, keyed by ISO date.

    Rows are written in order: the static fixed table, then *extra_fixed*
    (configured local / patron days), then the two Easter-derived days.
    When two rows land on the same date the later one replaces the earlier.
    """
    _check_year(year)
    holidays: dict[str, HolidayEntry] = {}

    for row in (*FIXED_HOLIDAYS, *extra_fixed):
        try:
            day = date(year, row.month, row.day)
        except ValueError:
            # e.g. a 29 February row in a common year
            logger.debug("Skipping %s: %s-%s is not a date in %s", row.name, row.month, row.day, year)
            continue
        holidays[day.isoformat()] = HolidayEntry(name=row.name, category=row.category)

    sunday = easter_sunday(year)
    movable = (
        (sunday + timedelta(days=GOOD_FRIDAY_OFFSET), "Good Friday", HolidayCategory.movable_national),
        (sunday + timedelta(days=EASTER_MONDAY_OFFSET), "Easter Monday", HolidayCategory.movable_regional),
    )
    for day, name, category in movable:
        holidays[day.isoformat()] = HolidayEntry(name=name, category=category)

    return holidays


def parse_fixed_holidays(rows: Iterable[Mapping]) -> list[FixedHoliday]:
    """Validate raw configuration rows into FixedHoliday values."""
    return [FixedHoliday.model_validate(row) for row in rows]


# ── Working-day classification ──────────────────────────────────────


def classify_day(
    day: date,
    holidays: Mapping[str, HolidayEntry],
    work_days: Sequence[bool] = DEFAULT_WORK_DAYS,
) -> DayKind:
    """Classify *day* for an employee with the given Monday-first pattern.

    Holidays take precedence over the weekly pattern.
    """
    if day.isoformat() in holidays:
        return DayKind.holiday
    if not work_days[day.weekday()]:
        return DayKind.weekly_off
    return DayKind.working


def is_working_day(
    day: date,
    holidays: Mapping[str, HolidayEntry],
    work_days: Sequence[bool] = DEFAULT_WORK_DAYS,
) -> bool:
    return classify_day(day, holidays, work_days) is DayKind.working


def working_days_between(
    start: date,
    end: date,
    work_days: Sequence[bool] = DEFAULT_WORK_DAYS,
    extra_fixed: Iterable[FixedHoliday] = (),
) -> list[date]:
    """List the working dates in the inclusive range [start, end].

    Ranges may span years; each year's calendar is generated once.
    """
    if start > end:
        return []
    extra = tuple(extra_fixed)
    calendars: dict[int, dict[str, HolidayEntry]] = {}
    result: list[date] = []
    # Offsets from start, so a range ending on date.max never steps past it
    for offset in range((end - start).days + 1):
        current = start + timedelta(days=offset)
        if current.year not in calendars:
            calendars[current.year] = generate_holidays(current.year, extra)
        if is_working_day(current, calendars[current.year], work_days):
            result.append(current)
    return result
