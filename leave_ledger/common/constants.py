"""Enums and constants for the leave ledger."""

from __future__ import annotations

import enum


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    requested = "requested"
    approved = "approved"


class LedgerOutcome(str, enum.Enum):
    """Tag attached to every ledger operation result."""

    applied = "applied"
    unchanged = "unchanged"
    rejected = "rejected"
    not_found = "not_found"
    conflict = "conflict"
    persistence_failed = "persistence_failed"


class JanuaryExclusionScope(str, enum.Enum):
    """When carried-over January vacation days are left out of a year's tally."""

    single_employee = "single_employee"
    always = "always"
    never = "never"


# ── Holidays ────────────────────────────────────────────────────────

class HolidayCategory(str, enum.Enum):
    national_fixed = "national_fixed"
    regional_fixed = "regional_fixed"
    local_fixed = "local_fixed"
    patron_fixed = "patron_fixed"
    movable_national = "movable_national"
    movable_regional = "movable_regional"


class DayKind(str, enum.Enum):
    working = "working"
    weekly_off = "weekly_off"
    holiday = "holiday"


# ── Leave categories ────────────────────────────────────────────────

VACATION_KEY = "VACATION"
PERSONAL_LEAVE_KEY = "PERSONAL_LEAVE"
BRIDGE_DAY_KEY = "BRIDGE_DAY"
SICK_LEAVE_KEY = "SICK_LEAVE"
OTHER_KEY = "OTHER"

# Tenure-based categories: editable, never deletable
PROTECTED_CATEGORY_KEYS: frozenset[str] = frozenset({VACATION_KEY, PERSONAL_LEAVE_KEY})

DEFAULT_LEAVE_TYPES: dict[str, dict] = {
    VACATION_KEY: {
        "label": "Vacation",
        "color": "bg-blue-500",
        "textColor": "text-white",
        "total": 22,
    },
    PERSONAL_LEAVE_KEY: {
        "label": "Personal Leave",
        "color": "bg-green-500",
        "textColor": "text-white",
        "total": 6,
    },
    BRIDGE_DAY_KEY: {
        "label": "Bridge Day",
        "color": "bg-yellow-500",
        "textColor": "text-gray-800",
        "total": 2,
    },
    SICK_LEAVE_KEY: {
        "label": "Sick Leave",
        "color": "bg-red-500",
        "textColor": "text-white",
        "total": 0,
    },
    OTHER_KEY: {
        "label": "Other",
        "color": "bg-purple-500",
        "textColor": "text-white",
        "total": 0,
    },
}

# ── Misc constants ──────────────────────────────────────────────────

# Monday-first; Saturday and Sunday off
DEFAULT_WORK_DAYS: tuple[bool, ...] = (True, True, True, True, True, False, False)
EARLIEST_GREGORIAN_YEAR = 1583
CARRYOVER_WINDOW_DAYS = 15
