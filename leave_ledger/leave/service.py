"""Leave ledger state machine and catalog management.

Business logic:
  - Per-date lifecycle: Empty → Requested → Approved (approval is a ratchet)
  - First writer wins: an occupied date is never overwritten
  - Clearing an approved date only when ``allow_clear_approved`` is set
  - Catalog edits with validated keys and protected tenure categories

Every operation is copy-on-write: it takes a ledger snapshot and returns a
``LedgerResult`` holding either a new snapshot or the untouched input plus
an outcome tag. Nothing here raises for invariant violations or absent
dates, so the same code serves the HTTP layer, batch jobs and tests.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Iterable, Mapping, Optional, Sequence

from leave_ledger.common.constants import (
    PROTECTED_CATEGORY_KEYS,
    LeaveStatus,
    LedgerOutcome,
)
from leave_ledger.leave.schemas import (
    EmployeeLedger,
    LeaveEntry,
    LeaveTypeInfo,
    LeaveTypeUpdate,
    LedgerResult,
    to_iso_date,
)

logger = logging.getLogger(__name__)

_KEY_SEPARATORS = re.compile(r"[\s\-]+")
_VALID_KEY = re.compile(r"^[A-Z0-9]+(?:_[A-Z0-9]+)*$")


def _result(
    ledger: EmployeeLedger,
    outcome: LedgerOutcome,
    detail: Optional[str] = None,
) -> LedgerResult:
    return LedgerResult(ledger=ledger, outcome=outcome, detail=detail)


def _parse_day(day: date | str) -> Optional[str]:
    try:
        return to_iso_date(day)
    except ValueError:
        return None


# ═════════════════════════════════════════════════════════════════════
# LedgerService
# ═════════════════════════════════════════════════════════════════════


class LedgerService:
    """Leave-day state machine over immutable ``EmployeeLedger`` snapshots.

    ``allow_clear_approved`` selects the clearing rule: False keeps approved
    days irreversible (single-employee mode), True lets the owner un-book
    any of their own days (collaborative mode).
    """

    def __init__(self, *, allow_clear_approved: bool = False) -> None:
        self.allow_clear_approved = allow_clear_approved

    # ─────────────────────────────────────────────────────────────────
    # Entries
    # ─────────────────────────────────────────────────────────────────

    def assign(
        self,
        ledger: EmployeeLedger,
        day: date | str,
        category_key: str,
    ) -> LedgerResult:
        """Book *day* under *category_key* as a new requested entry."""
        key = _parse_day(day)
        if key is None:
            return _result(ledger, LedgerOutcome.not_found, f"'{day}' is not a calendar date.")
        if category_key not in ledger.leave_types:
            return _result(
                ledger, LedgerOutcome.not_found,
                f"Leave type '{category_key}' is not in this employee's catalog.",
            )
        existing = ledger.leave_days.get(key)
        if existing is not None:
            logger.info(
                "Booking rejected for %s: already holds %s (%s)",
                key, existing.category_key, existing.status.value,
            )
            return _result(
                ledger, LedgerOutcome.rejected,
                f"{key} is already booked as {existing.category_key}.",
            )

        leave_days = {**ledger.leave_days, key: LeaveEntry(category_key=category_key)}
        return _result(ledger.model_copy(update={"leave_days": leave_days}), LedgerOutcome.applied)

    def clear(self, ledger: EmployeeLedger, day: date | str) -> LedgerResult:
        """Remove the entry on *day*, subject to the approved-day rule."""
        key = _parse_day(day)
        if key is None or key not in ledger.leave_days:
            return _result(ledger, LedgerOutcome.not_found, f"No leave booked on {day}.")

        entry = ledger.leave_days[key]
        if entry.status is LeaveStatus.approved and not self.allow_clear_approved:
            logger.info("Clear rejected for %s: entry is approved", key)
            return _result(
                ledger, LedgerOutcome.rejected,
                f"{key} is approved and can no longer be cleared.",
            )

        leave_days = {k: v for k, v in ledger.leave_days.items() if k != key}
        return _result(ledger.model_copy(update={"leave_days": leave_days}), LedgerOutcome.applied)

    def approve(self, ledger: EmployeeLedger, day: date | str) -> LedgerResult:
        """Move the entry on *day* from requested to approved."""
        key = _parse_day(day)
        if key is None or key not in ledger.leave_days:
            return _result(ledger, LedgerOutcome.not_found, f"No leave booked on {day}.")

        entry = ledger.leave_days[key]
        if entry.status is LeaveStatus.approved:
            return _result(ledger, LedgerOutcome.unchanged, f"{key} is already approved.")

        approved = entry.model_copy(update={"status": LeaveStatus.approved})
        leave_days = {**ledger.leave_days, key: approved}
        return _result(ledger.model_copy(update={"leave_days": leave_days}), LedgerOutcome.applied)

    # ─────────────────────────────────────────────────────────────────
    # Weekly pattern
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def set_work_days(ledger: EmployeeLedger, work_days: Sequence[bool]) -> LedgerResult:
        """Replace the Monday-first weekly work pattern."""
        pattern = tuple(bool(d) for d in work_days)
        if len(pattern) != 7:
            return _result(ledger, LedgerOutcome.rejected, "A week pattern needs exactly 7 days.")
        if pattern == ledger.work_days:
            return _result(ledger, LedgerOutcome.unchanged)
        return _result(ledger.model_copy(update={"work_days": pattern}), LedgerOutcome.applied)

    # ─────────────────────────────────────────────────────────────────
    # Catalog
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def add_category(
        ledger: EmployeeLedger,
        raw_key: str,
        info: LeaveTypeInfo,
    ) -> LedgerResult:
        """Add a new leave category under a normalized key."""
        key = normalize_category_key(raw_key)
        if key is None:
            return _result(
                ledger, LedgerOutcome.rejected,
                f"'{raw_key}' is not a valid leave type key.",
            )
        if key in PROTECTED_CATEGORY_KEYS:
            return _result(ledger, LedgerOutcome.rejected, f"'{key}' is a reserved leave type key.")
        if key in ledger.leave_types:
            return _result(ledger, LedgerOutcome.rejected, f"Leave type '{key}' already exists.")

        leave_types = {**ledger.leave_types, key: info}
        return _result(ledger.model_copy(update={"leave_types": leave_types}), LedgerOutcome.applied)

    @staticmethod
    def update_category(
        ledger: EmployeeLedger,
        key: str,
        changes: LeaveTypeUpdate,
    ) -> LedgerResult:
        """Edit label, colors or allowance of an existing category.

        Protected categories are editable; a manual ``total`` holds until
        the next entitlement refresh.
        """
        current = ledger.leave_types.get(key)
        if current is None:
            return _result(ledger, LedgerOutcome.not_found, f"Leave type '{key}' does not exist.")

        updates = changes.model_dump(exclude_none=True)
        updated = current.model_copy(update=updates)
        if updated == current:
            return _result(ledger, LedgerOutcome.unchanged)

        leave_types = {**ledger.leave_types, key: updated}
        return _result(ledger.model_copy(update={"leave_types": leave_types}), LedgerOutcome.applied)

    @staticmethod
    def delete_category(ledger: EmployeeLedger, key: str) -> LedgerResult:
        """Remove a category unless it is protected or still referenced."""
        if key not in ledger.leave_types:
            return _result(ledger, LedgerOutcome.not_found, f"Leave type '{key}' does not exist.")
        if key in PROTECTED_CATEGORY_KEYS:
            return _result(
                ledger, LedgerOutcome.rejected,
                f"Leave type '{ledger.leave_types[key].label}' cannot be deleted.",
            )
        in_use = categories_in_use(ledger)
        if key in in_use:
            return _result(
                ledger, LedgerOutcome.rejected,
                f"Leave type '{key}' is used by {in_use[key]} booked day(s).",
            )

        leave_types = {k: v for k, v in ledger.leave_types.items() if k != key}
        return _result(ledger.model_copy(update={"leave_types": leave_types}), LedgerOutcome.applied)


# ═════════════════════════════════════════════════════════════════════
# Catalog helpers
# ═════════════════════════════════════════════════════════════════════


def normalize_category_key(raw: str) -> Optional[str]:
    """Uppercase, underscore-separated key, or None when nothing usable remains.

    >>> normalize_category_key("  training-day ")
    'TRAINING_DAY'
    """
    if not isinstance(raw, str):
        return None
    key = _KEY_SEPARATORS.sub("_", raw.strip()).upper()
    return key if _VALID_KEY.match(key) else None


def categories_in_use(ledger: EmployeeLedger) -> dict[str, int]:
    """Count booked days per category key."""
    counts: dict[str, int] = {}
    for entry in ledger.leave_days.values():
        counts[entry.category_key] = counts.get(entry.category_key, 0) + 1
    return counts


def merge_catalogs(
    catalogs: Iterable[Mapping[str, LeaveTypeInfo]],
) -> dict[str, LeaveTypeInfo]:
    """Union of several catalogs; on a key collision the later one wins."""
    merged: dict[str, LeaveTypeInfo] = {}
    for catalog in catalogs:
        merged.update(catalog)
    return merged
