"""Common module — shared utilities for the leave ledger."""

from leave_ledger.common.constants import (
    DEFAULT_LEAVE_TYPES,
    DEFAULT_WORK_DAYS,
    PERSONAL_LEAVE_KEY,
    PROTECTED_CATEGORY_KEYS,
    VACATION_KEY,
    DayKind,
    HolidayCategory,
    JanuaryExclusionScope,
    LeaveStatus,
    LedgerOutcome,
)
from leave_ledger.common.exceptions import (
    AppException,
    ConflictError,
    NotFoundException,
    PersistenceException,
    ValidationException,
    VersionConflictError,
    register_exception_handlers,
)

__all__ = [
    # Constants / Enums
    "DayKind",
    "HolidayCategory",
    "JanuaryExclusionScope",
    "LeaveStatus",
    "LedgerOutcome",
    "DEFAULT_LEAVE_TYPES",
    "DEFAULT_WORK_DAYS",
    "PERSONAL_LEAVE_KEY",
    "PROTECTED_CATEGORY_KEYS",
    "VACATION_KEY",
    # Exceptions
    "AppException",
    "ConflictError",
    "NotFoundException",
    "PersistenceException",
    "ValidationException",
    "VersionConflictError",
    "register_exception_handlers",
]
