"""Core HR ORM models: Employee with its embedded leave ledger.

SQLAlchemy 2.0 async-compatible models with Mapped[] annotations. The
ledger is stored as three JSON columns in the persisted camelCase shape and
versioned through ``ledger_version`` (optimistic concurrency).
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from leave_ledger.common.constants import DEFAULT_WORK_DAYS
from leave_ledger.database import Base

JSONType = sa.JSON().with_variant(JSONB(), "postgresql")


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class Employee(Base):
    """Employee profile plus the leave ledger it owns."""

    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    id_number: Mapped[str] = mapped_column(sa.String(30), unique=True, nullable=False)
    department: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    hire_date: Mapped[date] = mapped_column(sa.Date, nullable=False)

    # ── Ledger (persisted shape: leaveDays / leaveTypes / workDays) ─
    leave_days: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    leave_types: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    work_days: Mapped[list] = mapped_column(
        JSONType, nullable=False, default=lambda: list(DEFAULT_WORK_DAYS),
    )
    ledger_version: Mapped[int] = mapped_column(sa.Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __mapper_args__ = {"version_id_col": ledger_version}

    def __repr__(self) -> str:
        return f"<Employee {self.name!r} ({self.id_number})>"
