"""Core HR Pydantic v2 schemas — employee profiles.

Naming conventions:
  - *Create  → request bodies (write)
  - *Profile → response bodies (read)
"""

from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class EmployeeCreate(BaseModel):
    """Payload for onboarding an employee."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    name: str = Field(..., min_length=1, max_length=200)
    id_number: str = Field(..., min_length=1, max_length=30, description="Legal id (DNI)")
    department: str = Field(..., min_length=1, max_length=100)
    hire_date: date

    @field_validator("name", "id_number", "department")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank.")
        return v

    @field_validator("id_number")
    @classmethod
    def upper_id_number(cls, v: str) -> str:
        return v.upper()


class EmployeeProfile(BaseModel):
    """Employee identity without the ledger."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    id: uuid.UUID
    name: str
    id_number: str
    department: str
    hire_date: date
