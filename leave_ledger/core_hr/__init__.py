"""Core HR module — Employee model with its embedded leave ledger, schemas and services."""

from leave_ledger.core_hr.models import Employee

__all__ = ["Employee"]
