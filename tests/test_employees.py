"""Employee and ledger persistence test suite — onboarding, ledger writes,
optimistic versioning, rollback on storage failure, audit trail and the
HTTP API for employees and ledger operations.

Uses the shared conftest.py pattern with in-memory SQLite.
"""

from __future__ import annotations

import uuid
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from leave_ledger.common.audit import AuditTrail
from leave_ledger.common.constants import (
    OTHER_KEY,
    PERSONAL_LEAVE_KEY,
    VACATION_KEY,
    LeaveStatus,
    LedgerOutcome,
)
from leave_ledger.common.exceptions import ConflictError
from leave_ledger.core_hr.models import Employee
from leave_ledger.core_hr.service import EmployeeService
from leave_ledger.leave.router import get_ledger_service
from leave_ledger.leave.service import LedgerService
from tests.conftest import AS_OF, _employee_payload, _make_employee

DAY = date(2025, 3, 3)


# ── Helpers ─────────────────────────────────────────────────────────


async def _seed_employee(db: AsyncSession, **kwargs) -> Employee:
    employee = await EmployeeService.create_employee(db, _make_employee(**kwargs), as_of=AS_OF)
    await db.commit()
    return employee


async def _audit_actions(db: AsyncSession, entity_id: uuid.UUID) -> list[str]:
    result = await db.execute(
        select(AuditTrail.action)
        .where(AuditTrail.entity_id == entity_id)
        .order_by(AuditTrail.created_at)
    )
    return list(result.scalars().all())


def _assign(day: date = DAY, key: str = VACATION_KEY):
    return lambda ledger: LedgerService().assign(ledger, day, key)


# ═════════════════════════════════════════════════════════════════════
# 1. Onboarding
# ═════════════════════════════════════════════════════════════════════


class TestCreateEmployee:

    async def test_seeds_catalog_and_version(self, db: AsyncSession):
        employee = await _seed_employee(db)
        assert employee.ledger_version == 1

        ledger, version = await EmployeeService.get_ledger(db, employee.id)
        assert version == 1
        assert ledger.leave_days == {}
        assert ledger.leave_types[VACATION_KEY].total == 22
        assert ledger.leave_types[PERSONAL_LEAVE_KEY].total == 6
        assert await _audit_actions(db, employee.id) == ["create"]

    async def test_duplicate_id_number(self, db: AsyncSession):
        await _seed_employee(db)
        with pytest.raises(ConflictError):
            await EmployeeService.create_employee(
                db, _make_employee(name="Other Person"), as_of=AS_OF,
            )

    async def test_list_sorted_by_name(self, db: AsyncSession):
        await _seed_employee(db, name="Zoe", id_number="A1")
        await _seed_employee(db, name="Arnau", id_number="B2")
        names = [emp.name for emp in await EmployeeService.list_employees(db)]
        assert names == ["Arnau", "Zoe"]

    async def test_delete_employee(self, db: AsyncSession):
        employee = await _seed_employee(db)
        assert await EmployeeService.delete_employee(db, employee.id) is True
        assert await EmployeeService.get_employee(db, employee.id) is None
        # The audit trail outlives the employee
        assert await _audit_actions(db, employee.id) == ["create", "delete"]
        assert await EmployeeService.delete_employee(db, employee.id) is False


# ═════════════════════════════════════════════════════════════════════
# 2. Ledger writes
# ═════════════════════════════════════════════════════════════════════


class TestApply:

    async def test_applied_operation_is_persisted(self, db: AsyncSession):
        employee = await _seed_employee(db)
        result = await EmployeeService.apply(db, employee.id, _assign(), action="assign")
        assert result.outcome is LedgerOutcome.applied
        assert result.version == 2
        await db.commit()
        db.expunge_all()

        ledger, version = await EmployeeService.get_ledger(db, employee.id)
        assert version == 2
        assert ledger.entry(DAY).category_key == VACATION_KEY
        assert await _audit_actions(db, employee.id) == ["create", "assign"]

    async def test_rejected_operation_does_not_write(self, db: AsyncSession):
        employee = await _seed_employee(db)
        await EmployeeService.apply(db, employee.id, _assign(), action="assign")
        await db.commit()

        result = await EmployeeService.apply(db, employee.id, _assign(key=OTHER_KEY), action="assign")
        assert result.outcome is LedgerOutcome.rejected
        assert result.version == 2
        assert result.ledger.entry(DAY).category_key == VACATION_KEY
        assert await _audit_actions(db, employee.id) == ["create", "assign"]

    async def test_unknown_employee(self, db: AsyncSession):
        assert await EmployeeService.apply(db, uuid.uuid4(), _assign(), action="assign") is None
        assert await EmployeeService.get_ledger(db, uuid.uuid4()) is None

    async def test_storage_failure_rolls_back(self, db: AsyncSession):
        employee = await _seed_employee(db)
        # The rollback expires the instance; keep the plain id
        employee_id = employee.id
        failing_flush = AsyncMock(side_effect=SQLAlchemyError("disk full"))

        with patch.object(AsyncSession, "flush", failing_flush):
            result = await EmployeeService.apply(db, employee_id, _assign(), action="assign")

        assert result.outcome is LedgerOutcome.persistence_failed
        assert result.ledger.entry(DAY) is None
        failing_flush.assert_awaited()

        db.expunge_all()
        ledger, version = await EmployeeService.get_ledger(db, employee_id)
        assert ledger.leave_days == {}
        assert version == 1

    async def test_concurrent_write_reports_conflict(self, db: AsyncSession):
        employee = await _seed_employee(db)
        stale = AsyncMock(side_effect=StaleDataError("UPDATE matched 0 rows"))

        with patch.object(AsyncSession, "flush", stale):
            result = await EmployeeService.apply(db, employee.id, _assign(), action="assign")

        assert result.outcome is LedgerOutcome.conflict
        assert result.ledger.entry(DAY) is None


class TestSaveLedger:

    async def test_stale_expected_version(self, db: AsyncSession):
        employee = await _seed_employee(db)
        ledger, _ = await EmployeeService.get_ledger(db, employee.id)
        booked = LedgerService().assign(ledger, DAY, VACATION_KEY).ledger

        result = await EmployeeService.save_ledger(db, employee.id, booked, expected_version=7)
        assert result.outcome is LedgerOutcome.conflict
        assert result.version == 1
        assert result.ledger == ledger

    async def test_matching_expected_version(self, db: AsyncSession):
        employee = await _seed_employee(db)
        ledger, version = await EmployeeService.get_ledger(db, employee.id)
        booked = LedgerService().assign(ledger, DAY, VACATION_KEY).ledger

        result = await EmployeeService.save_ledger(db, employee.id, booked, expected_version=version)
        assert result.applied
        assert result.version == 2


class TestActivate:

    async def test_refreshes_tenure_totals(self, db: AsyncSession):
        employee = await _seed_employee(db, hire_date=date(2010, 6, 2))
        ledger, _ = await EmployeeService.get_ledger(db, employee.id)
        assert ledger.leave_types[VACATION_KEY].total == 22

        result = await EmployeeService.activate(db, employee.id, as_of=date(2025, 6, 2))
        assert result.applied
        assert result.ledger.leave_types[VACATION_KEY].total == 23
        assert result.version == 2

        again = await EmployeeService.activate(db, employee.id, as_of=date(2025, 6, 2))
        assert again.outcome is LedgerOutcome.unchanged
        assert again.version == 2

    async def test_unknown_employee(self, db: AsyncSession):
        assert await EmployeeService.activate(db, uuid.uuid4()) is None


# ═════════════════════════════════════════════════════════════════════
# 3. Employees API
# ═════════════════════════════════════════════════════════════════════


async def _create(client: AsyncClient, **kwargs) -> dict:
    resp = await client.post("/api/v1/employees", json=_employee_payload(**kwargs))
    assert resp.status_code == 201
    return resp.json()


class TestEmployeesAPI:

    async def test_health(self, client: AsyncClient):
        resp = await client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    async def test_create_and_list(self, client: AsyncClient):
        created = await _create(client, id_number=" 87654321x ")
        assert created["idNumber"] == "87654321X"
        assert created["hireDate"] == "2015-03-01"

        resp = await client.get("/api/v1/employees")
        assert resp.status_code == 200
        assert [emp["id"] for emp in resp.json()] == [created["id"]]

    async def test_duplicate_id_number(self, client: AsyncClient):
        await _create(client)
        resp = await client.post("/api/v1/employees", json=_employee_payload(name="Someone Else"))
        assert resp.status_code == 409
        assert resp.headers["content-type"].startswith("application/problem+json")
        assert "id_number" in resp.json()["errors"]

    async def test_blank_name(self, client: AsyncClient):
        payload = _employee_payload()
        payload["name"] = "   "
        resp = await client.post("/api/v1/employees", json=payload)
        assert resp.status_code == 422
        assert resp.json()["title"] == "Validation Error"

    async def test_delete(self, client: AsyncClient):
        emp_id = (await _create(client))["id"]
        resp = await client.delete(f"/api/v1/employees/{emp_id}")
        assert resp.json() == {"success": True}
        resp = await client.get(f"/api/v1/employees/{emp_id}/ledger")
        assert resp.status_code == 404
        resp = await client.delete(f"/api/v1/employees/{emp_id}")
        assert resp.status_code == 404

    async def test_get_ledger(self, client: AsyncClient):
        emp_id = (await _create(client))["id"]
        resp = await client.get(f"/api/v1/employees/{emp_id}/ledger")
        assert resp.status_code == 200
        body = resp.json()
        assert body["version"] == 1
        assert body["leaveDays"] == {}
        assert body["workDays"] == [True, True, True, True, True, False, False]
        assert body["leaveTypes"][VACATION_KEY]["textColor"] == "text-white"

    async def test_activate(self, client: AsyncClient):
        emp_id = (await _create(client, hire_date=date(2010, 6, 2)))["id"]
        resp = await client.post(
            f"/api/v1/employees/{emp_id}/activate", params={"as_of": "2025-06-01"},
        )
        assert resp.status_code == 200
        assert resp.json()["leaveTypes"][VACATION_KEY]["total"] == 22

        resp = await client.post(
            f"/api/v1/employees/{emp_id}/activate", params={"as_of": "2025-06-02"},
        )
        assert resp.json()["leaveTypes"][VACATION_KEY]["total"] == 23

    async def test_replace_ledger_with_version_check(self, client: AsyncClient):
        emp_id = (await _create(client))["id"]
        current = (await client.get(f"/api/v1/employees/{emp_id}/ledger")).json()
        current["leaveDays"] = {"2025-07-01": {"categoryKey": VACATION_KEY, "status": "approved"}}

        resp = await client.put(
            f"/api/v1/employees/{emp_id}/ledger", json={**current, "expectedVersion": 5},
        )
        assert resp.status_code == 409
        assert resp.json()["title"] == "Version Conflict"

        resp = await client.put(
            f"/api/v1/employees/{emp_id}/ledger", json={**current, "expectedVersion": 1},
        )
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "version": 2}

        stored = (await client.get(f"/api/v1/employees/{emp_id}/ledger")).json()
        assert stored["leaveDays"]["2025-07-01"]["status"] == "approved"

    async def test_replace_ledger_rejects_bad_date_key(self, client: AsyncClient):
        emp_id = (await _create(client))["id"]
        resp = await client.put(
            f"/api/v1/employees/{emp_id}/ledger",
            json={"leaveDays": {"someday": {"categoryKey": VACATION_KEY}}},
        )
        assert resp.status_code == 422

    async def test_replace_ledger_rejects_unknown_category(self, client: AsyncClient):
        emp_id = (await _create(client))["id"]
        current = (await client.get(f"/api/v1/employees/{emp_id}/ledger")).json()
        current["leaveDays"] = {"2025-07-01": {"categoryKey": "NOPE"}}

        resp = await client.put(f"/api/v1/employees/{emp_id}/ledger", json=current)
        assert resp.status_code == 422
        assert resp.headers["content-type"].startswith("application/problem+json")

        stored = (await client.get(f"/api/v1/employees/{emp_id}/ledger")).json()
        assert stored["leaveDays"] == {}
        assert stored["version"] == 1


# ═════════════════════════════════════════════════════════════════════
# 4. Leave API
# ═════════════════════════════════════════════════════════════════════


class TestLeaveAPI:

    async def test_book_approve_clear_flow(self, client: AsyncClient):
        emp_id = (await _create(client))["id"]
        base = f"/api/v1/leave/{emp_id}/days/2025-03-03"

        resp = await client.post(base, json={"categoryKey": VACATION_KEY})
        assert resp.status_code == 200
        body = resp.json()
        assert body["outcome"] == "applied"
        assert body["version"] == 2
        assert body["ledger"]["leaveDays"]["2025-03-03"] == {
            "categoryKey": VACATION_KEY, "status": LeaveStatus.requested.value,
        }

        resp = await client.post(base, json={"categoryKey": OTHER_KEY})
        assert resp.json()["outcome"] == "rejected"
        assert resp.json()["version"] == 2

        resp = await client.post(f"{base}/approve")
        assert resp.json()["outcome"] == "applied"
        resp = await client.post(f"{base}/approve")
        assert resp.json()["outcome"] == "unchanged"

        resp = await client.delete(base)
        assert resp.status_code == 200
        assert resp.json()["outcome"] == "rejected"
        assert resp.json()["ledger"]["leaveDays"]["2025-03-03"]["status"] == "approved"

    async def test_collaborative_mode_clears_approved(self, app, client: AsyncClient):
        app.dependency_overrides[get_ledger_service] = lambda: LedgerService(allow_clear_approved=True)
        emp_id = (await _create(client))["id"]
        base = f"/api/v1/leave/{emp_id}/days/2025-03-03"
        await client.post(base, json={"categoryKey": VACATION_KEY})
        await client.post(f"{base}/approve")

        resp = await client.delete(base)
        assert resp.json()["outcome"] == "applied"
        assert resp.json()["ledger"]["leaveDays"] == {}

    async def test_unknown_category_and_absent_day(self, client: AsyncClient):
        emp_id = (await _create(client))["id"]
        resp = await client.post(
            f"/api/v1/leave/{emp_id}/days/2025-03-03", json={"categoryKey": "TRAINING"},
        )
        assert resp.json()["outcome"] == "not_found"
        resp = await client.post(f"/api/v1/leave/{emp_id}/days/2025-03-04/approve")
        assert resp.json()["outcome"] == "not_found"

    async def test_unknown_employee(self, client: AsyncClient):
        resp = await client.post(
            f"/api/v1/leave/{uuid.uuid4()}/days/2025-03-03", json={"categoryKey": VACATION_KEY},
        )
        assert resp.status_code == 404
        assert resp.json()["title"] == "Employee Not Found"

    async def test_storage_failure_returns_503(self, client: AsyncClient):
        emp_id = (await _create(client))["id"]
        with patch(
            "leave_ledger.core_hr.service.create_audit_entry",
            new_callable=AsyncMock,
            side_effect=SQLAlchemyError("connection lost"),
        ):
            resp = await client.post(
                f"/api/v1/leave/{emp_id}/days/2025-03-03", json={"categoryKey": VACATION_KEY},
            )
        assert resp.status_code == 503
        assert resp.json()["title"] == "Persistence Failure"

        ledger = (await client.get(f"/api/v1/employees/{emp_id}/ledger")).json()
        assert ledger["leaveDays"] == {}
        assert ledger["version"] == 1

    async def test_work_days(self, client: AsyncClient):
        emp_id = (await _create(client))["id"]
        pattern = [False, True, True, True, True, True, False]
        resp = await client.put(f"/api/v1/leave/{emp_id}/work-days", json={"workDays": pattern})
        assert resp.json()["outcome"] == "applied"
        assert resp.json()["ledger"]["workDays"] == pattern

        resp = await client.put(f"/api/v1/leave/{emp_id}/work-days", json={"workDays": [True] * 6})
        assert resp.status_code == 422

    async def test_category_management(self, client: AsyncClient):
        emp_id = (await _create(client))["id"]
        base = f"/api/v1/leave/{emp_id}/categories"

        resp = await client.post(
            base, json={"key": "remote work", "label": "Remote Work", "total": 10},
        )
        body = resp.json()
        assert body["outcome"] == "applied"
        assert body["ledger"]["leaveTypes"]["REMOTE_WORK"]["total"] == 10

        resp = await client.put(f"{base}/REMOTE_WORK", json={"textColor": "text-black"})
        assert resp.json()["ledger"]["leaveTypes"]["REMOTE_WORK"]["textColor"] == "text-black"

        resp = await client.post(base, json={"key": "vacation", "label": "Dup"})
        assert resp.json()["outcome"] == "rejected"

        resp = await client.delete(f"{base}/{VACATION_KEY}")
        assert resp.json()["outcome"] == "rejected"

        resp = await client.delete(f"{base}/REMOTE_WORK")
        assert resp.json()["outcome"] == "applied"
        assert "REMOTE_WORK" not in resp.json()["ledger"]["leaveTypes"]

    async def test_negative_total_rejected(self, client: AsyncClient):
        emp_id = (await _create(client))["id"]
        resp = await client.put(
            f"/api/v1/leave/{emp_id}/categories/{VACATION_KEY}", json={"total": -3},
        )
        assert resp.status_code == 422
