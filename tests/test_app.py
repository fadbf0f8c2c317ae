from __future__ import annotations

from datetime import datetime, timezone

import pytest
import structlog
from werkzeug.security import generate_password_hash

from hr_backoffice.container import assemble_container
from hr_backoffice.core.enums import AccrualType
from hr_backoffice.leave.model import LeavePolicy
from hr_backoffice.main import create_app
from hr_backoffice.permissions.model import Role

from fakes import (
    FakeAttendance,
    FakeAudit,
    FakeBalances,
    FakeFileStore,
    FakeHolidays,
    FakeLeaveRequests,
    FakePermissions,
    FakePolicies,
    FakeProfiles,
    FakeRoles,
    FakeTimesheets,
    FakeUsers,
    FakeWorkLogs,
    FixedClock,
    user,
)

PASSWORD = "s3cret-pass"


@pytest.fixture
def client():
    hashed = generate_password_hash(PASSWORD)
    users = FakeUsers(
        [
            user(1, password_hash=hashed),
            user(2, managers=(1,), password_hash=hashed),
            user(7, password_hash=hashed, role_ids=(2,)),
            user(9, password_hash=hashed, role_ids=(1,)),
        ]
    )
    roles = FakeRoles(
        users,
        [
            Role(role_id=1, name="HR", company_id=1, permissions=("leave.approve", "leave.manage")),
            Role(role_id=2, name="System Admin", company_id=None),
        ],
    )
    container = assemble_container(
        conn=None,
        users_repo=users,
        permissions_repo=FakePermissions(),
        roles_repo=roles,
        audit_repo=FakeAudit(),
        attendance_repo=FakeAttendance(),
        timesheets_repo=FakeTimesheets(),
        worklogs_repo=FakeWorkLogs(),
        policies_repo=FakePolicies(
            [LeavePolicy(leave_type="LOP", name="Loss of Pay", accrual_type=AccrualType.NONE, allow_negative_balance=True)]
        ),
        balances_repo=FakeBalances(),
        leave_requests_repo=FakeLeaveRequests(),
        holidays_repo=FakeHolidays(),
        profiles_repo=FakeProfiles(),
        file_store=FakeFileStore(),
        jwt_secret="test-jwt-secret",
        tz_name="Asia/Kolkata",
        clock=FixedClock(datetime(2026, 3, 1, 6, 0, tzinfo=timezone.utc)),
    )
    app = create_app("hr_backoffice.config.testing", container=container)
    return app.test_client()


def _login(client, user_id: int) -> dict:
    res = client.post("/api/auth/login", json={"email": f"user{user_id}@example.com", "password": PASSWORD})
    assert res.status_code == 200
    return {"Authorization": f"Bearer {res.get_json()['token']}"}


def test_missing_token_is_401(client):
    res = client.get("/api/auth/me")
    assert res.status_code == 401
    assert res.get_json() == {"message": "Not authorized, no token"}


def test_bad_password_is_401(client):
    res = client.post("/api/auth/login", json={"email": "user2@example.com", "password": "nope"})
    assert res.status_code == 401


def test_me_lists_resolved_permissions(client):
    body = client.get("/api/auth/me", headers=_login(client, 9)).get_json()
    assert body["user_id"] == 9
    assert body["is_system_admin"] is False
    assert body["permissions"] == ["leave.approve", "leave.manage"]


def test_forbidden_names_the_missing_permission(client):
    res = client.post("/api/holidays", json={"name": "Holi", "date": "2026-03-04"}, headers=_login(client, 2))
    assert res.status_code == 403
    assert res.get_json()["permission"] == "leave.manage"


def test_validation_error_is_400(client):
    res = client.post("/api/leaves/apply", json={"leave_type": "LOP", "reason": "x"}, headers=_login(client, 2))
    assert res.status_code == 400
    assert "start_date" in res.get_json()["message"]


def test_unknown_request_is_404(client):
    res = client.put("/api/leaves/999/cancel", json={}, headers=_login(client, 2))
    assert res.status_code == 404


def test_leave_flow_and_state_conflict(client):
    owner = _login(client, 2)
    res = client.post(
        "/api/leaves/apply",
        json={"leave_type": "LOP", "start_date": "2026-03-02", "end_date": "2026-03-03", "reason": "Travel"},
        headers=owner,
    )
    assert res.status_code == 201
    request_id = res.get_json()["request_id"]
    assert res.get_json()["days_count"] == 2

    manager = _login(client, 1)
    assert [r["request_id"] for r in client.get("/api/leaves/approvals", headers=manager).get_json()] == [request_id]

    res = client.put(f"/api/leaves/{request_id}/decision", json={"status": "Approved"}, headers=manager)
    assert res.status_code == 200
    assert res.get_json()["status"] == "Approved"

    res = client.put(f"/api/leaves/{request_id}/cancel", json={}, headers=owner)
    assert res.status_code == 409


def test_accrual_trigger_needs_system_admin(client):
    res = client.post("/api/admin/accrual/monthly", headers=_login(client, 9))
    assert res.status_code == 403

    res = client.post("/api/admin/accrual/monthly", headers=_login(client, 7))
    assert res.status_code == 200
    assert res.get_json()["failed"] == []

    res = client.post("/api/admin/accrual/weekly", headers=_login(client, 7))
    assert res.status_code == 400


def test_log_context_is_reset_between_requests(client):
    client.get("/api/auth/me", headers=_login(client, 9))
    structlog.contextvars.bind_contextvars(user_id=9, company_id=1)

    assert client.get("/api/auth/me").status_code == 401
    assert "user_id" not in structlog.contextvars.get_contextvars()
