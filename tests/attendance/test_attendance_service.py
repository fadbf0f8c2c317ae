from __future__ import annotations

from datetime import date, datetime

import pytest
import pytz

from hr_backoffice.attendance.service import AttendanceService
from hr_backoffice.core.enums import ApprovalStatus, AttendanceStatus, TimesheetStatus
from hr_backoffice.core.exceptions import AuthorizationError, StateConflictError, ValidationError
from hr_backoffice.permissions.gate import AuthorizationGate
from hr_backoffice.timesheets.service import TimesheetLock

from fakes import FakeAttendance, FakeTimesheets, FakeUsers, FixedClock, make_actor, user

UTC = pytz.UTC


def utc(*args) -> datetime:
    return UTC.localize(datetime(*args))


@pytest.fixture
def env():
    users = FakeUsers(
        [
            user(1),
            user(2, managers=(1,), joining=date(2026, 1, 1)),
            user(3),
        ]
    )
    attendance = FakeAttendance()
    timesheets = FakeTimesheets()
    gate = AuthorizationGate()
    clock = FixedClock(utc(2026, 3, 10, 4, 0))
    service = AttendanceService(
        attendance, users, TimesheetLock(timesheets, gate), gate, tz_name="Asia/Kolkata", clock=clock
    )
    return service, attendance, timesheets, clock


def test_clock_in_buckets_day_in_org_timezone(env):
    service, _, _, _ = env
    # 20:00 UTC is 01:30 the next morning in Kolkata.
    record = service.clock_in(make_actor(2), now=utc(2026, 3, 10, 20, 0))
    assert record.work_date == date(2026, 3, 11)
    assert record.clock_in == datetime(2026, 3, 10, 20, 0)
    assert record.status == AttendanceStatus.PRESENT


def test_double_clock_in_rejected(env):
    service, _, _, _ = env
    service.clock_in(make_actor(2), now=utc(2026, 3, 10, 4, 0))
    with pytest.raises(ValidationError, match="Already clocked in"):
        service.clock_in(make_actor(2), now=utc(2026, 3, 10, 5, 0))


def test_clock_in_before_joining_date_rejected(env):
    service, _, _, _ = env
    with pytest.raises(ValidationError, match="joining date"):
        service.clock_in(make_actor(2), now=utc(2025, 12, 31, 4, 0))


def test_clock_out_derives_half_day(env):
    service, _, _, _ = env
    service.clock_in(make_actor(2), now=utc(2026, 3, 10, 4, 0))
    record = service.clock_out(make_actor(2), now=utc(2026, 3, 10, 7, 0))
    assert record.status == AttendanceStatus.HALF_DAY
    assert record.worked_hours == 3.0


def test_clock_out_full_day(env):
    service, _, _, _ = env
    service.clock_in(make_actor(2), now=utc(2026, 3, 10, 4, 0))
    record = service.clock_out(make_actor(2), now=utc(2026, 3, 10, 12, 30))
    assert record.status == AttendanceStatus.PRESENT


def test_clock_out_without_clock_in(env):
    service, _, _, _ = env
    with pytest.raises(ValidationError, match="not clocked in"):
        service.clock_out(make_actor(2), now=utc(2026, 3, 10, 12, 0))


def test_clock_in_blocked_while_month_is_submitted(env):
    service, _, timesheets, _ = env
    timesheets.set(user_id=2, company_id=1, month="2026-03", status=TimesheetStatus.SUBMITTED)
    with pytest.raises(StateConflictError):
        service.clock_in(make_actor(2), now=utc(2026, 3, 10, 4, 0))


def test_manual_entry_duplicate_day_is_validation_error(env):
    service, _, _, _ = env
    hr = make_actor(9, keys={"attendance.update"})
    kwargs = dict(user_id=3, work_date=date(2026, 3, 9), clock_in=utc(2026, 3, 9, 4), clock_out=utc(2026, 3, 9, 12))
    record = service.create_manual(hr, **kwargs)
    assert record.is_manual
    with pytest.raises(ValidationError, match="already exists"):
        service.create_manual(hr, **kwargs)


def test_manual_entry_future_date_rejected(env):
    service, _, _, _ = env
    hr = make_actor(9, keys={"attendance.update"})
    with pytest.raises(ValidationError, match="future"):
        service.create_manual(
            hr, user_id=3, work_date=date(2026, 3, 12), clock_in=utc(2026, 3, 12, 4), clock_out=utc(2026, 3, 12, 12)
        )


def test_manual_entry_requires_permission(env):
    service, _, _, _ = env
    with pytest.raises(AuthorizationError):
        service.create_manual(
            make_actor(3), user_id=2, work_date=date(2026, 3, 9), clock_in=utc(2026, 3, 9, 4), clock_out=utc(2026, 3, 9, 12)
        )


def test_decision_is_terminal(env):
    service, _, _, _ = env
    record = service.clock_in(make_actor(2), now=utc(2026, 3, 10, 4, 0))
    manager = make_actor(1)

    approved = service.decide(manager, record.attendance_id, approve=True)
    assert approved.approval_status == ApprovalStatus.APPROVED
    assert approved.approved_by == 1

    with pytest.raises(StateConflictError):
        service.decide(manager, record.attendance_id, approve=False, rejection_reason="late")


def test_owner_cannot_approve_own_attendance(env):
    service, _, _, _ = env
    record = service.clock_in(make_actor(2), now=utc(2026, 3, 10, 4, 0))
    with pytest.raises(AuthorizationError):
        service.decide(make_actor(2), record.attendance_id, approve=True)


def test_owner_regularizes_only_pending(env):
    service, _, _, _ = env
    owner = make_actor(2, keys={"attendance.update_self"})
    record = service.clock_in(owner, now=utc(2026, 3, 10, 4, 0))

    fixed = service.regularize(owner, record.attendance_id, clock_in=utc(2026, 3, 10, 3), clock_out=utc(2026, 3, 10, 11))
    assert fixed.status == AttendanceStatus.PRESENT

    service.decide(make_actor(1), record.attendance_id, approve=False, rejection_reason="wrong times")
    with pytest.raises(StateConflictError):
        service.regularize(owner, record.attendance_id, clock_in=utc(2026, 3, 10, 3), clock_out=utc(2026, 3, 10, 12))

    # A manager may still correct a decided record.
    corrected = service.regularize(
        make_actor(1), record.attendance_id, clock_in=utc(2026, 3, 10, 3), clock_out=utc(2026, 3, 10, 12)
    )
    assert corrected.clock_out == datetime(2026, 3, 10, 12)


def test_pending_queue_scoped_to_reportees(env):
    service, _, _, _ = env
    service.clock_in(make_actor(2), now=utc(2026, 3, 10, 4, 0))
    service.clock_in(make_actor(3), now=utc(2026, 3, 10, 4, 0))

    assert [r.user_id for r in service.list_pending(make_actor(1))] == [2]
    approver = make_actor(9, keys={"attendance.approve"})
    assert sorted(r.user_id for r in service.list_pending(approver)) == [2, 3]


def test_history_visible_to_manager_not_peer(env):
    service, _, _, _ = env
    service.clock_in(make_actor(2), now=utc(2026, 3, 10, 4, 0))
    assert len(service.history(make_actor(1), user_id=2)) == 1
    with pytest.raises(AuthorizationError):
        service.history(make_actor(3), user_id=2)


def test_today_uses_clock(env):
    service, _, _, clock = env
    service.clock_in(make_actor(2))
    assert service.today(make_actor(2)).work_date == date(2026, 3, 10)
    clock.now = utc(2026, 3, 11, 4, 0)
    assert service.today(make_actor(2)) is None
