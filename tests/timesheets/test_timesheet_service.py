from __future__ import annotations

from datetime import date

import pytest

from hr_backoffice.core.enums import DecisionType, TimesheetStatus, WorkLogStatus
from hr_backoffice.core.exceptions import AuthorizationError, StateConflictError, ValidationError
from hr_backoffice.permissions.gate import AuthorizationGate
from hr_backoffice.timesheets.service import TimesheetLock, TimesheetService, WorkLogService

from fakes import FakeTimesheets, FakeUsers, FakeWorkLogs, make_actor, user


@pytest.fixture
def env():
    users = FakeUsers([user(1), user(2, managers=(1,)), user(3)])
    timesheets = FakeTimesheets()
    worklogs = FakeWorkLogs()
    gate = AuthorizationGate()
    sheets = TimesheetService(timesheets, worklogs, users, gate)
    logs = WorkLogService(worklogs, users, TimesheetLock(timesheets, gate), gate)
    return sheets, logs, timesheets, worklogs


OWNER = make_actor(2)
MANAGER = make_actor(1)


def _log_march(logs):
    a = logs.log_work(OWNER, task_id=1, work_date=date(2026, 3, 2), hours=4)
    b = logs.log_work(OWNER, task_id=2, work_date=date(2026, 3, 2), hours=3.5)
    c = logs.log_work(OWNER, task_id=1, work_date=date(2026, 3, 3), hours=8)
    other_month = logs.log_work(OWNER, task_id=1, work_date=date(2026, 4, 1), hours=8)
    return a, b, c, other_month


def test_view_aggregates_month_entries(env):
    sheets, logs, _, _ = env
    _log_march(logs)
    view = sheets.get_timesheet(OWNER, user_id=2, month="2026-03")
    assert view.timesheet.status == TimesheetStatus.DRAFT
    assert view.total_hours == 15.5
    assert view.summary == {"PENDING": 3, "APPROVED": 0, "REJECTED": 0}


def test_invalid_month_rejected(env):
    sheets, _, _, _ = env
    with pytest.raises(ValidationError):
        sheets.get_timesheet(OWNER, user_id=2, month="2026-13")


def test_submit_is_idempotent(env):
    sheets, _, timesheets, _ = env
    assert sheets.submit(OWNER, month="2026-03").status == TimesheetStatus.SUBMITTED
    writes = timesheets.writes
    assert sheets.submit(OWNER, month="2026-03").status == TimesheetStatus.SUBMITTED
    assert timesheets.writes == writes


def test_submit_approved_month_conflicts(env):
    sheets, _, timesheets, _ = env
    timesheets.set(user_id=2, company_id=1, month="2026-03", status=TimesheetStatus.APPROVED)
    with pytest.raises(StateConflictError):
        sheets.submit(OWNER, month="2026-03")


def test_resubmit_after_rejection(env):
    sheets, _, timesheets, _ = env
    timesheets.set(user_id=2, company_id=1, month="2026-03", status=TimesheetStatus.REJECTED)
    assert sheets.submit(OWNER, month="2026-03").status == TimesheetStatus.SUBMITTED


def test_full_approval_cascades_to_month_only(env):
    sheets, logs, _, worklogs = env
    a, b, c, other = _log_march(logs)
    sheets.submit(OWNER, month="2026-03")

    view = sheets.decide(MANAGER, user_id=2, month="2026-03", status=TimesheetStatus.APPROVED)
    assert view.timesheet.status == TimesheetStatus.APPROVED
    assert view.timesheet.approver_id == 1
    assert {worklogs.entries[i].status for i in (a, b, c)} == {WorkLogStatus.APPROVED}
    assert worklogs.entries[other].status == WorkLogStatus.PENDING


def test_full_rejection_records_reason(env):
    sheets, logs, _, worklogs = env
    a, _, _, _ = _log_march(logs)
    sheets.submit(OWNER, month="2026-03")
    view = sheets.decide(MANAGER, user_id=2, month="2026-03", status=TimesheetStatus.REJECTED, rejection_reason="Missing tasks")
    assert view.timesheet.rejection_reason == "Missing tasks"
    assert worklogs.entries[a].status == WorkLogStatus.REJECTED
    assert worklogs.entries[a].rejection_reason == "Missing tasks"


def test_partial_rejection_touches_listed_entries_only(env):
    sheets, logs, _, worklogs = env
    a, b, c, _ = _log_march(logs)
    sheets.submit(OWNER, month="2026-03")

    view = sheets.decide(
        MANAGER,
        user_id=2,
        month="2026-03",
        status=TimesheetStatus.REJECTED,
        decision_type=DecisionType.PARTIAL,
        rejection_reason="Wrong task",
        rejected_entry_ids=[b],
    )
    assert view.timesheet.status == TimesheetStatus.REJECTED
    assert worklogs.entries[b].status == WorkLogStatus.REJECTED
    assert worklogs.entries[a].status == WorkLogStatus.PENDING
    assert worklogs.entries[c].status == WorkLogStatus.PENDING


def test_partial_rejection_validation(env):
    sheets, logs, _, _ = env
    _, _, _, other = _log_march(logs)
    sheets.submit(OWNER, month="2026-03")
    common = dict(user_id=2, month="2026-03", status=TimesheetStatus.REJECTED, decision_type=DecisionType.PARTIAL)
    with pytest.raises(ValidationError):
        sheets.decide(MANAGER, rejected_entry_ids=[], **common)
    with pytest.raises(ValidationError):
        sheets.decide(MANAGER, rejected_entry_ids=[other], **common)
    with pytest.raises(ValidationError):
        sheets.decide(
            MANAGER, user_id=2, month="2026-03", status=TimesheetStatus.APPROVED, decision_type=DecisionType.PARTIAL, rejected_entry_ids=[1]
        )


def test_decide_requires_submitted(env):
    sheets, _, timesheets, _ = env
    timesheets.set(user_id=2, company_id=1, month="2026-03", status=TimesheetStatus.DRAFT)
    with pytest.raises(StateConflictError):
        sheets.decide(MANAGER, user_id=2, month="2026-03", status=TimesheetStatus.APPROVED)


def test_owner_and_peer_cannot_decide(env):
    sheets, _, _, _ = env
    sheets.submit(OWNER, month="2026-03")
    for actor in (OWNER, make_actor(3)):
        with pytest.raises(AuthorizationError):
            sheets.decide(actor, user_id=2, month="2026-03", status=TimesheetStatus.APPROVED)


def test_owner_blocked_while_locked_manager_is_not(env):
    sheets, logs, _, _ = env
    a, _, _, _ = _log_march(logs)
    sheets.submit(OWNER, month="2026-03")

    with pytest.raises(StateConflictError):
        logs.log_work(OWNER, task_id=3, work_date=date(2026, 3, 4), hours=2)
    with pytest.raises(StateConflictError):
        logs.update_entry(OWNER, a, hours=5)
    with pytest.raises(StateConflictError):
        logs.delete_entry(OWNER, a)

    assert logs.update_entry(MANAGER, a, hours=5).hours == 5
    # Other months stay editable.
    logs.log_work(OWNER, task_id=3, work_date=date(2026, 5, 4), hours=2)


def test_owner_edit_reopens_rejected_entry(env):
    sheets, logs, _, _ = env
    a, _, _, _ = _log_march(logs)
    sheets.submit(OWNER, month="2026-03")
    sheets.decide(MANAGER, user_id=2, month="2026-03", status=TimesheetStatus.REJECTED, rejection_reason="Too vague")

    entry = logs.update_entry(OWNER, a, description="Implemented login form")
    assert entry.status == WorkLogStatus.PENDING
    assert entry.rejection_reason is None


def test_manager_edit_keeps_rejected_status(env):
    sheets, logs, _, _ = env
    a, _, _, _ = _log_march(logs)
    sheets.submit(OWNER, month="2026-03")
    sheets.decide(MANAGER, user_id=2, month="2026-03", status=TimesheetStatus.REJECTED, rejection_reason="Too vague")

    entry = logs.update_entry(MANAGER, a, hours=2)
    assert entry.status == WorkLogStatus.REJECTED


def test_one_entry_per_task_and_day(env):
    _, logs, _, _ = env
    logs.log_work(OWNER, task_id=1, work_date=date(2026, 3, 2), hours=4)
    with pytest.raises(ValidationError):
        logs.log_work(OWNER, task_id=1, work_date=date(2026, 3, 2), hours=1)


@pytest.mark.parametrize("hours", [0, -1, 25, "abc"])
def test_hours_bounds(env, hours):
    _, logs, _, _ = env
    with pytest.raises(ValidationError):
        logs.log_work(OWNER, task_id=1, work_date=date(2026, 3, 2), hours=hours)


def test_daily_total_capped(env):
    _, logs, _, _ = env
    logs.log_work(OWNER, task_id=1, work_date=date(2026, 3, 2), hours=20)
    with pytest.raises(ValidationError, match="cannot exceed"):
        logs.log_work(OWNER, task_id=2, work_date=date(2026, 3, 2), hours=5)


def test_pending_queue_for_manager(env):
    sheets, _, _, _ = env
    sheets.submit(OWNER, month="2026-03")
    sheets.submit(make_actor(3), month="2026-03")
    assert [t.user_id for t in sheets.list_pending(MANAGER)] == [2]
    assert sorted(t.user_id for t in sheets.list_pending(make_actor(9, keys={"timesheet.approve"}))) == [2, 3]
