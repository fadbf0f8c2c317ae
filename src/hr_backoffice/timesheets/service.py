from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, Optional, Sequence

import structlog

from ..common.datetime_utils import month_key, month_range
from ..common.validators import require_hours, require_month
from ..core.constants import MAX_HOURS_PER_DAY
from ..core.enums import DecisionType, TimesheetStatus, WorkLogStatus
from ..core.exceptions import NotFoundError, StateConflictError, ValidationError
from ..permissions.gate import AuthorizationGate
from ..permissions.model import Actor
from ..users.model import User
from ..users.repository import UserRepository
from ..users.service import require_user
from .model import Timesheet, TimesheetView, WorkLog
from .repository import TimesheetRepository, WorkLogRepository

log = structlog.get_logger(__name__)


def summarize_entries(entries: Iterable[WorkLog]) -> Dict[str, int]:
    """Count of entries per status, every status present."""
    summary = {s.value: 0 for s in WorkLogStatus}
    for entry in entries:
        summary[entry.status.value] += 1
    return summary


class TimesheetLock:
    """Guard for owner mutations inside a submitted or approved month.

    Reporting managers and holders of the privileged action's permission may still edit.
    """

    def __init__(self, timesheets: TimesheetRepository, gate: AuthorizationGate):
        self._timesheets = timesheets
        self._gate = gate

    def ensure_unlocked(self, actor: Actor, owner: User, work_date: date, *, privileged_action: str) -> None:
        sheet = self._timesheets.get(user_id=owner.user_id, month=month_key(work_date))
        if not sheet or not sheet.is_locked:
            return
        if self._gate.is_privileged(actor, privileged_action, owner.as_target()):
            return
        log.info(
            "timesheet_locked",
            user_id=owner.user_id,
            month=sheet.month,
            status=sheet.status.value,
            actor_id=actor.user_id,
        )
        raise StateConflictError(
            f"Timesheet for {sheet.month} is {sheet.status.value.lower()}; entries can no longer be edited"
        )


class TimesheetService:
    """Monthly timesheet workflow: DRAFT -> SUBMITTED -> APPROVED | REJECTED."""

    def __init__(
        self,
        timesheets: TimesheetRepository,
        worklogs: WorkLogRepository,
        users: UserRepository,
        gate: AuthorizationGate,
    ):
        self._timesheets = timesheets
        self._worklogs = worklogs
        self._users = users
        self._gate = gate

    def _view(self, sheet: Timesheet) -> TimesheetView:
        start, end = month_range(sheet.month)
        entries = tuple(self._worklogs.list_for_user_range(user_id=sheet.user_id, start=start, end=end))
        return TimesheetView(timesheet=sheet, entries=entries, summary=summarize_entries(entries))

    def get_timesheet(self, actor: Actor, *, user_id: int, month: str) -> TimesheetView:
        month = require_month(month)
        owner = require_user(self._users, user_id)
        self._gate.require(actor, "timesheet.view", owner.as_target())

        sheet = self._timesheets.get_or_create(user_id=owner.user_id, company_id=owner.company_id, month=month)
        return self._view(sheet)

    def submit(self, actor: Actor, *, month: str, user_id: Optional[int] = None) -> Timesheet:
        """Submit a month for approval.

        Submitting an already-submitted month is a no-op; an approved month cannot be
        resubmitted.
        """
        month = require_month(month)
        owner = require_user(self._users, user_id if user_id is not None else actor.user_id)
        self._gate.require(actor, "timesheet.submit", owner.as_target())

        sheet = self._timesheets.get_or_create(user_id=owner.user_id, company_id=owner.company_id, month=month)
        if sheet.status == TimesheetStatus.SUBMITTED:
            return sheet
        if sheet.status == TimesheetStatus.APPROVED:
            raise StateConflictError(f"Timesheet for {month} is already approved")

        self._timesheets.update_status(timesheet_id=sheet.timesheet_id, status=TimesheetStatus.SUBMITTED)
        log.info("timesheet_submitted", user_id=owner.user_id, month=month, previous=sheet.status.value)
        return self._timesheets.get(user_id=owner.user_id, month=month)

    def decide(
        self,
        actor: Actor,
        *,
        user_id: int,
        month: str,
        status: TimesheetStatus,
        decision_type: DecisionType = DecisionType.FULL,
        rejection_reason: Optional[str] = None,
        rejected_entry_ids: Sequence[int] = (),
    ) -> TimesheetView:
        """Approve or reject a submitted month.

        A full decision cascades to every entry in the month. A partial decision is a
        rejection of only ``rejected_entry_ids``; the other entries keep their status.
        """
        month = require_month(month)
        status = TimesheetStatus(status)
        decision_type = DecisionType(decision_type)
        if status not in (TimesheetStatus.APPROVED, TimesheetStatus.REJECTED):
            raise ValidationError("Decision must be APPROVED or REJECTED")
        if decision_type == DecisionType.PARTIAL and status != TimesheetStatus.REJECTED:
            raise ValidationError("Partial decisions can only reject entries")

        owner = require_user(self._users, user_id)
        self._gate.require(actor, "timesheet.approve", owner.as_target())

        sheet = self._timesheets.get(user_id=owner.user_id, month=month)
        if not sheet:
            raise NotFoundError(f"No timesheet for {month}")
        if sheet.status != TimesheetStatus.SUBMITTED:
            raise StateConflictError(f"Timesheet is {sheet.status.value}; only submitted timesheets can be decided")

        reason = (rejection_reason or "").strip() or None
        start, end = month_range(month)

        if decision_type == DecisionType.PARTIAL:
            requested = list(dict.fromkeys(int(i) for i in rejected_entry_ids))
            if not requested:
                raise ValidationError("Select at least one entry to reject")
            in_month = {e.worklog_id for e in self._worklogs.list_for_user_range(user_id=owner.user_id, start=start, end=end)}
            unknown = [i for i in requested if i not in in_month]
            if unknown:
                raise ValidationError(f"Entries {unknown} do not belong to this timesheet")
            changed = self._worklogs.set_status_for_ids(
                worklog_ids=requested, status=WorkLogStatus.REJECTED, rejection_reason=reason
            )
        else:
            entry_status = WorkLogStatus.APPROVED if status == TimesheetStatus.APPROVED else WorkLogStatus.REJECTED
            changed = self._worklogs.set_status_for_range(
                user_id=owner.user_id,
                start=start,
                end=end,
                status=entry_status,
                rejection_reason=reason if entry_status == WorkLogStatus.REJECTED else None,
            )

        self._timesheets.update_status(
            timesheet_id=sheet.timesheet_id,
            status=status,
            approver_id=actor.user_id,
            rejection_reason=reason if status == TimesheetStatus.REJECTED else None,
        )
        log.info(
            "timesheet_decided",
            user_id=owner.user_id,
            month=month,
            status=status.value,
            decision_type=decision_type.value,
            entries_changed=changed,
            approver_id=actor.user_id,
        )
        return self._view(self._timesheets.get(user_id=owner.user_id, month=month))

    def list_pending(self, actor: Actor) -> Sequence[Timesheet]:
        """Submitted timesheets the actor can decide."""
        if actor.capabilities.has("timesheet.approve"):
            return self._timesheets.list_by_status(company_id=actor.company_id, status=TimesheetStatus.SUBMITTED)
        return self._timesheets.list_by_status(
            company_id=actor.company_id,
            status=TimesheetStatus.SUBMITTED,
            user_ids=self._users.list_subordinate_ids(actor.user_id),
        )


class WorkLogService:
    """Work logged per task and day; one entry per (task, user, day)."""

    def __init__(
        self,
        worklogs: WorkLogRepository,
        users: UserRepository,
        lock: TimesheetLock,
        gate: AuthorizationGate,
    ):
        self._worklogs = worklogs
        self._users = users
        self._lock = lock
        self._gate = gate

    def _require_entry(self, worklog_id: int) -> WorkLog:
        entry = self._worklogs.get_by_id(int(worklog_id))
        if not entry:
            raise NotFoundError("Work log entry not found")
        return entry

    def _check_day_total(self, *, user_id: int, work_date: date, hours: float, exclude_id: Optional[int] = None) -> None:
        logged = sum(
            e.hours
            for e in self._worklogs.list_for_user_range(user_id=user_id, start=work_date, end=work_date)
            if e.worklog_id != exclude_id
        )
        if logged + hours > MAX_HOURS_PER_DAY:
            raise ValidationError(f"Total hours for {work_date.isoformat()} cannot exceed {MAX_HOURS_PER_DAY:g}")

    def log_work(
        self,
        actor: Actor,
        *,
        task_id: int,
        work_date: date,
        hours: float,
        description: str = "",
        user_id: Optional[int] = None,
    ) -> int:
        owner = require_user(self._users, user_id if user_id is not None else actor.user_id)
        self._gate.require(actor, "worklog.create", owner.as_target())

        hours = require_hours(hours, max_hours=MAX_HOURS_PER_DAY)
        if hours <= 0:
            raise ValidationError("Hours must be greater than 0")

        self._lock.ensure_unlocked(actor, owner, work_date, privileged_action="timesheet.approve")

        if self._worklogs.find_for_task_day(task_id=int(task_id), user_id=owner.user_id, work_date=work_date):
            raise ValidationError("Work already logged for this task on this day; edit the existing entry")
        self._check_day_total(user_id=owner.user_id, work_date=work_date, hours=hours)

        worklog_id = self._worklogs.create(
            task_id=int(task_id),
            user_id=owner.user_id,
            company_id=owner.company_id,
            work_date=work_date,
            hours=hours,
            description=(description or "").strip(),
        )
        log.info("worklog_created", worklog_id=worklog_id, user_id=owner.user_id, work_date=work_date.isoformat())
        return worklog_id

    def update_entry(
        self,
        actor: Actor,
        worklog_id: int,
        *,
        hours: Optional[float] = None,
        description: Optional[str] = None,
    ) -> WorkLog:
        """Edit hours/description. An owner editing a rejected entry reopens it."""
        entry = self._require_entry(worklog_id)
        owner = require_user(self._users, entry.user_id)
        self._gate.require(actor, "worklog.update", owner.as_target())
        self._lock.ensure_unlocked(actor, owner, entry.work_date, privileged_action="timesheet.approve")

        new_hours = entry.hours if hours is None else require_hours(hours, max_hours=MAX_HOURS_PER_DAY)
        if new_hours <= 0:
            raise ValidationError("Hours must be greater than 0")
        if new_hours != entry.hours:
            self._check_day_total(user_id=owner.user_id, work_date=entry.work_date, hours=new_hours, exclude_id=entry.worklog_id)
        new_description = entry.description if description is None else description.strip()

        status, reason = entry.status, entry.rejection_reason
        if entry.status == WorkLogStatus.REJECTED and actor.user_id == entry.user_id:
            status, reason = WorkLogStatus.PENDING, None
            log.info("worklog_reopened", worklog_id=entry.worklog_id, user_id=entry.user_id)

        self._worklogs.update_entry(
            worklog_id=entry.worklog_id,
            hours=new_hours,
            description=new_description,
            status=status,
            rejection_reason=reason,
        )
        return self._require_entry(entry.worklog_id)

    def delete_entry(self, actor: Actor, worklog_id: int) -> None:
        entry = self._require_entry(worklog_id)
        owner = require_user(self._users, entry.user_id)
        self._gate.require(actor, "worklog.delete", owner.as_target())
        self._lock.ensure_unlocked(actor, owner, entry.work_date, privileged_action="timesheet.approve")

        self._worklogs.delete(entry.worklog_id)
        log.info("worklog_deleted", worklog_id=entry.worklog_id, user_id=entry.user_id, deleted_by=actor.user_id)
