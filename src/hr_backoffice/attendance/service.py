from __future__ import annotations

from datetime import date, datetime
from typing import Callable, Optional, Sequence

import structlog

from ..common.datetime_utils import now_utc, org_day, to_naive_utc
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_ORG_TIMEZONE
from ..core.enums import ApprovalStatus, AttendanceStatus
from ..core.exceptions import DuplicateKeyError, NotFoundError, StateConflictError, ValidationError
from ..permissions.gate import AuthorizationGate
from ..permissions.model import Actor
from ..timesheets.service import TimesheetLock
from ..users.model import User
from ..users.repository import UserRepository
from ..users.service import require_user
from .model import AttendanceRecord, derive_status
from .repository import AttendanceRepository

log = structlog.get_logger(__name__)


class AttendanceService:
    """Clocking, manual entries and the PENDING -> APPROVED | REJECTED approval.

    Days are bucketed in the organisation timezone; decided records are terminal.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        lock: TimesheetLock,
        gate: AuthorizationGate,
        *,
        tz_name: str = DEFAULT_ORG_TIMEZONE,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._attendance = attendance
        self._users = users
        self._lock = lock
        self._gate = gate
        self._tz_name = tz_name
        self._clock = clock

    def _require_record(self, attendance_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(int(attendance_id))
        if not record:
            raise NotFoundError("Attendance record not found")
        return record

    def _check_joining_date(self, user: User, work_date: date) -> None:
        if user.joining_date and work_date < user.joining_date:
            raise ValidationError(f"Cannot record attendance before joining date ({user.joining_date.isoformat()})")

    def _require_edit(self, actor: Actor, owner: User) -> None:
        action = "attendance.update_self" if owner.user_id == actor.user_id else "attendance.update"
        self._gate.require(actor, action, owner.as_target())

    def clock_in(self, actor: Actor, *, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or self._clock()
        user = require_user(self._users, actor.user_id)
        self._gate.require(actor, "attendance.clock", user.as_target())

        today = org_day(now, self._tz_name)
        self._check_joining_date(user, today)
        self._lock.ensure_unlocked(actor, user, today, privileged_action="attendance.update")

        record = self._attendance.get_or_create(user_id=user.user_id, company_id=user.company_id, work_date=today)
        if record.clock_in is not None or not self._attendance.mark_clock_in(
            attendance_id=record.attendance_id, at=to_naive_utc(now), status=AttendanceStatus.PRESENT
        ):
            raise ValidationError("Already clocked in today")

        log.info("clocked_in", user_id=user.user_id, work_date=today.isoformat())
        return self._require_record(record.attendance_id)

    def clock_out(self, actor: Actor, *, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or self._clock()
        user = require_user(self._users, actor.user_id)
        self._gate.require(actor, "attendance.clock", user.as_target())

        today = org_day(now, self._tz_name)
        record = self._attendance.get_for_user_and_date(user.user_id, today)
        if not record or record.clock_in is None:
            raise ValidationError("You have not clocked in today")
        if record.clock_out is not None:
            raise ValidationError("Already clocked out today")
        self._lock.ensure_unlocked(actor, user, today, privileged_action="attendance.update")

        at = to_naive_utc(now)
        if not self._attendance.mark_clock_out(
            attendance_id=record.attendance_id, at=at, status=derive_status(record.clock_in, at)
        ):
            raise ValidationError("Already clocked out today")

        log.info("clocked_out", user_id=user.user_id, work_date=today.isoformat())
        return self._require_record(record.attendance_id)

    def create_manual(
        self,
        actor: Actor,
        *,
        user_id: int,
        work_date: date,
        clock_in: datetime,
        clock_out: datetime,
        notes: Optional[str] = None,
    ) -> AttendanceRecord:
        owner = require_user(self._users, user_id)
        self._require_edit(actor, owner)

        clock_in, clock_out = to_naive_utc(clock_in), to_naive_utc(clock_out)
        if clock_out <= clock_in:
            raise ValidationError("Clock-out must be after clock-in")
        if work_date > org_day(self._clock(), self._tz_name):
            raise ValidationError("Cannot record attendance for a future date")
        self._check_joining_date(owner, work_date)
        self._lock.ensure_unlocked(actor, owner, work_date, privileged_action="attendance.update")

        try:
            attendance_id = self._attendance.create(
                user_id=owner.user_id,
                company_id=owner.company_id,
                work_date=work_date,
                clock_in=clock_in,
                clock_out=clock_out,
                status=derive_status(clock_in, clock_out),
                notes=(notes or "").strip() or None,
                is_manual=True,
            )
        except DuplicateKeyError:
            raise ValidationError(f"Attendance for {work_date.isoformat()} already exists")

        log.info("attendance_manual_created", attendance_id=attendance_id, user_id=owner.user_id, created_by=actor.user_id)
        return self._require_record(attendance_id)

    def regularize(
        self,
        actor: Actor,
        attendance_id: int,
        *,
        clock_in: datetime,
        clock_out: datetime,
        notes: Optional[str] = None,
    ) -> AttendanceRecord:
        """Correct the times of an existing record.

        Owners may only correct records that are still pending.
        """
        record = self._require_record(attendance_id)
        owner = require_user(self._users, record.user_id)
        self._require_edit(actor, owner)
        self._lock.ensure_unlocked(actor, owner, record.work_date, privileged_action="attendance.update")

        privileged = self._gate.is_privileged(actor, "attendance.update", owner.as_target())
        if record.approval_status != ApprovalStatus.PENDING and not privileged:
            raise StateConflictError(f"Attendance is already {record.approval_status.value.lower()}")

        clock_in, clock_out = to_naive_utc(clock_in), to_naive_utc(clock_out)
        if clock_out <= clock_in:
            raise ValidationError("Clock-out must be after clock-in")

        self._attendance.update_times(
            attendance_id=record.attendance_id,
            clock_in=clock_in,
            clock_out=clock_out,
            status=derive_status(clock_in, clock_out),
            notes=(notes or "").strip() or record.notes,
        )
        log.info("attendance_regularized", attendance_id=record.attendance_id, user_id=owner.user_id, updated_by=actor.user_id)
        return self._require_record(record.attendance_id)

    def decide(
        self,
        actor: Actor,
        attendance_id: int,
        *,
        approve: bool,
        rejection_reason: Optional[str] = None,
    ) -> AttendanceRecord:
        record = self._require_record(attendance_id)
        owner = require_user(self._users, record.user_id)
        self._gate.require(actor, "attendance.approve", owner.as_target())

        if record.approval_status != ApprovalStatus.PENDING:
            raise StateConflictError(f"Attendance is already {record.approval_status.value.lower()}")

        status = ApprovalStatus.APPROVED if approve else ApprovalStatus.REJECTED
        reason = None if approve else ((rejection_reason or "").strip() or None)
        if not self._attendance.set_approval(
            attendance_id=record.attendance_id,
            approval_status=status,
            approved_by=actor.user_id,
            rejection_reason=reason,
        ):
            raise StateConflictError("Attendance was decided concurrently")

        log.info("attendance_decided", attendance_id=record.attendance_id, status=status.value, approver_id=actor.user_id)
        return self._require_record(record.attendance_id)

    def list_pending(self, actor: Actor) -> Sequence[AttendanceRecord]:
        if actor.capabilities.has("attendance.approve"):
            return self._attendance.list_pending(company_id=actor.company_id)
        return self._attendance.list_pending(
            company_id=actor.company_id,
            user_ids=self._users.list_subordinate_ids(actor.user_id),
        )

    def history(self, actor: Actor, *, user_id: Optional[int] = None, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AttendanceRecord]:
        owner = require_user(self._users, user_id if user_id is not None else actor.user_id)
        self._gate.require(actor, "attendance.view", owner.as_target())
        return self._attendance.list_for_user(owner.user_id, limit=max(1, min(int(limit), 366)))

    def today(self, actor: Actor) -> Optional[AttendanceRecord]:
        return self._attendance.get_for_user_and_date(actor.user_id, org_day(self._clock(), self._tz_name))
