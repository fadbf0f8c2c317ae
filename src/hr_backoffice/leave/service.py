from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, List, Optional, Sequence

import structlog

from ..common.datetime_utils import now_utc, org_day, to_naive_utc
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_ORG_TIMEZONE
from ..core.enums import HalfDaySession, LeaveStatus
from ..core.exceptions import DuplicateKeyError, NotFoundError, StateConflictError, ValidationError
from ..permissions.gate import AuthorizationGate
from ..permissions.model import Actor, Target
from ..users.repository import UserRepository
from ..users.service import require_user
from .calendar import calculate_leave_days
from .model import DEFAULT_POLICIES, Holiday, LeaveAuditEntry, LeaveBalance, LeavePolicy, LeaveRequest
from .repository import HolidayRepository, LeaveBalanceRepository, LeavePolicyRepository, LeaveRequestRepository

log = structlog.get_logger(__name__)

HALF_DAY_COUNT = 0.5


@dataclass(frozen=True)
class BalanceView:
    policy: LeavePolicy
    balance: LeaveBalance

    def to_dict(self) -> dict:
        return {**self.balance.to_dict(), "policy_name": self.policy.name, "policy_description": self.policy.description}


class LeaveService:
    """Leave requests: Pending -> Approved | Rejected | Cancelled.

    Balances are checked when applying and charged when approving. Two pending
    requests may therefore both pass the check; approval does not re-validate.
    """

    def __init__(
        self,
        policies: LeavePolicyRepository,
        balances: LeaveBalanceRepository,
        requests: LeaveRequestRepository,
        holidays: HolidayRepository,
        users: UserRepository,
        gate: AuthorizationGate,
        *,
        tz_name: str = DEFAULT_ORG_TIMEZONE,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._policies = policies
        self._balances = balances
        self._requests = requests
        self._holidays = holidays
        self._users = users
        self._gate = gate
        self._tz_name = tz_name
        self._clock = clock

    def _today(self) -> date:
        return org_day(self._clock(), self._tz_name)

    def _audit(self, action: str, by: int, comment: str = "") -> LeaveAuditEntry:
        return LeaveAuditEntry(action=action, by=by, comment=comment, at=to_naive_utc(self._clock()))

    def _require_request(self, request_id: int) -> LeaveRequest:
        request = self._requests.get_by_id(int(request_id))
        if not request:
            raise NotFoundError("Leave request not found")
        return request

    def count_days(self, *, company_id: int, start: date, end: date, policy: LeavePolicy) -> float:
        holidays = [h.holiday_date for h in self._holidays.list_between(company_id=company_id, start=start, end=end)]
        return calculate_leave_days(start, end, policy, holidays)

    def apply(
        self,
        actor: Actor,
        *,
        leave_type: str,
        start_date: date,
        end_date: date,
        reason: str,
        is_half_day: bool = False,
        half_day_session: Optional[HalfDaySession] = None,
        documents: Sequence[str] = (),
        user_id: Optional[int] = None,
    ) -> LeaveRequest:
        owner = require_user(self._users, user_id if user_id is not None else actor.user_id)
        self._gate.require(actor, "leave.apply", owner.as_target())

        reason = require_non_empty(reason, "Reason")
        if end_date < start_date:
            raise ValidationError("End date cannot be before start date")

        policy = self._policies.get(leave_type)
        if not policy or not policy.is_active:
            raise ValidationError("Invalid or inactive leave type")

        if start_date < self._today() and not policy.allow_backdated:
            raise ValidationError("Backdated leave is not allowed for this leave type")

        if is_half_day:
            if start_date != end_date:
                raise ValidationError("Half day leave must be on a single date")
            days_count = HALF_DAY_COUNT
            half_day_session = HalfDaySession(half_day_session or HalfDaySession.FIRST_HALF)
        else:
            days_count = self.count_days(company_id=owner.company_id, start=start_date, end=end_date, policy=policy)
            half_day_session = None

        if days_count <= 0:
            raise ValidationError("Invalid date range (0 working days selected)")

        overlapping = self._requests.list_overlapping(
            user_id=owner.user_id,
            start=start_date,
            end=end_date,
            statuses=(LeaveStatus.PENDING, LeaveStatus.APPROVED),
        )
        if overlapping:
            raise ValidationError("Leave already requested for some of these dates")

        balance = self._balances.get_or_create(user_id=owner.user_id, leave_type=policy.leave_type, year=start_date.year)
        if not policy.allow_negative_balance and days_count > balance.available:
            raise ValidationError(f"Insufficient balance. Available: {balance.available:g}, Requested: {days_count:g}")

        request_id = self._requests.create(
            user_id=owner.user_id,
            company_id=owner.company_id,
            leave_type=policy.leave_type,
            start_date=start_date,
            end_date=end_date,
            is_half_day=bool(is_half_day),
            half_day_session=half_day_session,
            reason=reason,
            documents=list(documents or ()),
            days_count=days_count,
            audit_entry=self._audit("Applied", actor.user_id, "Initial Application"),
        )
        log.info(
            "leave_applied",
            request_id=request_id,
            user_id=owner.user_id,
            leave_type=policy.leave_type,
            days=days_count,
        )
        return self._require_request(request_id)

    def _transition(
        self,
        actor: Actor,
        request: LeaveRequest,
        to_status: LeaveStatus,
        *,
        comment: str,
        rejection_reason: Optional[str] = None,
    ) -> LeaveRequest:
        if request.status != LeaveStatus.PENDING:
            raise StateConflictError(f"Request already processed ({request.status.value})")

        moved = self._requests.transition(
            request_id=request.request_id,
            from_status=LeaveStatus.PENDING,
            to_status=to_status,
            decided_by=actor.user_id,
            audit_entry=self._audit(to_status.value, actor.user_id, comment),
            rejection_reason=rejection_reason,
        )
        if not moved:
            raise StateConflictError("Request already processed")

        log.info("leave_transition", request_id=request.request_id, status=to_status.value, by=actor.user_id)
        return self._require_request(request.request_id)

    def approve(self, actor: Actor, request_id: int) -> LeaveRequest:
        request = self._require_request(request_id)
        owner = require_user(self._users, request.user_id)
        self._gate.require(actor, "leave.approve", owner.as_target())

        # Status first: a lost race must not charge the balance twice.
        updated = self._transition(actor, request, LeaveStatus.APPROVED, comment="Approved")
        self._balances.add_utilized(
            user_id=request.user_id,
            leave_type=request.leave_type,
            year=request.start_date.year,
            days=request.days_count,
        )
        return updated

    def reject(self, actor: Actor, request_id: int, *, rejection_reason: str) -> LeaveRequest:
        request = self._require_request(request_id)
        owner = require_user(self._users, request.user_id)
        self._gate.require(actor, "leave.approve", owner.as_target())

        reason = require_non_empty(rejection_reason, "Rejection reason")
        return self._transition(actor, request, LeaveStatus.REJECTED, comment=reason, rejection_reason=reason)

    def decide(self, actor: Actor, request_id: int, *, status: LeaveStatus, rejection_reason: Optional[str] = None) -> LeaveRequest:
        status = LeaveStatus(status)
        if status == LeaveStatus.APPROVED:
            return self.approve(actor, request_id)
        if status == LeaveStatus.REJECTED:
            return self.reject(actor, request_id, rejection_reason=rejection_reason or "")
        raise ValidationError("Status must be Approved or Rejected")

    def cancel(self, actor: Actor, request_id: int, *, comment: str = "") -> LeaveRequest:
        request = self._require_request(request_id)
        owner = require_user(self._users, request.user_id)
        self._gate.require(actor, "leave.cancel", owner.as_target())
        return self._transition(actor, request, LeaveStatus.CANCELLED, comment=(comment or "").strip() or "Cancelled")

    def list_requests(self, actor: Actor, *, user_id: Optional[int] = None) -> Sequence[LeaveRequest]:
        owner = require_user(self._users, user_id if user_id is not None else actor.user_id)
        self._gate.require(actor, "leave.view", owner.as_target())
        return self._requests.list_for_user(owner.user_id)

    def list_pending(self, actor: Actor) -> Sequence[LeaveRequest]:
        """Pending requests the actor can decide: the company with ``leave.approve``, else reportees."""
        if actor.capabilities.has("leave.approve"):
            return self._requests.list_pending(company_id=actor.company_id)
        return self._requests.list_pending(
            company_id=actor.company_id,
            user_ids=self._users.list_subordinate_ids(actor.user_id),
        )

    def balances(self, actor: Actor, *, user_id: Optional[int] = None, year: Optional[int] = None) -> List[BalanceView]:
        owner = require_user(self._users, user_id if user_id is not None else actor.user_id)
        self._gate.require(actor, "leave.view", owner.as_target())

        year = year or self._today().year
        stored = {b.leave_type: b for b in self._balances.list_for_user(user_id=owner.user_id, year=year)}
        out: List[BalanceView] = []
        for policy in self._policies.list_active():
            balance = stored.get(policy.leave_type) or LeaveBalance(user_id=owner.user_id, leave_type=policy.leave_type, year=year)
            out.append(BalanceView(policy=policy, balance=balance))
        return out

    def list_policies(self) -> Sequence[LeavePolicy]:
        return self._policies.list_all()

    def save_policy(self, actor: Actor, policy: LeavePolicy) -> LeavePolicy:
        self._gate.require(actor, "leave.manage", Target(owner_id=0, company_id=actor.company_id))
        require_non_empty(policy.leave_type, "Leave type")
        require_non_empty(policy.name, "Name")
        for field_name in ("accrual_amount", "max_carry_forward", "max_limit_per_year"):
            if getattr(policy, field_name) < 0:
                raise ValidationError(f"{field_name} cannot be negative")

        self._policies.upsert(policy)
        log.info("leave_policy_saved", leave_type=policy.leave_type, by=actor.user_id)
        return self._policies.get(policy.leave_type)

    def seed_default_policies(self, actor: Actor) -> List[str]:
        """Insert the standard policy set; existing leave types are left untouched."""
        self._gate.require(actor, "leave.manage", Target(owner_id=0, company_id=actor.company_id))
        created: List[str] = []
        for policy in DEFAULT_POLICIES:
            if self._policies.get(policy.leave_type) is None:
                self._policies.upsert(policy)
                created.append(policy.leave_type)
        log.info("leave_policies_seeded", created=created, by=actor.user_id)
        return created


class HolidayService:
    """Company holiday registry; read by any employee, managed with ``leave.manage``."""

    def __init__(self, holidays: HolidayRepository, gate: AuthorizationGate):
        self._holidays = holidays
        self._gate = gate

    def list_for_year(self, actor: Actor, year: int) -> Sequence[Holiday]:
        return self._holidays.list_between(company_id=actor.company_id, start=date(year, 1, 1), end=date(year, 12, 31))

    def add(self, actor: Actor, *, name: str, holiday_date: date, is_optional: bool = False) -> int:
        self._gate.require(actor, "leave.manage", Target(owner_id=0, company_id=actor.company_id))
        name = require_non_empty(name, "Holiday name")
        try:
            holiday_id = self._holidays.create(
                company_id=actor.company_id, name=name, holiday_date=holiday_date, is_optional=bool(is_optional)
            )
        except DuplicateKeyError:
            raise ValidationError(f"Holiday '{name}' on {holiday_date.isoformat()} already exists")
        log.info("holiday_added", holiday_id=holiday_id, date=holiday_date.isoformat(), by=actor.user_id)
        return holiday_id

    def _require_own(self, actor: Actor, holiday_id: int) -> Holiday:
        holiday = self._holidays.get_by_id(int(holiday_id))
        if not holiday or holiday.company_id != actor.company_id:
            raise NotFoundError("Holiday not found")
        return holiday

    def update(
        self,
        actor: Actor,
        holiday_id: int,
        *,
        name: Optional[str] = None,
        holiday_date: Optional[date] = None,
        is_optional: Optional[bool] = None,
    ) -> None:
        self._gate.require(actor, "leave.manage", Target(owner_id=0, company_id=actor.company_id))
        holiday = self._require_own(actor, holiday_id)
        self._holidays.update(
            holiday_id=holiday.holiday_id,
            name=require_non_empty(name, "Holiday name") if name is not None else holiday.name,
            holiday_date=holiday_date or holiday.holiday_date,
            is_optional=holiday.is_optional if is_optional is None else bool(is_optional),
        )

    def delete(self, actor: Actor, holiday_id: int) -> None:
        self._gate.require(actor, "leave.manage", Target(owner_id=0, company_id=actor.company_id))
        holiday = self._require_own(actor, holiday_id)
        self._holidays.delete(holiday.holiday_id)
        log.info("holiday_deleted", holiday_id=holiday.holiday_id, by=actor.user_id)
