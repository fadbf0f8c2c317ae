from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import HalfDaySession, LeaveStatus
from .model import Holiday, LeaveAuditEntry, LeaveBalance, LeavePolicy, LeaveRequest


class LeavePolicyRepository(Protocol):
    def get(self, leave_type: str) -> Optional[LeavePolicy]:
        raise NotImplementedError

    def list_all(self) -> Sequence[LeavePolicy]:
        raise NotImplementedError

    def list_active(self) -> Sequence[LeavePolicy]:
        raise NotImplementedError

    def upsert(self, policy: LeavePolicy) -> None:
        raise NotImplementedError


class LeaveBalanceRepository(Protocol):
    """Balances are unique per (user, leave type, year); writes are single-row atomic."""

    def get(self, *, user_id: int, leave_type: str, year: int) -> Optional[LeaveBalance]:
        raise NotImplementedError

    def get_or_create(self, *, user_id: int, leave_type: str, year: int) -> LeaveBalance:
        raise NotImplementedError

    def list_for_user(self, *, user_id: int, year: int) -> Sequence[LeaveBalance]:
        raise NotImplementedError

    def add_utilized(self, *, user_id: int, leave_type: str, year: int, days: float) -> None:
        raise NotImplementedError

    def add_accrual(self, *, user_id: int, leave_type: str, year: int, amount: float, cap: float) -> None:
        """``accrued += amount``, capped at ``cap`` when ``cap`` is positive."""

        raise NotImplementedError

    def set_opening(self, *, user_id: int, leave_type: str, year: int, opening_balance: float, accrued: Optional[float] = None) -> None:
        """Upsert: overwrite the opening balance (and ``accrued`` when given), keep the rest."""

        raise NotImplementedError


class LeaveRequestRepository(Protocol):
    def get_by_id(self, request_id: int) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def create(
        self,
        *,
        user_id: int,
        company_id: int,
        leave_type: str,
        start_date: date,
        end_date: date,
        is_half_day: bool,
        half_day_session: Optional[HalfDaySession],
        reason: str,
        documents: Sequence[str],
        days_count: float,
        audit_entry: LeaveAuditEntry,
    ) -> int:
        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[LeaveRequest]:
        """Newest first."""

        raise NotImplementedError

    def list_overlapping(self, *, user_id: int, start: date, end: date, statuses: Iterable[LeaveStatus]) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def list_pending(self, *, company_id: int, user_ids: Optional[Iterable[int]] = None) -> Sequence[LeaveRequest]:
        """Oldest first."""

        raise NotImplementedError

    def transition(
        self,
        *,
        request_id: int,
        from_status: LeaveStatus,
        to_status: LeaveStatus,
        decided_by: int,
        audit_entry: LeaveAuditEntry,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        """Move ``from_status`` -> ``to_status`` and append to the audit trail.

        Returns False when the request is no longer in ``from_status``.
        """

        raise NotImplementedError


class HolidayRepository(Protocol):
    def get_by_id(self, holiday_id: int) -> Optional[Holiday]:
        raise NotImplementedError

    def list_between(self, *, company_id: int, start: date, end: date) -> Sequence[Holiday]:
        raise NotImplementedError

    def create(self, *, company_id: int, name: str, holiday_date: date, is_optional: bool) -> int:
        raise NotImplementedError

    def update(self, *, holiday_id: int, name: str, holiday_date: date, is_optional: bool) -> None:
        raise NotImplementedError

    def delete(self, holiday_id: int) -> bool:
        raise NotImplementedError
