from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import ApprovalStatus, AttendanceStatus
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    """Repository interface for attendance records (unique per user and day)."""

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_or_create(self, *, user_id: int, company_id: int, work_date: date) -> AttendanceRecord:
        raise NotImplementedError

    def create(
        self,
        *,
        user_id: int,
        company_id: int,
        work_date: date,
        clock_in: Optional[datetime],
        clock_out: Optional[datetime],
        status: AttendanceStatus,
        notes: Optional[str],
        is_manual: bool,
    ) -> int:
        """Raises DuplicateKeyError when the day already has a record."""

        raise NotImplementedError

    def mark_clock_in(self, *, attendance_id: int, at: datetime, status: AttendanceStatus) -> bool:
        """Set clock-in only if not yet set; False when someone else got there first."""

        raise NotImplementedError

    def mark_clock_out(self, *, attendance_id: int, at: datetime, status: AttendanceStatus) -> bool:
        raise NotImplementedError

    def update_times(
        self,
        *,
        attendance_id: int,
        clock_in: Optional[datetime],
        clock_out: Optional[datetime],
        status: AttendanceStatus,
        notes: Optional[str],
    ) -> None:
        raise NotImplementedError

    def set_approval(
        self,
        *,
        attendance_id: int,
        approval_status: ApprovalStatus,
        approved_by: int,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        """Only transitions a PENDING record; False when it was already decided."""

        raise NotImplementedError

    def list_for_user(self, user_id: int, *, limit: int) -> Sequence[AttendanceRecord]:
        """Newest first."""

        raise NotImplementedError

    def list_pending(self, *, company_id: int, user_ids: Optional[Iterable[int]] = None) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
