from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.constants import HALF_DAY_HOURS
from ..core.enums import ApprovalStatus, AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one user's attendance for one organisation-local day.

    ``clock_in`` / ``clock_out`` are naive UTC.
    """

    attendance_id: int
    user_id: int
    company_id: int
    work_date: date
    clock_in: Optional[datetime] = None
    clock_out: Optional[datetime] = None
    status: AttendanceStatus = AttendanceStatus.ABSENT
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    approved_by: Optional[int] = None
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None
    is_manual: bool = False

    @property
    def worked_hours(self) -> float:
        if not self.clock_in or not self.clock_out:
            return 0.0
        return round(max((self.clock_out - self.clock_in).total_seconds(), 0) / 3600.0, 2)

    def to_dict(self) -> dict:
        return {
            "attendance_id": self.attendance_id,
            "user_id": self.user_id,
            "work_date": self.work_date.isoformat(),
            "clock_in": self.clock_in.isoformat() if self.clock_in else None,
            "clock_out": self.clock_out.isoformat() if self.clock_out else None,
            "worked_hours": self.worked_hours,
            "status": self.status.value,
            "approval_status": self.approval_status.value,
            "approved_by": self.approved_by,
            "rejection_reason": self.rejection_reason,
            "notes": self.notes,
            "is_manual": self.is_manual,
        }


def derive_status(clock_in: Optional[datetime], clock_out: Optional[datetime]) -> AttendanceStatus:
    if not clock_in:
        return AttendanceStatus.ABSENT
    if not clock_out:
        return AttendanceStatus.PRESENT
    hours = (clock_out - clock_in).total_seconds() / 3600.0
    return AttendanceStatus.PRESENT if hours >= HALF_DAY_HOURS else AttendanceStatus.HALF_DAY
