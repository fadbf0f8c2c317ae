from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional, Tuple

from ..core.enums import TimesheetStatus, WorkLogStatus


@dataclass(frozen=True)
class Timesheet:
    """Monthly lock envelope over a user's work logs."""

    timesheet_id: int
    user_id: int
    company_id: int
    month: str
    status: TimesheetStatus = TimesheetStatus.DRAFT
    approver_id: Optional[int] = None
    rejection_reason: Optional[str] = None

    @property
    def is_locked(self) -> bool:
        return self.status in (TimesheetStatus.SUBMITTED, TimesheetStatus.APPROVED)

    def to_dict(self) -> dict:
        return {
            "timesheet_id": self.timesheet_id,
            "user_id": self.user_id,
            "month": self.month,
            "status": self.status.value,
            "approver_id": self.approver_id,
            "rejection_reason": self.rejection_reason,
        }


@dataclass(frozen=True)
class WorkLog:
    worklog_id: int
    task_id: int
    user_id: int
    company_id: int
    work_date: date
    hours: float
    description: str = ""
    status: WorkLogStatus = WorkLogStatus.PENDING
    rejection_reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "worklog_id": self.worklog_id,
            "task_id": self.task_id,
            "user_id": self.user_id,
            "work_date": self.work_date.isoformat(),
            "hours": self.hours,
            "description": self.description,
            "status": self.status.value,
            "rejection_reason": self.rejection_reason,
        }


@dataclass(frozen=True)
class TimesheetView:
    """Read-model: a timesheet with the month's entries and their aggregate."""

    timesheet: Timesheet
    entries: Tuple[WorkLog, ...] = ()
    summary: Dict[str, int] = field(default_factory=dict)

    @property
    def total_hours(self) -> float:
        return round(sum(e.hours for e in self.entries), 2)

    def to_dict(self) -> dict:
        return {
            **self.timesheet.to_dict(),
            "total_hours": self.total_hours,
            "summary": dict(self.summary),
            "entries": [e.to_dict() for e in self.entries],
        }
