from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import TimesheetStatus, WorkLogStatus
from .model import Timesheet, WorkLog


class TimesheetRepository(Protocol):
    def get(self, *, user_id: int, month: str) -> Optional[Timesheet]:
        raise NotImplementedError

    def get_or_create(self, *, user_id: int, company_id: int, month: str) -> Timesheet:
        """Upsert a DRAFT row for (user, month) and return the stored one."""

        raise NotImplementedError

    def update_status(
        self,
        *,
        timesheet_id: int,
        status: TimesheetStatus,
        approver_id: Optional[int] = None,
        rejection_reason: Optional[str] = None,
    ) -> None:
        raise NotImplementedError

    def list_by_status(self, *, company_id: int, status: TimesheetStatus, user_ids: Optional[Iterable[int]] = None) -> Sequence[Timesheet]:
        """``user_ids`` None means every user of the company."""

        raise NotImplementedError


class WorkLogRepository(Protocol):
    def get_by_id(self, worklog_id: int) -> Optional[WorkLog]:
        raise NotImplementedError

    def find_for_task_day(self, *, task_id: int, user_id: int, work_date: date) -> Optional[WorkLog]:
        raise NotImplementedError

    def list_for_user_range(self, *, user_id: int, start: date, end: date) -> Sequence[WorkLog]:
        raise NotImplementedError

    def create(
        self,
        *,
        task_id: int,
        user_id: int,
        company_id: int,
        work_date: date,
        hours: float,
        description: str,
    ) -> int:
        raise NotImplementedError

    def update_entry(
        self,
        *,
        worklog_id: int,
        hours: float,
        description: str,
        status: WorkLogStatus,
        rejection_reason: Optional[str],
    ) -> None:
        raise NotImplementedError

    def delete(self, worklog_id: int) -> bool:
        raise NotImplementedError

    def set_status_for_range(
        self,
        *,
        user_id: int,
        start: date,
        end: date,
        status: WorkLogStatus,
        rejection_reason: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def set_status_for_ids(
        self,
        *,
        worklog_ids: Sequence[int],
        status: WorkLogStatus,
        rejection_reason: Optional[str] = None,
    ) -> int:
        raise NotImplementedError
