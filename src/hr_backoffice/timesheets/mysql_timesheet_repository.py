from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Sequence

from ..core.enums import TimesheetStatus, WorkLogStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Timesheet, WorkLog
from .repository import TimesheetRepository, WorkLogRepository

_TIMESHEET_COLUMNS = "timesheet_id, user_id, company_id, month, status, approver_id, rejection_reason"
_WORKLOG_COLUMNS = "worklog_id, task_id, user_id, company_id, work_date, hours, description, status, rejection_reason"


def _to_timesheet(row: dict) -> Timesheet:
    return Timesheet(
        timesheet_id=int(row["timesheet_id"]),
        user_id=int(row["user_id"]),
        company_id=int(row["company_id"]),
        month=row["month"],
        status=TimesheetStatus(row["status"]),
        approver_id=row.get("approver_id"),
        rejection_reason=row.get("rejection_reason"),
    )


def _to_worklog(row: dict) -> WorkLog:
    return WorkLog(
        worklog_id=int(row["worklog_id"]),
        task_id=int(row["task_id"]),
        user_id=int(row["user_id"]),
        company_id=int(row["company_id"]),
        work_date=row["work_date"],
        hours=float(row["hours"]),
        description=row.get("description") or "",
        status=WorkLogStatus(row["status"]),
        rejection_reason=row.get("rejection_reason"),
    )


class MySQLTimesheetRepository(TimesheetRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, user_id: int, month: str) -> Optional[Timesheet]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_TIMESHEET_COLUMNS} FROM timesheets WHERE user_id=%s AND month=%s", (user_id, month))
            row = fetchone(cur)
            return _to_timesheet(row) if row else None

    def get_or_create(self, *, user_id: int, company_id: int, month: str) -> Timesheet:
        with db_cursor(self._conn_factory) as (_, cur):
            # Concurrent creators converge on the unique (user_id, month) row.
            cur.execute(
                "INSERT IGNORE INTO timesheets(user_id, company_id, month, status) VALUES(%s,%s,%s,%s)",
                (user_id, company_id, month, TimesheetStatus.DRAFT.value),
            )
            cur.execute(f"SELECT {_TIMESHEET_COLUMNS} FROM timesheets WHERE user_id=%s AND month=%s", (user_id, month))
            return _to_timesheet(fetchone(cur))

    def update_status(
        self,
        *,
        timesheet_id: int,
        status: TimesheetStatus,
        approver_id: Optional[int] = None,
        rejection_reason: Optional[str] = None,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE timesheets SET status=%s, approver_id=%s, rejection_reason=%s WHERE timesheet_id=%s",
                (status.value, approver_id, rejection_reason, timesheet_id),
            )

    def list_by_status(self, *, company_id: int, status: TimesheetStatus, user_ids: Optional[Iterable[int]] = None) -> Sequence[Timesheet]:
        sql = f"SELECT {_TIMESHEET_COLUMNS} FROM timesheets WHERE company_id=%s AND status=%s"
        params: list = [company_id, status.value]
        if user_ids is not None:
            ids = list(user_ids)
            if not ids:
                return []
            sql += f" AND user_id IN ({in_clause(ids)})"
            params.extend(ids)
        sql += " ORDER BY month DESC, user_id"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_timesheet(r) for r in fetchall(cur)]


class MySQLWorkLogRepository(WorkLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, worklog_id: int) -> Optional[WorkLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_WORKLOG_COLUMNS} FROM work_logs WHERE worklog_id=%s", (worklog_id,))
            row = fetchone(cur)
            return _to_worklog(row) if row else None

    def find_for_task_day(self, *, task_id: int, user_id: int, work_date: date) -> Optional[WorkLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_WORKLOG_COLUMNS} FROM work_logs WHERE task_id=%s AND user_id=%s AND work_date=%s",
                (task_id, user_id, work_date),
            )
            row = fetchone(cur)
            return _to_worklog(row) if row else None

    def list_for_user_range(self, *, user_id: int, start: date, end: date) -> Sequence[WorkLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_WORKLOG_COLUMNS}
                FROM work_logs
                WHERE user_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date, worklog_id
                """,
                (user_id, start, end),
            )
            return [_to_worklog(r) for r in fetchall(cur)]

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO work_logs(task_id, user_id, company_id, work_date, hours, description, status)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (task_id, user_id, company_id, work_date, hours, description, WorkLogStatus.PENDING.value),
            )
            return int(cur.lastrowid)

    def update_entry(
        self,
        *,
        worklog_id: int,
        hours: float,
        description: str,
        status: WorkLogStatus,
        rejection_reason: Optional[str],
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE work_logs SET hours=%s, description=%s, status=%s, rejection_reason=%s WHERE worklog_id=%s",
                (hours, description, status.value, rejection_reason, worklog_id),
            )

    def delete(self, worklog_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM work_logs WHERE worklog_id=%s", (worklog_id,))
            return cur.rowcount > 0

    def set_status_for_range(
        self,
        *,
        user_id: int,
        start: date,
        end: date,
        status: WorkLogStatus,
        rejection_reason: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE work_logs SET status=%s, rejection_reason=%s
                WHERE user_id=%s AND work_date BETWEEN %s AND %s
                """,
                (status.value, rejection_reason, user_id, start, end),
            )
            return int(cur.rowcount)

    def set_status_for_ids(
        self,
        *,
        worklog_ids: Sequence[int],
        status: WorkLogStatus,
        rejection_reason: Optional[str] = None,
    ) -> int:
        if not worklog_ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE work_logs SET status=%s, rejection_reason=%s WHERE worklog_id IN ({in_clause(worklog_ids)})",
                (status.value, rejection_reason, *worklog_ids),
            )
            return int(cur.rowcount)
