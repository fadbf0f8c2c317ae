from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from ..core.enums import ApprovalStatus, AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, user_id, company_id, work_date, clock_in, clock_out, status,
    approval_status, approved_by, rejection_reason, notes, is_manual
"""


def _to_record(row: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(row["attendance_id"]),
        user_id=int(row["user_id"]),
        company_id=int(row["company_id"]),
        work_date=row["work_date"],
        clock_in=row.get("clock_in"),
        clock_out=row.get("clock_out"),
        status=AttendanceStatus(row["status"]),
        approval_status=ApprovalStatus(row["approval_status"]),
        approved_by=row.get("approved_by"),
        rejection_reason=row.get("rejection_reason"),
        notes=row.get("notes"),
        is_manual=bool(row.get("is_manual")),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s", (attendance_id,))
            row = fetchone(cur)
            return _to_record(row) if row else None

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE user_id=%s AND work_date=%s",
                (user_id, work_date),
            )
            row = fetchone(cur)
            return _to_record(row) if row else None

    def get_or_create(self, *, user_id: int, company_id: int, work_date: date) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO attendance_records(user_id, company_id, work_date, status, approval_status)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (user_id, company_id, work_date, AttendanceStatus.ABSENT.value, ApprovalStatus.PENDING.value),
            )
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE user_id=%s AND work_date=%s",
                (user_id, work_date),
            )
            return _to_record(fetchone(cur))

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(user_id, company_id, work_date, clock_in, clock_out,
                                               status, approval_status, notes, is_manual)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    user_id,
                    company_id,
                    work_date,
                    clock_in,
                    clock_out,
                    status.value,
                    ApprovalStatus.PENDING.value,
                    notes,
                    1 if is_manual else 0,
                ),
            )
            return int(cur.lastrowid)

    def mark_clock_in(self, *, attendance_id: int, at: datetime, status: AttendanceStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_records SET clock_in=%s, status=%s WHERE attendance_id=%s AND clock_in IS NULL",
                (at, status.value, attendance_id),
            )
            return cur.rowcount > 0

    def mark_clock_out(self, *, attendance_id: int, at: datetime, status: AttendanceStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records SET clock_out=%s, status=%s
                WHERE attendance_id=%s AND clock_in IS NOT NULL AND clock_out IS NULL
                """,
                (at, status.value, attendance_id),
            )
            return cur.rowcount > 0

    def update_times(
        self,
        *,
        attendance_id: int,
        clock_in: Optional[datetime],
        clock_out: Optional[datetime],
        status: AttendanceStatus,
        notes: Optional[str],
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_records SET clock_in=%s, clock_out=%s, status=%s, notes=%s WHERE attendance_id=%s",
                (clock_in, clock_out, status.value, notes, attendance_id),
            )

    def set_approval(
        self,
        *,
        attendance_id: int,
        approval_status: ApprovalStatus,
        approved_by: int,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET approval_status=%s, approved_by=%s, rejection_reason=%s
                WHERE attendance_id=%s AND approval_status=%s
                """,
                (approval_status.value, approved_by, rejection_reason, attendance_id, ApprovalStatus.PENDING.value),
            )
            return cur.rowcount > 0

    def list_for_user(self, user_id: int, *, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE user_id=%s ORDER BY work_date DESC LIMIT %s",
                (user_id, int(limit)),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_pending(self, *, company_id: int, user_ids: Optional[Iterable[int]] = None) -> Sequence[AttendanceRecord]:
        sql = f"SELECT {_COLUMNS} FROM attendance_records WHERE company_id=%s AND approval_status=%s"
        params: list = [company_id, ApprovalStatus.PENDING.value]
        if user_ids is not None:
            ids = list(user_ids)
            if not ids:
                return []
            sql += f" AND user_id IN ({in_clause(ids)})"
            params.extend(ids)
        sql += " AND clock_in IS NOT NULL ORDER BY work_date DESC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_record(r) for r in fetchall(cur)]
