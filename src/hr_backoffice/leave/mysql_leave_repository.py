from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Sequence

from ..core.enums import AccrualType, HalfDaySession, LeaveStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json, in_clause, to_json
from .model import Holiday, LeaveAuditEntry, LeaveBalance, LeavePolicy, LeaveRequest
from .repository import HolidayRepository, LeaveBalanceRepository, LeavePolicyRepository, LeaveRequestRepository

_POLICY_COLUMNS = """
    leave_type, name, description, accrual_type, accrual_amount, carry_forward, max_carry_forward,
    max_limit_per_year, sandwich_rule, allow_negative_balance, allow_backdated, is_active
"""
_BALANCE_COLUMNS = "user_id, leave_type, year, opening_balance, accrued, utilized, encashed"
_REQUEST_COLUMNS = """
    request_id, user_id, company_id, leave_type, start_date, end_date, is_half_day, half_day_session,
    reason, documents, days_count, status, decided_by, rejection_reason, audit_log
"""


def _to_policy(row: dict) -> LeavePolicy:
    return LeavePolicy(
        leave_type=row["leave_type"],
        name=row["name"],
        description=row.get("description") or "",
        accrual_type=AccrualType(row["accrual_type"]),
        accrual_amount=float(row["accrual_amount"]),
        carry_forward=bool(row["carry_forward"]),
        max_carry_forward=float(row["max_carry_forward"]),
        max_limit_per_year=float(row["max_limit_per_year"]),
        sandwich_rule=bool(row["sandwich_rule"]),
        allow_negative_balance=bool(row["allow_negative_balance"]),
        allow_backdated=bool(row["allow_backdated"]),
        is_active=bool(row["is_active"]),
    )


def _to_balance(row: dict) -> LeaveBalance:
    return LeaveBalance(
        user_id=int(row["user_id"]),
        leave_type=row["leave_type"],
        year=int(row["year"]),
        opening_balance=float(row["opening_balance"]),
        accrued=float(row["accrued"]),
        utilized=float(row["utilized"]),
        encashed=float(row["encashed"]),
    )


def _to_request(row: dict) -> LeaveRequest:
    session = row.get("half_day_session")
    return LeaveRequest(
        request_id=int(row["request_id"]),
        user_id=int(row["user_id"]),
        company_id=int(row["company_id"]),
        leave_type=row["leave_type"],
        start_date=row["start_date"],
        end_date=row["end_date"],
        reason=row["reason"],
        days_count=float(row["days_count"]),
        status=LeaveStatus(row["status"]),
        is_half_day=bool(row["is_half_day"]),
        half_day_session=HalfDaySession(session) if session else None,
        documents=tuple(from_json(row.get("documents"), [])),
        decided_by=row.get("decided_by"),
        rejection_reason=row.get("rejection_reason"),
        audit_log=tuple(LeaveAuditEntry.from_dict(e) for e in from_json(row.get("audit_log"), [])),
    )


class MySQLLeavePolicyRepository(LeavePolicyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, leave_type: str) -> Optional[LeavePolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_POLICY_COLUMNS} FROM leave_policies WHERE leave_type=%s", (leave_type,))
            row = fetchone(cur)
            return _to_policy(row) if row else None

    def list_all(self) -> Sequence[LeavePolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_POLICY_COLUMNS} FROM leave_policies ORDER BY leave_type")
            return [_to_policy(r) for r in fetchall(cur)]

    def list_active(self) -> Sequence[LeavePolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_POLICY_COLUMNS} FROM leave_policies WHERE is_active=1 ORDER BY leave_type")
            return [_to_policy(r) for r in fetchall(cur)]

    def upsert(self, policy: LeavePolicy) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT INTO leave_policies({_POLICY_COLUMNS})
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    name=VALUES(name), description=VALUES(description), accrual_type=VALUES(accrual_type),
                    accrual_amount=VALUES(accrual_amount), carry_forward=VALUES(carry_forward),
                    max_carry_forward=VALUES(max_carry_forward), max_limit_per_year=VALUES(max_limit_per_year),
                    sandwich_rule=VALUES(sandwich_rule), allow_negative_balance=VALUES(allow_negative_balance),
                    allow_backdated=VALUES(allow_backdated), is_active=VALUES(is_active)
                """,
                (
                    policy.leave_type,
                    policy.name,
                    policy.description,
                    policy.accrual_type.value,
                    policy.accrual_amount,
                    int(policy.carry_forward),
                    policy.max_carry_forward,
                    policy.max_limit_per_year,
                    int(policy.sandwich_rule),
                    int(policy.allow_negative_balance),
                    int(policy.allow_backdated),
                    int(policy.is_active),
                ),
            )


class MySQLLeaveBalanceRepository(LeaveBalanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, user_id: int, leave_type: str, year: int) -> Optional[LeaveBalance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_BALANCE_COLUMNS} FROM leave_balances WHERE user_id=%s AND leave_type=%s AND year=%s",
                (user_id, leave_type, year),
            )
            row = fetchone(cur)
            return _to_balance(row) if row else None

    def get_or_create(self, *, user_id: int, leave_type: str, year: int) -> LeaveBalance:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT IGNORE INTO leave_balances(user_id, leave_type, year) VALUES(%s,%s,%s)",
                (user_id, leave_type, year),
            )
            cur.execute(
                f"SELECT {_BALANCE_COLUMNS} FROM leave_balances WHERE user_id=%s AND leave_type=%s AND year=%s",
                (user_id, leave_type, year),
            )
            return _to_balance(fetchone(cur))

    def list_for_user(self, *, user_id: int, year: int) -> Sequence[LeaveBalance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_BALANCE_COLUMNS} FROM leave_balances WHERE user_id=%s AND year=%s ORDER BY leave_type",
                (user_id, year),
            )
            return [_to_balance(r) for r in fetchall(cur)]

    def add_utilized(self, *, user_id: int, leave_type: str, year: int, days: float) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_balances(user_id, leave_type, year, utilized) VALUES(%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE utilized = utilized + VALUES(utilized)
                """,
                (user_id, leave_type, year, days),
            )

    def add_accrual(self, *, user_id: int, leave_type: str, year: int, amount: float, cap: float) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_balances
                SET accrued = CASE WHEN %s > 0 THEN LEAST(accrued + %s, %s) ELSE accrued + %s END
                WHERE user_id=%s AND leave_type=%s AND year=%s
                """,
                (cap, amount, cap, amount, user_id, leave_type, year),
            )

    def set_opening(self, *, user_id: int, leave_type: str, year: int, opening_balance: float, accrued: Optional[float] = None) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            if accrued is None:
                cur.execute(
                    """
                    INSERT INTO leave_balances(user_id, leave_type, year, opening_balance) VALUES(%s,%s,%s,%s)
                    ON DUPLICATE KEY UPDATE opening_balance = VALUES(opening_balance)
                    """,
                    (user_id, leave_type, year, opening_balance),
                )
            else:
                cur.execute(
                    """
                    INSERT INTO leave_balances(user_id, leave_type, year, opening_balance, accrued) VALUES(%s,%s,%s,%s,%s)
                    ON DUPLICATE KEY UPDATE opening_balance = VALUES(opening_balance), accrued = VALUES(accrued)
                    """,
                    (user_id, leave_type, year, opening_balance, accrued),
                )


class MySQLLeaveRequestRepository(LeaveRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, request_id: int) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_REQUEST_COLUMNS} FROM leave_requests WHERE request_id=%s", (request_id,))
            row = fetchone(cur)
            return _to_request(row) if row else None

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_requests(user_id, company_id, leave_type, start_date, end_date, is_half_day,
                                           half_day_session, reason, documents, days_count, status, audit_log)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    user_id,
                    company_id,
                    leave_type,
                    start_date,
                    end_date,
                    int(is_half_day),
                    half_day_session.value if half_day_session else None,
                    reason,
                    to_json(list(documents)),
                    days_count,
                    LeaveStatus.PENDING.value,
                    to_json([audit_entry.to_dict()]),
                ),
            )
            return int(cur.lastrowid)

    def list_for_user(self, user_id: int) -> Sequence[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_REQUEST_COLUMNS} FROM leave_requests WHERE user_id=%s ORDER BY created_at DESC, request_id DESC",
                (user_id,),
            )
            return [_to_request(r) for r in fetchall(cur)]

    def list_overlapping(self, *, user_id: int, start: date, end: date, statuses: Iterable[LeaveStatus]) -> Sequence[LeaveRequest]:
        values = [s.value for s in statuses]
        if not values:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_REQUEST_COLUMNS} FROM leave_requests
                WHERE user_id=%s AND start_date <= %s AND end_date >= %s AND status IN ({in_clause(values)})
                """,
                (user_id, end, start, *values),
            )
            return [_to_request(r) for r in fetchall(cur)]

    def list_pending(self, *, company_id: int, user_ids: Optional[Iterable[int]] = None) -> Sequence[LeaveRequest]:
        sql = f"SELECT {_REQUEST_COLUMNS} FROM leave_requests WHERE company_id=%s AND status=%s"
        params: list = [company_id, LeaveStatus.PENDING.value]
        if user_ids is not None:
            ids = list(user_ids)
            if not ids:
                return []
            sql += f" AND user_id IN ({in_clause(ids)})"
            params.extend(ids)
        sql += " ORDER BY created_at, request_id"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_request(r) for r in fetchall(cur)]

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_requests
                SET status=%s, decided_by=%s, rejection_reason=%s,
                    audit_log = JSON_ARRAY_APPEND(COALESCE(audit_log, JSON_ARRAY()), '$', CAST(%s AS JSON))
                WHERE request_id=%s AND status=%s
                """,
                (
                    to_status.value,
                    decided_by,
                    rejection_reason,
                    to_json(audit_entry.to_dict()),
                    request_id,
                    from_status.value,
                ),
            )
            return cur.rowcount > 0


class MySQLHolidayRepository(HolidayRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_holiday(row: dict) -> Holiday:
        return Holiday(
            holiday_id=int(row["holiday_id"]),
            company_id=int(row["company_id"]),
            name=row["name"],
            holiday_date=row["holiday_date"],
            is_optional=bool(row["is_optional"]),
        )

    def get_by_id(self, holiday_id: int) -> Optional[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT holiday_id, company_id, name, holiday_date, is_optional FROM holidays WHERE holiday_id=%s",
                (holiday_id,),
            )
            row = fetchone(cur)
            return self._to_holiday(row) if row else None

    def list_between(self, *, company_id: int, start: date, end: date) -> Sequence[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT holiday_id, company_id, name, holiday_date, is_optional
                FROM holidays
                WHERE company_id=%s AND holiday_date BETWEEN %s AND %s
                ORDER BY holiday_date
                """,
                (company_id, start, end),
            )
            return [self._to_holiday(r) for r in fetchall(cur)]

    def create(self, *, company_id: int, name: str, holiday_date: date, is_optional: bool) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO holidays(company_id, name, holiday_date, is_optional) VALUES(%s,%s,%s,%s)",
                (company_id, name, holiday_date, int(is_optional)),
            )
            return int(cur.lastrowid)

    def update(self, *, holiday_id: int, name: str, holiday_date: date, is_optional: bool) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE holidays SET name=%s, holiday_date=%s, is_optional=%s WHERE holiday_id=%s",
                (name, holiday_date, int(is_optional), holiday_id),
            )

    def delete(self, holiday_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM holidays WHERE holiday_id=%s", (holiday_id,))
            return cur.rowcount > 0
