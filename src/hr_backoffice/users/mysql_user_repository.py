from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import User
from .repository import UserRepository

_USER_COLUMNS = """
    user_id, company_id, email, password_hash, first_name, last_name,
    department, employee_code, joining_date, is_active, token_version
"""


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _hydrate(self, cur, row: dict) -> User:
        user_id = int(row["user_id"])
        cur.execute("SELECT role_id FROM user_roles WHERE user_id=%s ORDER BY position", (user_id,))
        role_ids = tuple(int(r["role_id"]) for r in fetchall(cur))
        cur.execute("SELECT manager_id FROM user_managers WHERE user_id=%s", (user_id,))
        manager_ids = frozenset(int(r["manager_id"]) for r in fetchall(cur))
        return User(
            user_id=user_id,
            company_id=int(row["company_id"]),
            email=row["email"],
            password_hash=row["password_hash"],
            first_name=row.get("first_name") or "",
            last_name=row.get("last_name") or "",
            role_ids=role_ids,
            manager_ids=manager_ids,
            is_active=bool(row.get("is_active", True)),
            token_version=int(row.get("token_version") or 0),
            department=row.get("department"),
            employee_code=row.get("employee_code"),
            joining_date=row.get("joining_date"),
        )

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE user_id=%s", (user_id,))
            row = fetchone(cur)
            return self._hydrate(cur, row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE email=%s", (email.lower(),))
            row = fetchone(cur)
            return self._hydrate(cur, row) if row else None

    def list_active(self) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE is_active=1 ORDER BY user_id")
            rows = fetchall(cur)
            return [self._hydrate(cur, r) for r in rows]

    def list_subordinate_ids(self, manager_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT user_id FROM user_managers WHERE manager_id=%s ORDER BY user_id", (manager_id,))
            return [int(r["user_id"]) for r in fetchall(cur)]

    def create_company(self, name: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("INSERT INTO companies(name) VALUES(%s)", (name,))
            return int(cur.lastrowid)

    def create_user(
        self,
        *,
        company_id: int,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        department: Optional[str] = None,
        employee_code: Optional[str] = None,
        joining_date: Optional[date] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(company_id, email, password_hash, first_name, last_name,
                                  department, employee_code, joining_date, is_active, token_version)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,1,0)
                """,
                (company_id, email.lower(), password_hash, first_name, last_name, department, employee_code, joining_date),
            )
            return int(cur.lastrowid)

    def set_roles(self, user_id: int, role_ids: Sequence[int]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM user_roles WHERE user_id=%s", (user_id,))
            if role_ids:
                cur.executemany(
                    "INSERT INTO user_roles(user_id, role_id, position) VALUES(%s,%s,%s)",
                    [(user_id, rid, pos) for pos, rid in enumerate(dict.fromkeys(role_ids))],
                )

    def set_managers(self, user_id: int, manager_ids: Sequence[int]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM user_managers WHERE user_id=%s", (user_id,))
            if manager_ids:
                cur.executemany(
                    "INSERT INTO user_managers(user_id, manager_id) VALUES(%s,%s)",
                    [(user_id, mid) for mid in dict.fromkeys(manager_ids)],
                )

    def bump_token_version(self, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET token_version = token_version + 1 WHERE user_id=%s", (user_id,))
            cur.execute("SELECT token_version FROM users WHERE user_id=%s", (user_id,))
            row = fetchone(cur)
            return int(row["token_version"]) if row else 0

    def bump_token_version_for_role(self, role_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE users u
                JOIN user_roles ur ON ur.user_id = u.user_id
                SET u.token_version = u.token_version + 1
                WHERE ur.role_id=%s
                """,
                (role_id,),
            )
            return int(cur.rowcount)
