from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence

from ..core.enums import HrisStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json, in_clause, to_json
from .model import SECTIONS, Document, EmployeeProfile, HrisState
from .repository import DossierRepository

_COLUMNS = "profile_id, user_id, company_id, " + ", ".join(SECTIONS) + ", documents, hris"


def _to_profile(row: dict) -> EmployeeProfile:
    return EmployeeProfile(
        profile_id=int(row["profile_id"]),
        user_id=int(row["user_id"]),
        company_id=int(row["company_id"]),
        sections={name: from_json(row.get(name)) for name in SECTIONS},
        documents=tuple(Document.from_dict(d) for d in from_json(row.get("documents"), [])),
        hris=HrisState.from_dict(from_json(row.get("hris"), {})),
    )


class MySQLDossierRepository(DossierRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_user(self, user_id: int) -> Optional[EmployeeProfile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employee_profiles WHERE user_id=%s", (user_id,))
            row = fetchone(cur)
            return _to_profile(row) if row else None

    def get_or_create(self, *, user_id: int, company_id: int, skeleton: Mapping[str, Any]) -> EmployeeProfile:
        names = [n for n in SECTIONS if n in skeleton]
        columns = ", ".join(["user_id", "company_id", *names, "documents", "hris"])
        placeholders = ", ".join(["%s"] * (len(names) + 4))
        params = (
            user_id,
            company_id,
            *(to_json(skeleton[n]) for n in names),
            to_json([]),
            to_json(HrisState().to_dict()),
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"INSERT IGNORE INTO employee_profiles({columns}) VALUES({placeholders})", params)
            cur.execute(f"SELECT {_COLUMNS} FROM employee_profiles WHERE user_id=%s", (user_id,))
            return _to_profile(fetchone(cur))

    def save_sections(self, *, user_id: int, sections: Mapping[str, Any]) -> None:
        names = [n for n in SECTIONS if n in sections]
        if not names:
            return
        assignments = ", ".join(f"{n}=%s" for n in names)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE employee_profiles SET {assignments} WHERE user_id=%s",
                (*(to_json(sections[n]) for n in names), user_id),
            )

    def save_hris(self, *, user_id: int, hris: HrisState, expected_status: Optional[HrisStatus] = None) -> bool:
        sql = "UPDATE employee_profiles SET hris=%s WHERE user_id=%s"
        params: list = [to_json(hris.to_dict()), user_id]
        if expected_status is not None:
            sql += " AND JSON_UNQUOTE(JSON_EXTRACT(hris, '$.status'))=%s"
            params.append(expected_status.value)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return cur.rowcount > 0

    def save_documents(self, *, user_id: int, documents: Sequence[Document]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE employee_profiles SET documents=%s WHERE user_id=%s",
                (to_json([d.to_dict() for d in documents]), user_id),
            )

    def list_by_hris_status(
        self,
        *,
        company_id: int,
        statuses: Iterable[HrisStatus],
        user_ids: Optional[Iterable[int]] = None,
    ) -> Sequence[EmployeeProfile]:
        values = [s.value for s in statuses]
        if not values:
            return []
        sql = (
            f"SELECT {_COLUMNS} FROM employee_profiles "
            f"WHERE company_id=%s AND JSON_UNQUOTE(JSON_EXTRACT(hris, '$.status')) IN ({in_clause(values)})"
        )
        params: list = [company_id, *values]
        if user_ids is not None:
            ids = list(user_ids)
            if not ids:
                return []
            sql += f" AND user_id IN ({in_clause(ids)})"
            params.extend(ids)
        sql += " ORDER BY user_id"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_profile(r) for r in fetchall(cur)]
