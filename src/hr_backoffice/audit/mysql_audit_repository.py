from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, from_json, to_json
from .model import AuditEntry
from .repository import AuditRepository


class MySQLAuditRepository(AuditRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(self, entry: AuditEntry) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_logs(company_id, action, module, performed_by, target_user_id, details, created_at)
                VALUES(%s,%s,%s,%s,%s,%s,COALESCE(%s, CURRENT_TIMESTAMP))
                """,
                (
                    entry.company_id,
                    entry.action,
                    entry.module,
                    entry.performed_by,
                    entry.target_user_id,
                    to_json(entry.details),
                    entry.at,
                ),
            )

    def list_for_target(self, *, company_id: int, target_user_id: int, module: str, limit: int) -> Sequence[AuditEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT audit_id, company_id, action, module, performed_by, target_user_id, details, created_at
                FROM audit_logs
                WHERE company_id=%s AND target_user_id=%s AND module=%s
                ORDER BY created_at DESC, audit_id DESC
                LIMIT %s
                """,
                (company_id, target_user_id, module, int(limit)),
            )
            return [
                AuditEntry(
                    audit_id=int(r["audit_id"]),
                    action=r["action"],
                    module=r["module"],
                    performed_by=int(r["performed_by"]),
                    company_id=int(r["company_id"]),
                    target_user_id=r.get("target_user_id"),
                    details=from_json(r.get("details"), {}),
                    at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]
