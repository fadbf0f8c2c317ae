from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import PermissionDef, Role
from .repository import PermissionRepository, RoleRepository


class MySQLPermissionRepository(PermissionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[PermissionDef]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT permission_key, module, description, is_deprecated
                FROM permissions
                ORDER BY module, permission_key
                """
            )
            return [
                PermissionDef(
                    key=r["permission_key"],
                    module=r["module"],
                    description=r.get("description") or "",
                    is_deprecated=bool(r.get("is_deprecated")),
                )
                for r in fetchall(cur)
            ]

    def active_keys(self) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT permission_key FROM permissions WHERE is_deprecated=0")
            return [r["permission_key"] for r in fetchall(cur)]

    def upsert(self, permission: PermissionDef) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO permissions(permission_key, module, description, is_deprecated)
                VALUES(%s,%s,%s,0)
                ON DUPLICATE KEY UPDATE module=VALUES(module), description=VALUES(description), is_deprecated=0
                """,
                (permission.key, permission.module, permission.description),
            )

    def deprecate_missing(self, keep_keys: Iterable[str]) -> int:
        keep = list(keep_keys)
        with db_cursor(self._conn_factory) as (_, cur):
            if keep:
                cur.execute(
                    f"UPDATE permissions SET is_deprecated=1 WHERE is_deprecated=0 AND permission_key NOT IN ({in_clause(keep)})",
                    tuple(keep),
                )
            else:
                cur.execute("UPDATE permissions SET is_deprecated=1 WHERE is_deprecated=0")
            return int(cur.rowcount)


class MySQLRoleRepository(RoleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    _ROLE_COLUMNS = "r.role_id, r.name, r.company_id, r.is_system, r.is_wildcard, r.is_active"

    def _permissions_for(self, cur, role_ids: Sequence[int]) -> Dict[int, List[str]]:
        out: Dict[int, List[str]] = {rid: [] for rid in role_ids}
        if not role_ids:
            return out
        cur.execute(
            f"SELECT role_id, permission_key FROM role_permissions WHERE role_id IN ({in_clause(role_ids)}) "
            "ORDER BY permission_key",
            tuple(role_ids),
        )
        for r in fetchall(cur):
            out[int(r["role_id"])].append(r["permission_key"])
        return out

    def _to_roles(self, cur, rows: List[dict]) -> List[Role]:
        perms = self._permissions_for(cur, [int(r["role_id"]) for r in rows])
        return [
            Role(
                role_id=int(r["role_id"]),
                name=r["name"],
                company_id=r.get("company_id"),
                permissions=tuple(perms.get(int(r["role_id"]), ())),
                is_system=bool(r.get("is_system")),
                is_wildcard=bool(r.get("is_wildcard")),
                is_active=bool(r.get("is_active", True)),
            )
            for r in rows
        ]

    def get_by_id(self, role_id: int) -> Optional[Role]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {self._ROLE_COLUMNS} FROM roles r WHERE r.role_id=%s", (role_id,))
            row = fetchone(cur)
            if not row:
                return None
            return self._to_roles(cur, [row])[0]

    def list_for_company(self, company_id: int) -> Sequence[Role]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {self._ROLE_COLUMNS}
                FROM roles r
                WHERE r.company_id=%s OR (r.company_id IS NULL AND r.is_system=1)
                ORDER BY r.name
                """,
                (company_id,),
            )
            return self._to_roles(cur, fetchall(cur))

    def list_by_name(self, name: str) -> Sequence[Role]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {self._ROLE_COLUMNS} FROM roles r WHERE r.name=%s", (name,))
            return self._to_roles(cur, fetchall(cur))

    def list_for_user(self, user_id: int) -> Sequence[Role]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {self._ROLE_COLUMNS}
                FROM user_roles ur
                JOIN roles r ON r.role_id = ur.role_id
                WHERE ur.user_id=%s
                ORDER BY ur.position
                """,
                (user_id,),
            )
            return self._to_roles(cur, fetchall(cur))

    def create(self, *, company_id: Optional[int], name: str, permissions: Sequence[str], is_system: bool = False) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO roles(company_id, name, is_system, is_wildcard, is_active) VALUES(%s,%s,%s,0,1)",
                (company_id, name, 1 if is_system else 0),
            )
            role_id = int(cur.lastrowid)
            if permissions:
                cur.executemany(
                    "INSERT INTO role_permissions(role_id, permission_key) VALUES(%s,%s)",
                    [(role_id, key) for key in dict.fromkeys(permissions)],
                )
            return role_id

    def update(self, *, role_id: int, name: str, permissions: Sequence[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE roles SET name=%s WHERE role_id=%s", (name, role_id))
            cur.execute("SELECT role_id FROM roles WHERE role_id=%s", (role_id,))
            if not fetchone(cur):
                return False
            self._replace_permissions(cur, role_id, permissions)
            return True

    def set_permissions(self, *, role_id: int, permissions: Sequence[str]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            self._replace_permissions(cur, role_id, permissions)

    def _replace_permissions(self, cur, role_id: int, permissions: Sequence[str]) -> None:
        cur.execute("DELETE FROM role_permissions WHERE role_id=%s", (role_id,))
        if permissions:
            cur.executemany(
                "INSERT INTO role_permissions(role_id, permission_key) VALUES(%s,%s)",
                [(role_id, key) for key in dict.fromkeys(permissions)],
            )
