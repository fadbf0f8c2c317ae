from __future__ import annotations

from pathlib import Path
from typing import Iterable

import structlog

from .connection import DatabaseConnection

log = structlog.get_logger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"


def _iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal splitter: schema.sql has no ';' inside string literals.
    lines = [ln for ln in sql.splitlines() if not ln.strip().startswith("--")]
    for stmt in "\n".join(lines).split(";"):
        stmt = stmt.strip()
        if stmt:
            yield stmt


def ensure_database_exists(conn_factory: DatabaseConnection, database: str) -> None:
    conn = conn_factory.connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(conn_factory: DatabaseConnection, database: str, *, schema_path: str | Path = SCHEMA_PATH) -> None:
    ensure_database_exists(conn_factory, database)
    sql = Path(schema_path).read_text(encoding="utf-8")

    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    log.info("schema_applied", database=database, schema=str(schema_path))


def list_tables(conn_factory: DatabaseConnection) -> list[str]:
    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
