from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Branch
from .repository import BranchRepository


def _row_to_branch(row: dict) -> Branch:
    return Branch(
        branch_id=int(row["branch_id"]),
        name=row["name"],
        code=row["code"],
        is_active=bool(row.get("is_active", True)),
    )


class MySQLBranchRepository(BranchRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, branch_id: int) -> Optional[Branch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT branch_id, name, code, is_active FROM branches WHERE branch_id=%s", (int(branch_id),))
            row = fetchone(cur)
            return _row_to_branch(row) if row else None

    def get_by_code(self, code: str) -> Optional[Branch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT branch_id, name, code, is_active FROM branches WHERE code=%s", (code,))
            row = fetchone(cur)
            return _row_to_branch(row) if row else None

    def list_all(self, *, active_only: bool = False) -> Sequence[Branch]:
        sql = "SELECT branch_id, name, code, is_active FROM branches"
        if active_only:
            sql += " WHERE is_active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY name")
            return [_row_to_branch(r) for r in fetchall(cur)]

    def create(self, *, name: str, code: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("INSERT INTO branches(name, code, is_active) VALUES(%s,%s,1)", (name, code))
            return int(cur.lastrowid)

    def update(self, branch_id: int, *, name: str, code: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE branches SET name=%s, code=%s WHERE branch_id=%s", (name, code, int(branch_id)))
            # MySQL reports 0 for an unchanged row, so existence is checked by the service
            return cur.rowcount > 0

    def set_active(self, branch_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE branches SET is_active=%s WHERE branch_id=%s AND is_active<>%s",
                (1 if is_active else 0, int(branch_id), 1 if is_active else 0),
            )
            return cur.rowcount > 0
