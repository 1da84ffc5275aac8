from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import AuditAction
from ..database.connection import DatabaseConnection
from ..database.mysql_base import add_text_search, build_where, count_rows, db_cursor, fetchall
from .model import AuditLogEntry, AuditRecord
from .repository import AuditLogRepository


def insert_audit_row(cur, record: AuditRecord) -> int:
    """Write `record` with the caller's cursor so it commits or rolls back with the caller's change."""
    cur.execute(
        "INSERT INTO audit_logs(action, entity, entity_id, user_id, details) VALUES(%s,%s,%s,%s,%s)",
        (record.action.value, record.entity, record.entity_id, record.user_id, record.details),
    )
    return int(cur.lastrowid)


class MySQLAuditLogRepository(AuditLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        action: AuditAction,
        entity: str,
        entity_id: Optional[int],
        user_id: Optional[int],
        details: Optional[str],
    ) -> int:
        record = AuditRecord(action=action, entity=entity, entity_id=entity_id, user_id=user_id, details=details)
        with db_cursor(self._conn_factory) as (_, cur):
            return insert_audit_row(cur, record)

    def search(
        self,
        *,
        entity: Optional[str] = None,
        action: Optional[AuditAction] = None,
        user_id: Optional[int] = None,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[Sequence[AuditLogEntry], int]:
        clauses: list[str] = []
        params: list[object] = []
        if entity:
            clauses.append("entity=%s")
            params.append(entity)
        if action is not None:
            clauses.append("action=%s")
            params.append(action.value)
        if user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(user_id))
        add_text_search(clauses, params, ("entity", "details"), search)
        where = build_where(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            total = count_rows(cur, f"FROM audit_logs WHERE {where}", params)
            cur.execute(
                f"""
                SELECT log_id, action, entity, entity_id, user_id, details, created_at
                FROM audit_logs
                WHERE {where}
                ORDER BY created_at DESC, log_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            rows = [
                AuditLogEntry(
                    log_id=int(r["log_id"]),
                    action=AuditAction(r["action"]),
                    entity=r["entity"],
                    entity_id=r.get("entity_id"),
                    user_id=r.get("user_id"),
                    details=r.get("details"),
                    created_at=r["created_at"],
                )
                for r in fetchall(cur)
            ]
            return rows, total
