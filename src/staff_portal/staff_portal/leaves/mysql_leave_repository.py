from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Collection, Optional, Sequence

from ..audit.model import AuditRecord
from ..audit.mysql_audit_repository import insert_audit_row
from ..core.enums import LeaveStatus, LeaveType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, count_rows, db_cursor, fetchall, fetchone, in_placeholders
from .model import LeaveRequest, LeaveRequestView
from .repository import LeaveRequestRepository

_COLUMNS = """
    r.request_id, r.user_id, r.leave_type, r.status, r.start_date, r.end_date,
    r.business_days, r.reason, r.created_at, r.approver_id, r.approved_at, r.approver_comment
"""

_VIEW_JOINS = """
    FROM leave_requests r
    JOIN users u ON u.user_id = r.user_id
    LEFT JOIN branches b ON b.branch_id = u.branch_id
    LEFT JOIN users a ON a.user_id = r.approver_id
"""

_VIEW_COLUMNS = (
    _COLUMNS
    + """,
    CONCAT(u.first_name, ' ', u.last_name) AS requester_name,
    b.name AS branch_name,
    CONCAT(a.first_name, ' ', a.last_name) AS approver_name
"""
)


def _row_to_request(r: dict) -> LeaveRequest:
    return LeaveRequest(
        request_id=int(r["request_id"]),
        user_id=int(r["user_id"]),
        leave_type=LeaveType(r["leave_type"]),
        status=LeaveStatus(r["status"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        business_days=int(r["business_days"]),
        reason=r["reason"],
        created_at=r["created_at"],
        approver_id=r.get("approver_id"),
        approved_at=r.get("approved_at"),
        approver_comment=r.get("approver_comment"),
    )


def _row_to_view(r: dict) -> LeaveRequestView:
    return LeaveRequestView(
        request=_row_to_request(r),
        requester_name=r["requester_name"],
        branch_name=r.get("branch_name"),
        approver_name=r.get("approver_name"),
    )


class MySQLLeaveRequestRepository(LeaveRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        user_id: int,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        business_days: int,
        reason: str,
        audit: AuditRecord,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_requests(user_id, leave_type, status, start_date, end_date, business_days, reason)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(user_id),
                    leave_type.value,
                    LeaveStatus.DRAFT.value,
                    start_date,
                    end_date,
                    int(business_days),
                    reason,
                ),
            )
            request_id = int(cur.lastrowid)
            insert_audit_row(cur, replace(audit, entity_id=request_id))
            return request_id

    def get_by_id(self, request_id: int) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM leave_requests r WHERE r.request_id=%s", (int(request_id),))
            row = fetchone(cur)
            return _row_to_request(row) if row else None

    def update_status(
        self, *, request_id: int, expected_status: LeaveStatus, status: LeaveStatus, audit: AuditRecord
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE leave_requests SET status=%s WHERE request_id=%s AND status=%s",
                (status.value, int(request_id), expected_status.value),
            )
            if cur.rowcount == 0:
                return False
            insert_audit_row(cur, audit)
            return True

    def decide(
        self,
        *,
        request_id: int,
        expected_status: LeaveStatus,
        status: LeaveStatus,
        approver_id: int,
        approved_at: datetime,
        approver_comment: Optional[str],
        audit: AuditRecord,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_requests
                SET status=%s, approver_id=%s, approved_at=%s, approver_comment=%s
                WHERE request_id=%s AND status=%s
                """,
                (
                    status.value,
                    int(approver_id),
                    approved_at,
                    approver_comment,
                    int(request_id),
                    expected_status.value,
                ),
            )
            if cur.rowcount == 0:
                return False
            insert_audit_row(cur, audit)
            return True

    def find_for_user(
        self,
        *,
        user_id: int,
        year: Optional[int] = None,
        leave_type: Optional[LeaveType] = None,
    ) -> Sequence[LeaveRequest]:
        clauses = ["r.user_id=%s"]
        params: list[object] = [int(user_id)]
        if year is not None:
            clauses.append("r.start_date BETWEEN %s AND %s")
            params.extend([date(year, 1, 1), date(year, 12, 31)])
        if leave_type is not None:
            clauses.append("r.leave_type=%s")
            params.append(leave_type.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM leave_requests r WHERE {build_where(clauses)} ORDER BY r.start_date",
                tuple(params),
            )
            return [_row_to_request(r) for r in fetchall(cur)]

    def _list_views(self, clauses: list[str], params: list[object], limit: int, offset: int):
        where = build_where(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            total = count_rows(cur, f"{_VIEW_JOINS} WHERE {where}", params)
            cur.execute(
                f"""
                SELECT {_VIEW_COLUMNS}
                {_VIEW_JOINS}
                WHERE {where}
                ORDER BY r.created_at DESC, r.request_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return [_row_to_view(r) for r in fetchall(cur)], total

    def list_for_user(
        self,
        *,
        user_id: int,
        year: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[Sequence[LeaveRequestView], int]:
        clauses = ["r.user_id=%s"]
        params: list[object] = [int(user_id)]
        if year is not None:
            clauses.append("r.start_date BETWEEN %s AND %s")
            params.extend([date(year, 1, 1), date(year, 12, 31)])
        return self._list_views(clauses, params, limit, offset)

    def list_by_statuses(
        self,
        *,
        statuses: Collection[LeaveStatus],
        branch_id: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[Sequence[LeaveRequestView], int]:
        if not statuses:
            return [], 0
        clauses = [f"r.status IN ({in_placeholders(list(statuses))})"]
        params: list[object] = [s.value for s in statuses]
        if branch_id is not None:
            clauses.append("u.branch_id=%s")
            params.append(int(branch_id))
        return self._list_views(clauses, params, limit, offset)
