from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import ActivityKind, ActivityStatus, Frequency
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    add_text_search,
    build_where,
    count_rows,
    db_cursor,
    fetchall,
    fetchone,
    in_placeholders,
    status_counts,
)
from .model import Activity, BranchAssignment, HistoryEntry, NewActivity
from .repository import ActivityRepository

_COLUMNS = """
    a.activity_id, a.title, a.description, a.kind, a.frequency, a.status,
    a.start_date, a.end_date, a.completed_at, a.budget, a.created_by, a.created_at
"""

_SETTLED = (ActivityStatus.DONE.value, ActivityStatus.CANCELLED.value, ActivityStatus.LATE.value)


def _row_to_activity(r: dict, assignments: Sequence[BranchAssignment] = ()) -> Activity:
    return Activity(
        activity_id=int(r["activity_id"]),
        title=r["title"],
        description=r.get("description"),
        kind=ActivityKind(r["kind"]),
        frequency=Frequency(r["frequency"]) if r.get("frequency") else None,
        status=ActivityStatus(r["status"]),
        start_date=r.get("start_date"),
        end_date=r.get("end_date"),
        completed_at=r.get("completed_at"),
        budget=float(r["budget"]) if r.get("budget") is not None else None,
        created_by=int(r["created_by"]),
        created_at=r.get("created_at"),
        assignments=tuple(assignments),
    )


class MySQLActivityRepository(ActivityRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _insert_history(cur, activity_id: int, history: HistoryEntry) -> None:
        cur.execute(
            """
            INSERT INTO activity_history(activity_id, old_status, new_status, changed_by, comment)
            VALUES(%s,%s,%s,%s,%s)
            """,
            (int(activity_id), history.old_status, history.new_status, history.changed_by, history.comment),
        )

    @staticmethod
    def _load_assignments(cur, activity_ids: list[int]) -> dict[int, list[BranchAssignment]]:
        out: dict[int, list[BranchAssignment]] = {i: [] for i in activity_ids}
        if not activity_ids:
            return out
        placeholders = in_placeholders(activity_ids)
        cur.execute(
            f"""
            SELECT aa.activity_id, aa.branch_id, aa.manager_id, b.name AS branch_name,
                   CONCAT(u.first_name, ' ', u.last_name) AS manager_name
            FROM activity_assignments aa
            JOIN branches b ON b.branch_id = aa.branch_id
            JOIN users u ON u.user_id = aa.manager_id
            WHERE aa.activity_id IN ({placeholders})
            ORDER BY b.name
            """,
            tuple(activity_ids),
        )
        for r in fetchall(cur):
            out[int(r["activity_id"])].append(
                BranchAssignment(
                    branch_id=int(r["branch_id"]),
                    manager_id=int(r["manager_id"]),
                    branch_name=r.get("branch_name"),
                    manager_name=r.get("manager_name"),
                )
            )
        return out

    def _with_assignments(self, cur, rows: list[dict]) -> list[Activity]:
        ids = [int(r["activity_id"]) for r in rows]
        by_id = self._load_assignments(cur, ids)
        return [_row_to_activity(r, by_id[int(r["activity_id"])]) for r in rows]

    def create(self, *, data: NewActivity, created_by: int, history: HistoryEntry) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO activities(title, description, kind, frequency, status,
                                       start_date, end_date, budget, created_by)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    data.title,
                    data.description,
                    data.kind.value,
                    data.frequency.value if data.frequency else None,
                    ActivityStatus.PLANNED.value,
                    data.start_date,
                    data.end_date,
                    data.budget,
                    int(created_by),
                ),
            )
            activity_id = int(cur.lastrowid)
            cur.executemany(
                "INSERT INTO activity_assignments(activity_id, branch_id, manager_id) VALUES(%s,%s,%s)",
                [(activity_id, int(a.branch_id), int(a.manager_id)) for a in data.assignments],
            )
            self._insert_history(cur, activity_id, history)
            return activity_id

    def get_by_id(self, activity_id: int) -> Optional[Activity]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM activities a WHERE a.activity_id=%s", (int(activity_id),))
            row = fetchone(cur)
            if not row:
                return None
            return self._with_assignments(cur, [row])[0]

    def list_history(self, activity_id: int) -> Sequence[HistoryEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT old_status, new_status, changed_by, comment, created_at
                FROM activity_history
                WHERE activity_id=%s
                ORDER BY created_at DESC, history_id DESC
                """,
                (int(activity_id),),
            )
            return [
                HistoryEntry(
                    old_status=r["old_status"],
                    new_status=r["new_status"],
                    changed_by=r.get("changed_by"),
                    comment=r.get("comment"),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]

    def change_status(
        self,
        *,
        activity_id: int,
        expected_status: ActivityStatus,
        history: HistoryEntry,
        completed_at: Optional[datetime] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE activities
                SET status=%s, completed_at=COALESCE(%s, completed_at)
                WHERE activity_id=%s AND status=%s
                """,
                (history.new_status, completed_at, int(activity_id), expected_status.value),
            )
            if cur.rowcount <= 0:
                return False
            self._insert_history(cur, activity_id, history)
            return True

    def delete(self, activity_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM activities WHERE activity_id=%s", (int(activity_id),))
            return cur.rowcount > 0

    def search(
        self,
        *,
        status: Optional[ActivityStatus] = None,
        search: Optional[str] = None,
        branch_id: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[Sequence[Activity], int]:
        clauses: list[str] = []
        params: list[object] = []
        if status is not None:
            clauses.append("a.status=%s")
            params.append(status.value)
        add_text_search(clauses, params, ("a.title", "a.description"), search)
        if branch_id is not None:
            clauses.append(
                "EXISTS (SELECT 1 FROM activity_assignments aa WHERE aa.activity_id=a.activity_id AND aa.branch_id=%s)"
            )
            params.append(int(branch_id))
        where = build_where(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            total = count_rows(cur, f"FROM activities a WHERE {where}", params)
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM activities a
                WHERE {where}
                ORDER BY a.created_at DESC, a.activity_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return self._with_assignments(cur, fetchall(cur)), total

    def list_overdue(self, *, now: datetime) -> Sequence[Activity]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM activities a
                WHERE a.end_date IS NOT NULL AND a.end_date < %s AND a.status NOT IN (%s,%s,%s)
                """,
                (now,) + _SETTLED,
            )
            return self._with_assignments(cur, fetchall(cur))

    def count_by_status(self, *, branch_id: Optional[int] = None) -> dict[str, int]:
        clauses: list[str] = []
        params: list[object] = []
        if branch_id is not None:
            clauses.append(
                "EXISTS (SELECT 1 FROM activity_assignments aa WHERE aa.activity_id=a.activity_id AND aa.branch_id=%s)"
            )
            params.append(int(branch_id))
        with db_cursor(self._conn_factory) as (_, cur):
            return status_counts(cur, "activities a", build_where(clauses), params)
