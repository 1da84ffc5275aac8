from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..activities.model import HistoryEntry
from ..core.enums import Frequency, Priority, RecommendationSource, RecommendationStatus, ResolutionKind
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
from .model import Assignee, NewRecommendation, Recommendation
from .repository import RecommendationRepository

_COLUMNS = """
    r.recommendation_id, r.title, r.description, r.source, r.resolution_kind, r.priority,
    r.frequency, r.status, r.due_date, r.resolved_at, r.observations, r.activity_id,
    r.branch_id, r.created_by, r.created_at, b.name AS branch_name
"""

_FROM = "FROM recommendations r LEFT JOIN branches b ON b.branch_id = r.branch_id"

_SETTLED = (
    RecommendationStatus.RESOLVED.value,
    RecommendationStatus.CANCELLED.value,
    RecommendationStatus.LATE.value,
)


def _row_to_recommendation(r: dict, assignees: Sequence[Assignee] = ()) -> Recommendation:
    return Recommendation(
        recommendation_id=int(r["recommendation_id"]),
        title=r["title"],
        description=r["description"],
        source=RecommendationSource(r["source"]),
        resolution_kind=ResolutionKind(r["resolution_kind"]),
        priority=Priority(r["priority"]),
        frequency=Frequency(r["frequency"]) if r.get("frequency") else None,
        status=RecommendationStatus(r["status"]),
        due_date=r["due_date"],
        resolved_at=r.get("resolved_at"),
        observations=r.get("observations"),
        activity_id=r.get("activity_id"),
        branch_id=r.get("branch_id"),
        branch_name=r.get("branch_name"),
        created_by=int(r["created_by"]),
        created_at=r.get("created_at"),
        assignees=tuple(assignees),
    )


class MySQLRecommendationRepository(RecommendationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _insert_history(cur, recommendation_id: int, history: HistoryEntry) -> None:
        cur.execute(
            """
            INSERT INTO recommendation_history(recommendation_id, old_status, new_status, changed_by, comment)
            VALUES(%s,%s,%s,%s,%s)
            """,
            (int(recommendation_id), history.old_status, history.new_status, history.changed_by, history.comment),
        )

    @staticmethod
    def _with_assignees(cur, rows: list[dict]) -> list[Recommendation]:
        ids = [int(r["recommendation_id"]) for r in rows]
        by_id: dict[int, list[Assignee]] = {i: [] for i in ids}
        if ids:
            placeholders = in_placeholders(ids)
            cur.execute(
                f"""
                SELECT ra.recommendation_id, ra.user_id, ra.is_principal,
                       CONCAT(u.first_name, ' ', u.last_name) AS full_name
                FROM recommendation_assignees ra
                JOIN users u ON u.user_id = ra.user_id
                WHERE ra.recommendation_id IN ({placeholders})
                ORDER BY ra.is_principal DESC, u.last_name
                """,
                tuple(ids),
            )
            for a in fetchall(cur):
                by_id[int(a["recommendation_id"])].append(
                    Assignee(user_id=int(a["user_id"]), is_principal=bool(a["is_principal"]), full_name=a["full_name"])
                )
        return [_row_to_recommendation(r, by_id[int(r["recommendation_id"])]) for r in rows]

    def create(self, *, data: NewRecommendation, created_by: int, history: HistoryEntry) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO recommendations(title, description, source, resolution_kind, priority, frequency,
                                            status, due_date, observations, activity_id, branch_id, created_by)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    data.title,
                    data.description,
                    data.source.value,
                    data.resolution_kind.value,
                    data.priority.value,
                    data.frequency.value if data.frequency else None,
                    RecommendationStatus.PENDING.value,
                    data.due_date,
                    data.observations,
                    data.activity_id,
                    data.branch_id,
                    int(created_by),
                ),
            )
            recommendation_id = int(cur.lastrowid)
            cur.executemany(
                "INSERT INTO recommendation_assignees(recommendation_id, user_id, is_principal) VALUES(%s,%s,%s)",
                [(recommendation_id, int(uid), 1 if i == 0 else 0) for i, uid in enumerate(data.assignee_ids)],
            )
            self._insert_history(cur, recommendation_id, history)
            return recommendation_id

    def get_by_id(self, recommendation_id: int) -> Optional[Recommendation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} {_FROM} WHERE r.recommendation_id=%s", (int(recommendation_id),))
            row = fetchone(cur)
            if not row:
                return None
            return self._with_assignees(cur, [row])[0]

    def list_history(self, recommendation_id: int) -> Sequence[HistoryEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT old_status, new_status, changed_by, comment, created_at
                FROM recommendation_history
                WHERE recommendation_id=%s
                ORDER BY created_at DESC, history_id DESC
                """,
                (int(recommendation_id),),
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
        recommendation_id: int,
        expected_status: RecommendationStatus,
        history: HistoryEntry,
        resolved_at: Optional[datetime] = None,
        observations: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE recommendations
                SET status=%s,
                    resolved_at=COALESCE(%s, resolved_at),
                    observations=COALESCE(%s, observations)
                WHERE recommendation_id=%s AND status=%s
                """,
                (history.new_status, resolved_at, observations, int(recommendation_id), expected_status.value),
            )
            if cur.rowcount <= 0:
                return False
            self._insert_history(cur, recommendation_id, history)
            return True

    def delete(self, recommendation_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM recommendations WHERE recommendation_id=%s", (int(recommendation_id),))
            return cur.rowcount > 0

    @staticmethod
    def _scope(clauses: list[str], params: list[object], branch_id, assignee_id) -> None:
        if branch_id is not None:
            clauses.append("r.branch_id=%s")
            params.append(int(branch_id))
        if assignee_id is not None:
            clauses.append(
                "EXISTS (SELECT 1 FROM recommendation_assignees ra "
                "WHERE ra.recommendation_id=r.recommendation_id AND ra.user_id=%s)"
            )
            params.append(int(assignee_id))

    def search(
        self,
        *,
        status: Optional[RecommendationStatus] = None,
        priority: Optional[Priority] = None,
        source: Optional[RecommendationSource] = None,
        search: Optional[str] = None,
        branch_id: Optional[int] = None,
        assignee_id: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[Sequence[Recommendation], int]:
        clauses: list[str] = []
        params: list[object] = []
        for column, value in (("r.status", status), ("r.priority", priority), ("r.source", source)):
            if value is not None:
                clauses.append(f"{column}=%s")
                params.append(value.value)
        add_text_search(clauses, params, ("r.title", "r.description"), search)
        self._scope(clauses, params, branch_id, assignee_id)
        where = build_where(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            total = count_rows(cur, f"FROM recommendations r WHERE {where}", params)
            cur.execute(
                f"""
                SELECT {_COLUMNS} {_FROM}
                WHERE {where}
                ORDER BY r.created_at DESC, r.recommendation_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return self._with_assignees(cur, fetchall(cur)), total

    def list_overdue(self, *, now: datetime) -> Sequence[Recommendation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} {_FROM} WHERE r.due_date < %s AND r.status NOT IN (%s,%s,%s)",
                (now,) + _SETTLED,
            )
            return self._with_assignees(cur, fetchall(cur))

    def count_by_status(
        self, *, branch_id: Optional[int] = None, assignee_id: Optional[int] = None
    ) -> dict[str, int]:
        clauses: list[str] = []
        params: list[object] = []
        self._scope(clauses, params, branch_id, assignee_id)
        with db_cursor(self._conn_factory) as (_, cur):
            return status_counts(cur, "recommendations r", build_where(clauses), params)
