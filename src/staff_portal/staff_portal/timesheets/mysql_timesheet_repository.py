from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import TimesheetStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_placeholders
from .model import TimesheetEntry
from .repository import TimesheetRepository

_COLUMNS = "entry_id, user_id, work_date, status, arrived_at, left_at, late_minutes, overtime_hours, observations"


def _row_to_entry(r: dict) -> TimesheetEntry:
    return TimesheetEntry(
        entry_id=int(r["entry_id"]),
        user_id=int(r["user_id"]),
        work_date=r["work_date"],
        status=TimesheetStatus(r["status"]),
        arrived_at=r.get("arrived_at"),
        left_at=r.get("left_at"),
        late_minutes=int(r.get("late_minutes") or 0),
        # DECIMAL comes back as Decimal
        overtime_hours=float(r.get("overtime_hours") or 0),
        observations=r.get("observations"),
    )


class MySQLTimesheetRepository(TimesheetRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[TimesheetEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM timesheets WHERE user_id=%s AND work_date=%s",
                (int(user_id), work_date),
            )
            row = fetchone(cur)
            return _row_to_entry(row) if row else None

    def create_entry(
        self,
        *,
        user_id: int,
        work_date: date,
        status: TimesheetStatus,
        arrived_at: Optional[datetime] = None,
        late_minutes: int = 0,
        observations: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO timesheets(user_id, work_date, status, arrived_at, late_minutes, observations)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (int(user_id), work_date, status.value, arrived_at, int(late_minutes), observations),
            )
            return int(cur.lastrowid)

    def update_checkout(self, *, entry_id: int, left_at: datetime, overtime_hours: float) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE timesheets SET left_at=%s, overtime_hours=%s WHERE entry_id=%s AND left_at IS NULL",
                (left_at, float(overtime_hours), int(entry_id)),
            )
            return cur.rowcount > 0

    def list_for_user_between(self, *, user_id: int, start_date: date, end_date: date) -> Sequence[TimesheetEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM timesheets
                WHERE user_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date
                """,
                (int(user_id), start_date, end_date),
            )
            return [_row_to_entry(r) for r in fetchall(cur)]

    def list_for_users_on(self, *, user_ids: Sequence[int], work_date: date) -> Sequence[TimesheetEntry]:
        if not user_ids:
            return []
        ids = [int(u) for u in user_ids]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM timesheets WHERE work_date=%s AND user_id IN ({in_placeholders(ids)})",
                (work_date, *ids),
            )
            return [_row_to_entry(r) for r in fetchall(cur)]
