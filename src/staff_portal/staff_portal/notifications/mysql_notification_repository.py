from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import NotificationType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Notification
from .repository import NotificationRepository

_COLUMNS = "notification_id, user_id, notification_type, title, message, link, is_read, created_at"


def _row_to_notification(r: dict) -> Notification:
    return Notification(
        notification_id=int(r["notification_id"]),
        user_id=int(r["user_id"]),
        notification_type=NotificationType(r["notification_type"]),
        title=r["title"],
        message=r["message"],
        created_at=r["created_at"],
        link=r.get("link"),
        is_read=bool(r.get("is_read")),
    )


class MySQLNotificationRepository(NotificationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        user_id: int,
        notification_type: NotificationType,
        title: str,
        message: str,
        link: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO notifications(user_id, notification_type, title, message, link)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(user_id), notification_type.value, title, message, link),
            )
            return int(cur.lastrowid)

    def get_by_id(self, notification_id: int) -> Optional[Notification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM notifications WHERE notification_id=%s", (int(notification_id),))
            row = fetchone(cur)
            return _row_to_notification(row) if row else None

    def list_for_user(self, *, user_id: int, limit: int, offset: int = 0) -> Sequence[Notification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM notifications
                WHERE user_id=%s
                ORDER BY created_at DESC, notification_id DESC
                LIMIT %s OFFSET %s
                """,
                (int(user_id), int(limit), int(offset)),
            )
            return [_row_to_notification(r) for r in fetchall(cur)]

    def count_for_user(self, *, user_id: int, unread_only: bool = False) -> int:
        sql = "SELECT COUNT(*) AS n FROM notifications WHERE user_id=%s"
        if unread_only:
            sql += " AND is_read=0"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, (int(user_id),))
            return int(fetchone(cur)["n"])

    def mark_read(self, notification_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE notifications SET is_read=1 WHERE notification_id=%s", (int(notification_id),))
            return cur.rowcount > 0

    def mark_all_read(self, *, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE notifications SET is_read=1 WHERE user_id=%s AND is_read=0", (int(user_id),))
            return int(cur.rowcount)
