from __future__ import annotations

from typing import Optional, Sequence

from ..core.constants import ROLE_LABELS
from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import User
from .repository import UserRepository

_USER_COLUMNS = """
    user_id, first_name, last_name, email, username, password_hash,
    role, branch_id, is_active, work_start, work_end
"""


def _row_to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        first_name=row["first_name"],
        last_name=row["last_name"],
        email=row["email"],
        username=row["username"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        branch_id=row.get("branch_id"),
        is_active=bool(row.get("is_active", True)),
        work_start=normalize_mysql_time(row.get("work_start")),
        work_end=normalize_mysql_time(row.get("work_end")),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_one(self, column: str, value) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE {column}=%s", (value,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._get_one("user_id", int(user_id))

    def get_by_username(self, username: str) -> Optional[User]:
        return self._get_one("username", username)

    def get_by_email(self, email: str) -> Optional[User]:
        return self._get_one("email", email)

    def list_by_branch_and_role(self, *, branch_id: int, role: Role, active_only: bool = True) -> Sequence[User]:
        sql = f"SELECT {_USER_COLUMNS} FROM users WHERE branch_id=%s AND role=%s"
        if active_only:
            sql += " AND is_active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, (int(branch_id), role.value))
            return [_row_to_user(r) for r in fetchall(cur)]

    def list_by_branch(self, branch_id: int, *, active_only: bool = True) -> Sequence[User]:
        sql = f"SELECT {_USER_COLUMNS} FROM users WHERE branch_id=%s"
        if active_only:
            sql += " AND is_active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY last_name, first_name", (int(branch_id),))
            return [_row_to_user(r) for r in fetchall(cur)]

    def count_active(self, *, branch_id: Optional[int] = None) -> int:
        sql = "SELECT COUNT(*) AS n FROM users WHERE is_active=1"
        params: tuple = ()
        if branch_id is not None:
            sql += " AND branch_id=%s"
            params = (int(branch_id),)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return int(fetchone(cur)["n"])

    def create_user(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        username: str,
        password_hash: str,
        role: Role,
        branch_id: Optional[int],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(first_name, last_name, email, username, password_hash, role, branch_id, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,%s,1)
                """,
                (first_name, last_name, email, username, password_hash, role.value, branch_id),
            )
            return int(cur.lastrowid)

    def update_user(
        self,
        user_id: int,
        *,
        first_name: str,
        last_name: str,
        email: str,
        username: str,
        role: Role,
        branch_id: Optional[int],
        password_hash: Optional[str] = None,
    ) -> bool:
        assignments = "first_name=%s, last_name=%s, email=%s, username=%s, role=%s, branch_id=%s"
        params: list = [first_name, last_name, email, username, role.value, branch_id]
        if password_hash:
            assignments += ", password_hash=%s"
            params.append(password_hash)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE users SET {assignments} WHERE user_id=%s", tuple(params + [int(user_id)]))
            return cur.rowcount > 0

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET is_active=%s WHERE user_id=%s", (1 if is_active else 0, int(user_id)))
            return cur.rowcount > 0

    def list_admin_view(self) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT u.user_id, u.first_name, u.last_name, u.username, u.email,
                       u.role, u.is_active, b.name AS branch_name
                FROM users u
                LEFT JOIN branches b ON b.branch_id = u.branch_id
                ORDER BY u.last_name, u.first_name
                """
            )
            out: list[dict] = []
            for r in fetchall(cur):
                out.append(
                    {
                        "user_id": int(r["user_id"]),
                        "full_name": f"{r['first_name']} {r['last_name']}",
                        "username": r["username"],
                        "email": r["email"],
                        "role": ROLE_LABELS.get(r["role"], r["role"]),
                        "branch_name": r.get("branch_name") or "-",
                        "is_active": bool(r["is_active"]),
                    }
                )
            return out
