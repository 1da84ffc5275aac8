from __future__ import annotations

import logging
import re
from contextlib import closing
from pathlib import Path
from typing import Iterable

import mysql.connector
from werkzeug.security import generate_password_hash

from .connection import DBConfig

logger = logging.getLogger(__name__)

PORTAL_TABLES = (
    "branches",
    "users",
    "leave_requests",
    "notifications",
    "audit_logs",
    "activities",
    "activity_assignments",
    "activity_history",
    "recommendations",
    "recommendation_assignees",
    "recommendation_history",
    "timesheets",
)

DEMO_BRANCHES = (
    ("Head office", "HQ"),
    ("North branch", "NORTH"),
)

# (first_name, last_name, username, password, role, branch_code)
DEMO_USERS = (
    ("Ada", "Admin", "admin", "admin123", "super_admin", "HQ"),
    ("Noah", "Manager", "manager", "manager123", "branch_manager", "NORTH"),
    ("Lea", "Caregiver", "caregiver", "staff123", "caregiver", "NORTH"),
    ("Omar", "Clerk", "clerk", "staff123", "administrative", "NORTH"),
)


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a script on ';' outside of quotes. Line comments are dropped."""
    buf: list[str] = []
    in_single = False
    in_double = False
    escape = False

    lines = [ln for ln in sql.splitlines() if not ln.lstrip().startswith("--")]
    for ch in "\n".join(lines):
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            continue

        if ch == "'" and not in_double:
            in_single = not in_single
            buf.append(ch)
            continue

        if ch == '"' and not in_single:
            in_double = not in_double
            buf.append(ch)
            continue

        if ch == ";" and not in_single and not in_double:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _connect(target: DBConfig, *, with_database: bool = True):
    kwargs = dict(
        host=target.host,
        port=target.port,
        user=target.user,
        password=target.password,
        use_pure=True,
    )
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def _exec_script(db_config: dict, path: Path) -> None:
    target = DBConfig.from_dict(db_config)
    sql = _strip_create_db_and_use(path.read_text(encoding="utf-8"))
    with closing(_connect(target)) as conn:
        cur = conn.cursor()
        for stmt in iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    with closing(_connect(target, with_database=False)) as conn:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    _exec_script(db_config, Path(schema_path))
    logger.info("Applied schema %s", schema_path)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    seed_path = Path(seed_path)
    if not seed_path.exists():
        logger.info("No seed file at %s, skipping", seed_path)
        return
    _exec_script(db_config, seed_path)
    logger.info("Applied seed %s", seed_path)


def ensure_demo_users(db_config: dict) -> None:
    """Upsert demo branches and one account per role."""
    target = DBConfig.from_dict(db_config)

    with closing(_connect(target)) as conn:
        cur = conn.cursor(dictionary=True)

        branch_ids: dict[str, int] = {}
        for name, code in DEMO_BRANCHES:
            cur.execute("SELECT branch_id FROM branches WHERE code=%s", (code,))
            row = cur.fetchone()
            if row:
                branch_ids[code] = int(row["branch_id"])
                continue
            cur.execute("INSERT INTO branches (name, code, is_active) VALUES (%s, %s, 1)", (name, code))
            branch_ids[code] = int(cur.lastrowid)

        for first_name, last_name, username, password, role, branch_code in DEMO_USERS:
            password_hash = generate_password_hash(password)
            email = f"{username}@staff-portal.local"
            cur.execute("SELECT user_id FROM users WHERE username=%s", (username,))
            if cur.fetchone():
                cur.execute(
                    """
                    UPDATE users
                    SET first_name=%s, last_name=%s, password_hash=%s, role=%s, branch_id=%s, is_active=1
                    WHERE username=%s
                    """,
                    (first_name, last_name, password_hash, role, branch_ids[branch_code], username),
                )
            else:
                cur.execute(
                    """
                    INSERT INTO users (first_name, last_name, email, username, password_hash, role, branch_id)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    """,
                    (first_name, last_name, email, username, password_hash, role, branch_ids[branch_code]),
                )

        conn.commit()
    logger.info("Demo accounts ready (%d users)", len(DEMO_USERS))


def list_tables(db_config: dict) -> list[str]:
    target = DBConfig.from_dict(db_config)
    with closing(_connect(target)) as conn:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]


def missing_tables(present: Iterable[str]) -> list[str]:
    """Portal tables absent from `present` (MySQL may report names in upper case)."""
    have = {name.lower() for name in present}
    return [name for name in PORTAL_TABLES if name not in have]
