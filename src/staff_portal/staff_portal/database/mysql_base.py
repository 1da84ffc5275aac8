from __future__ import annotations

from contextlib import contextmanager
from datetime import time, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """One connection, one transaction: commit on success, rollback on error."""
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    return list(cur.fetchall() or [])


def build_where(clauses: List[str]) -> str:
    return " AND ".join(clauses) if clauses else "1=1"


def in_placeholders(values: Sequence[Any]) -> str:
    """`%s,%s,...` for an IN (...) list. Callers must skip the query when `values` is empty."""
    return ",".join(["%s"] * len(values))


def like_pattern(term: str) -> str:
    """Substring match for LIKE with the user's own wildcards escaped."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def add_text_search(clauses: List[str], params: List[Any], columns: Iterable[str], term: Optional[str]) -> None:
    """Append `(col1 LIKE %s OR col2 LIKE %s ...)` when a search term is given."""
    if not term:
        return
    columns = list(columns)
    clauses.append("(" + " OR ".join(f"{c} LIKE %s" for c in columns) + ")")
    params.extend([like_pattern(term)] * len(columns))


def count_rows(cur, from_where: str, params: Sequence[Any]) -> int:
    """Run `SELECT COUNT(*) <from_where>` and return the number."""
    cur.execute(f"SELECT COUNT(*) AS n {from_where}", tuple(params))
    row = fetchone(cur)
    return int(row["n"]) if row else 0


def status_counts(cur, table: str, where: str, params: Sequence[Any]) -> Dict[str, int]:
    """{status: count} for rows of `table` (aliased by the caller) matching `where`."""
    alias = table.split()[-1]
    cur.execute(
        f"SELECT {alias}.status, COUNT(*) AS n FROM {table} WHERE {where} GROUP BY {alias}.status",
        tuple(params),
    )
    return {r["status"]: int(r["n"]) for r in fetchall(cur)}


def normalize_mysql_time(value: Any) -> Optional[time]:
    """Per-user working hours come back from TIME columns as time, timedelta or 'HH:MM[:SS]'."""
    if value is None:
        return None
    if isinstance(value, time):
        return value

    if isinstance(value, timedelta):
        total_seconds = int(value.total_seconds()) % 86400
        return time(hour=total_seconds // 3600, minute=(total_seconds % 3600) // 60, second=total_seconds % 60)

    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) < 2:
            raise ValueError(f"Invalid time string: {value!r}")
        seconds = int(parts[2]) if len(parts) >= 3 and parts[2] else 0
        return time(hour=int(parts[0]), minute=int(parts[1]), second=seconds)

    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")
