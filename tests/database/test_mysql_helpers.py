from datetime import time, timedelta

import pytest

from src.staff_portal.staff_portal.database.bootstrap import PORTAL_TABLES, missing_tables
from src.staff_portal.staff_portal.database.mysql_base import (
    add_text_search,
    count_rows,
    db_cursor,
    in_placeholders,
    like_pattern,
    normalize_mysql_time,
    status_counts,
)


class FakeCursor:
    def __init__(self, rows=()):
        self.rows = list(rows)
        self.executed = []
        self.closed = False

    def execute(self, sql, params=()):
        self.executed.append((" ".join(sql.split()), params))

    def fetchone(self):
        return self.rows[0] if self.rows else None

    def fetchall(self):
        return self.rows

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.committed = self.rolled_back = self.closed = False

    def cursor(self, dictionary=True):
        return self._cursor

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


class FakeFactory:
    def __init__(self, conn):
        self.conn = conn

    def connect(self):
        return self.conn


def test_db_cursor_commits_on_success():
    conn = FakeConnection(FakeCursor())
    with db_cursor(FakeFactory(conn)) as (_, cur):
        cur.execute("SELECT 1")
    assert conn.committed and conn.closed and not conn.rolled_back


def test_db_cursor_rolls_back_and_reraises():
    conn = FakeConnection(FakeCursor())
    with pytest.raises(RuntimeError):
        with db_cursor(FakeFactory(conn)):
            raise RuntimeError("boom")
    assert conn.rolled_back and conn.closed and not conn.committed


def test_text_search_escapes_wildcards():
    clauses, params = [], []
    add_text_search(clauses, params, ("a.title", "a.description"), "50%_off")

    assert clauses == ["(a.title LIKE %s OR a.description LIKE %s)"]
    assert params == ["%50\\%\\_off%", "%50\\%\\_off%"]
    assert like_pattern("a\\b") == "%a\\\\b%"


def test_text_search_skips_empty_term():
    clauses, params = [], []
    add_text_search(clauses, params, ("title",), None)
    assert clauses == [] and params == []


def test_in_placeholders():
    assert in_placeholders([1, 2, 3]) == "%s,%s,%s"


def test_count_and_status_helpers_build_queries():
    cur = FakeCursor([{"n": 7}])
    assert count_rows(cur, "FROM activities a WHERE 1=1", []) == 7
    assert cur.executed[-1][0] == "SELECT COUNT(*) AS n FROM activities a WHERE 1=1"

    cur = FakeCursor([{"status": "DONE", "n": 2}, {"status": "LATE", "n": 1}])
    counts = status_counts(cur, "recommendations r", "r.branch_id=%s", [3])
    assert counts == {"DONE": 2, "LATE": 1}
    assert cur.executed[-1] == (
        "SELECT r.status, COUNT(*) AS n FROM recommendations r WHERE r.branch_id=%s GROUP BY r.status",
        (3,),
    )


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, None),
        (time(8, 30), time(8, 30)),
        (timedelta(hours=9, minutes=15), time(9, 15)),
        ("17:45", time(17, 45)),
        ("07:05:30", time(7, 5, 30)),
    ],
)
def test_normalize_mysql_time(value, expected):
    assert normalize_mysql_time(value) == expected


def test_normalize_mysql_time_rejects_garbage():
    with pytest.raises(ValueError):
        normalize_mysql_time("8")
    with pytest.raises(TypeError):
        normalize_mysql_time(8.5)


def test_missing_tables_reports_portal_tables_only():
    present = [name.upper() for name in PORTAL_TABLES if name != "audit_logs"] + ["legacy_shifts"]
    assert missing_tables(present) == ["audit_logs"]
    assert missing_tables(PORTAL_TABLES) == []
    assert missing_tables([])[:3] == ["branches", "users", "leave_requests"]
