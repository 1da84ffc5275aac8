from datetime import datetime

import pytest
from flask import Flask

from src.staff_portal.staff_portal.common.pagination import Page, PageRequest
from src.staff_portal.staff_portal.common.results import run_action
from src.staff_portal.staff_portal.common.web import arg_year, form_datetime, parse_enum
from src.staff_portal.staff_portal.core.enums import Priority
from src.staff_portal.staff_portal.core.exceptions import InvalidStateError, ValidationError


def test_run_action_wraps_success_and_domain_errors():
    ok = run_action(lambda x: x * 2, 21)
    assert ok.success and ok.data == 42

    def boom():
        raise InvalidStateError("already cancelled")

    failed = run_action(boom)
    assert not failed.success
    assert failed.error == "already cancelled"
    assert failed.error_code == "invalid_state"


def test_run_action_lets_programming_errors_through():
    with pytest.raises(ZeroDivisionError):
        run_action(lambda: 1 / 0)


def test_page_request_clamps_values():
    req = PageRequest(page=0, page_size=500)
    assert (req.page, req.page_size, req.offset) == (1, 100, 0)
    assert PageRequest(page=3, page_size=20).offset == 40


def test_page_navigation():
    page = Page(items=[1, 2], total=41, page=2, page_size=20)
    assert page.total_pages == 3
    assert page.has_next
    assert Page().total_pages == 0


def test_parse_enum():
    assert parse_enum(Priority, "", "priority") is None
    assert parse_enum(Priority, "HIGH", "priority") == Priority.HIGH
    with pytest.raises(ValidationError):
        parse_enum(Priority, "URGENT", "priority")


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2026-03-02T09:30", datetime(2026, 3, 2, 9, 30)),
        ("2026-03-02", datetime(2026, 3, 2)),
        ("", None),
    ],
)
def test_form_datetime(raw, expected):
    app = Flask(__name__)
    with app.test_request_context("/", method="POST", data={"due_date": raw}):
        assert form_datetime("due_date") == expected


def test_form_datetime_rejects_garbage():
    app = Flask(__name__)
    with app.test_request_context("/", method="POST", data={"due_date": "next week"}):
        with pytest.raises(ValidationError):
            form_datetime("due_date")


@pytest.mark.parametrize(
    "query,expected",
    [("year=2025", 2025), ("year=0", 2026), ("year=10000", 2026), ("year=-3", 2026), ("year=abc", 2026), ("", 2026)],
)
def test_arg_year_falls_back_outside_calendar_range(query, expected):
    app = Flask(__name__)
    with app.test_request_context(f"/leaves?{query}"):
        assert arg_year(2026) == expected
