from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time

import pytest

from src.staff_portal.staff_portal.core.enums import AuditAction, Role, TimesheetStatus
from src.staff_portal.staff_portal.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.staff_portal.staff_portal.timesheets import policy
from src.staff_portal.staff_portal.timesheets.model import TimesheetEntry
from src.staff_portal.staff_portal.timesheets.service import TimesheetService
from src.staff_portal.staff_portal.users.model import Actor

MANAGER = Actor(user_id=2, role=Role.BRANCH_MANAGER, branch_id=1)
EMPLOYEE = Actor(user_id=3, role=Role.CAREGIVER, branch_id=1)
COLLEAGUE = Actor(user_id=4, role=Role.ADMINISTRATIVE, branch_id=1)
ADMIN = Actor(user_id=1, role=Role.SUPER_ADMIN)


class FakeTimesheetRepo:
    def __init__(self):
        self._next_id = 1
        self.rows: dict[int, TimesheetEntry] = {}

    def get_for_user_and_date(self, user_id, work_date):
        return next((e for e in self.rows.values() if e.user_id == user_id and e.work_date == work_date), None)

    def create_entry(self, *, user_id, work_date, status, arrived_at=None, late_minutes=0, observations=None):
        entry_id = self._next_id
        self._next_id += 1
        self.rows[entry_id] = TimesheetEntry(
            entry_id=entry_id,
            user_id=user_id,
            work_date=work_date,
            status=status,
            arrived_at=arrived_at,
            late_minutes=late_minutes,
            observations=observations,
        )
        return entry_id

    def update_checkout(self, *, entry_id, left_at, overtime_hours):
        entry = self.rows[entry_id]
        if entry.left_at is not None:
            return False
        self.rows[entry_id] = replace(entry, left_at=left_at, overtime_hours=overtime_hours)
        return True

    def list_for_user_between(self, *, user_id, start_date, end_date):
        return sorted(
            (e for e in self.rows.values() if e.user_id == user_id and start_date <= e.work_date <= end_date),
            key=lambda e: e.work_date,
        )

    def list_for_users_on(self, *, user_ids, work_date):
        return [e for e in self.rows.values() if e.user_id in user_ids and e.work_date == work_date]


@pytest.fixture
def repo():
    return FakeTimesheetRepo()


@pytest.fixture
def service(repo, users_repo, audit):
    return TimesheetService(repo, users_repo, audit, work_start="08:00", work_end="16:00", late_threshold_minutes=15)


def test_check_in_on_time(service, audit_repo):
    entry = service.check_in(actor=EMPLOYEE, user_id=3, now=datetime(2026, 3, 2, 7, 55))

    assert entry.status == TimesheetStatus.PRESENT
    assert entry.late_minutes == 0
    assert audit_repo.entries[-1].action == AuditAction.CREATE


def test_check_in_late_records_minutes(service):
    entry = service.check_in(actor=EMPLOYEE, user_id=3, now=datetime(2026, 3, 2, 8, 40))

    assert entry.status == TimesheetStatus.LATE
    assert entry.late_minutes == 40


def test_personal_schedule_overrides_default(repo, users_repo, audit):
    users_repo.add(replace(users_repo.get_by_id(3), work_start=time(9, 0), work_end=time(17, 0)))
    service = TimesheetService(repo, users_repo, audit, work_start="08:00", work_end="16:00")

    entry = service.check_in(actor=EMPLOYEE, user_id=3, now=datetime(2026, 3, 2, 9, 10))
    assert entry.status == TimesheetStatus.PRESENT

    out = service.check_out(actor=EMPLOYEE, user_id=3, now=datetime(2026, 3, 2, 17, 30))
    assert out.overtime_hours == 0.5


def test_double_check_in_is_refused(service):
    service.check_in(actor=EMPLOYEE, user_id=3, now=datetime(2026, 3, 2, 8, 0))
    with pytest.raises(ValidationError):
        service.check_in(actor=EMPLOYEE, user_id=3, now=datetime(2026, 3, 2, 9, 0))


def test_check_out_computes_overtime(service, repo):
    service.check_in(actor=EMPLOYEE, user_id=3, now=datetime(2026, 3, 2, 8, 0))
    entry = service.check_out(actor=EMPLOYEE, user_id=3, now=datetime(2026, 3, 2, 17, 15))

    assert entry.overtime_hours == 1.25
    assert repo.rows[entry.entry_id].left_at == datetime(2026, 3, 2, 17, 15)


def test_check_out_without_check_in(service):
    with pytest.raises(ValidationError):
        service.check_out(actor=EMPLOYEE, user_id=3, now=datetime(2026, 3, 2, 16, 0))


def test_check_out_twice(service):
    service.check_in(actor=EMPLOYEE, user_id=3, now=datetime(2026, 3, 2, 8, 0))
    service.check_out(actor=EMPLOYEE, user_id=3, now=datetime(2026, 3, 2, 16, 0))
    with pytest.raises(ValidationError):
        service.check_out(actor=EMPLOYEE, user_id=3, now=datetime(2026, 3, 2, 16, 5))


def test_colleague_cannot_check_in_for_someone_else(service):
    with pytest.raises(AuthorizationError):
        service.check_in(actor=COLLEAGUE, user_id=3, now=datetime(2026, 3, 2, 8, 0))


def test_manager_checks_in_for_employee(service):
    entry = service.check_in(actor=MANAGER, user_id=3, now=datetime(2026, 3, 2, 8, 0))
    assert entry.user_id == 3


def test_unknown_employee(service):
    with pytest.raises(NotFoundError):
        service.check_in(actor=MANAGER, user_id=99, now=datetime(2026, 3, 2, 8, 0))


def test_mark_absent_is_manager_only(service, repo):
    with pytest.raises(AuthorizationError):
        service.mark_absent(actor=EMPLOYEE, user_id=3, work_date=date(2026, 3, 3))

    entry_id = service.mark_absent(actor=MANAGER, user_id=3, work_date=date(2026, 3, 3), observations=" sick ")
    assert repo.rows[entry_id].status == TimesheetStatus.ABSENT
    assert repo.rows[entry_id].observations == "sick"

    with pytest.raises(ValidationError):
        service.mark_absent(actor=MANAGER, user_id=3, work_date=date(2026, 3, 3))


def test_month_summary(service):
    service.check_in(actor=EMPLOYEE, user_id=3, now=datetime(2026, 3, 2, 8, 0))
    service.check_out(actor=EMPLOYEE, user_id=3, now=datetime(2026, 3, 2, 17, 0))
    service.check_in(actor=EMPLOYEE, user_id=3, now=datetime(2026, 3, 3, 8, 30))
    service.mark_absent(actor=MANAGER, user_id=3, work_date=date(2026, 3, 4))
    service.check_in(actor=EMPLOYEE, user_id=3, now=datetime(2026, 4, 1, 8, 0))

    summary = service.month_summary(actor=EMPLOYEE, user_id=3, year=2026, month=3)

    assert (summary.present, summary.late, summary.absent) == (1, 1, 1)
    assert summary.total_late_minutes == 30
    assert summary.total_overtime_hours == 1.0


def test_month_out_of_range(service):
    with pytest.raises(ValidationError):
        service.list_month(actor=EMPLOYEE, user_id=3, year=2026, month=13)


def test_compute_overtime_is_zero_when_leaving_early():
    assert policy.compute_overtime(datetime(2026, 3, 2, 15, 0), time(16, 0)) == 0.0
    assert policy.compute_overtime(datetime(2026, 3, 2, 16, 20), time(16, 0)) == 0.33


def test_to_ui_formats_entry():
    entry = TimesheetEntry(
        entry_id=1,
        user_id=3,
        work_date=date(2026, 3, 2),
        status=TimesheetStatus.LATE,
        arrived_at=datetime(2026, 3, 2, 8, 40),
        late_minutes=40,
    )
    ui = TimesheetService.to_ui(entry)

    assert ui["date"] == "2026-03-02"
    assert ui["arrived_at"] == "08:40"
    assert ui["left_at"] == "-"
    assert ui["status"] == "Late"
    assert ui["css_class"] == "bg-danger"


def test_branch_roster_lists_every_active_member(service, users_repo):
    service.check_in(actor=EMPLOYEE, user_id=3, now=datetime(2026, 3, 2, 8, 30))
    service.check_in(actor=COLLEAGUE, user_id=4, now=datetime(2026, 3, 3, 8, 0))
    users_repo.add(replace(users_repo.get_by_id(4), is_active=False))

    roster = service.list_branch_day(actor=MANAGER, work_date=date(2026, 3, 2))

    assert [r.user_id for r in roster] == [2, 3]
    assert roster[0].entry is None
    assert roster[1].entry.status == TimesheetStatus.LATE
    assert roster[1].full_name == "Cleo 3"


def test_branch_roster_defaults_to_today(repo, users_repo, audit):
    service = TimesheetService(repo, users_repo, audit, clock=lambda: datetime(2026, 3, 4, 10, 0))
    service.check_in(actor=EMPLOYEE, user_id=3, now=datetime(2026, 3, 4, 7, 50))

    roster = service.list_branch_day(actor=MANAGER, branch_id=1)

    assert {r.user_id: r.entry is not None for r in roster} == {2: False, 3: True, 4: False}


def test_admin_picks_any_branch(service):
    roster = service.list_branch_day(actor=ADMIN, branch_id=2, work_date=date(2026, 3, 2))

    assert [r.user_id for r in roster] == [5, 6]
    with pytest.raises(ValidationError):
        service.list_branch_day(actor=ADMIN, work_date=date(2026, 3, 2))


@pytest.mark.parametrize(
    "actor,branch_id",
    [
        (MANAGER, 2),
        (EMPLOYEE, None),
        (EMPLOYEE, 1),
        (Actor(user_id=9, role=Role.BRANCH_MANAGER, branch_id=None), None),
    ],
)
def test_branch_roster_scoping(service, actor, branch_id):
    with pytest.raises(AuthorizationError):
        service.list_branch_day(actor=actor, branch_id=branch_id, work_date=date(2026, 3, 2))
