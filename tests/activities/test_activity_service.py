from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import pytest

from src.staff_portal.staff_portal.activities import policy
from src.staff_portal.staff_portal.activities.model import Activity, BranchAssignment, NewActivity
from src.staff_portal.staff_portal.activities.service import ActivityService
from src.staff_portal.staff_portal.core.enums import (
    ActivityKind,
    ActivityStatus,
    AuditAction,
    Frequency,
    NotificationType,
    Role,
)
from src.staff_portal.staff_portal.core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from src.staff_portal.staff_portal.users.model import Actor

NOW = datetime(2026, 3, 10, 12, 0, 0)

ADMIN = Actor(user_id=1, role=Role.SUPER_ADMIN)
NORTH_MANAGER = Actor(user_id=2, role=Role.BRANCH_MANAGER, branch_id=1)
SOUTH_MANAGER = Actor(user_id=5, role=Role.BRANCH_MANAGER, branch_id=2)
EMPLOYEE = Actor(user_id=3, role=Role.CAREGIVER, branch_id=1)


class FakeActivityRepo:
    def __init__(self):
        self._next_id = 1
        self.rows: dict[int, Activity] = {}
        self.history: dict[int, list] = {}

    def create(self, *, data, created_by, history):
        activity_id = self._next_id
        self._next_id += 1
        self.rows[activity_id] = Activity(
            activity_id=activity_id,
            title=data.title,
            kind=data.kind,
            status=ActivityStatus.PLANNED,
            created_by=created_by,
            description=data.description,
            frequency=data.frequency,
            start_date=data.start_date,
            end_date=data.end_date,
            budget=data.budget,
            assignments=tuple(data.assignments),
        )
        self.history[activity_id] = [history]
        return activity_id

    def get_by_id(self, activity_id):
        return self.rows.get(int(activity_id))

    def list_history(self, activity_id):
        return list(self.history.get(activity_id, []))

    def change_status(self, *, activity_id, expected_status, history, completed_at=None):
        row = self.rows.get(activity_id)
        if not row or row.status != expected_status:
            return False
        self.rows[activity_id] = replace(
            row, status=ActivityStatus(history.new_status), completed_at=completed_at or row.completed_at
        )
        self.history[activity_id].append(history)
        return True

    def delete(self, activity_id):
        self.rows.pop(activity_id, None)
        self.history.pop(activity_id, None)

    def search(self, *, status=None, search=None, branch_id=None, limit=20, offset=0):
        rows = [
            a
            for a in self.rows.values()
            if (status is None or a.status == status)
            and (search is None or search.lower() in a.title.lower())
            and (branch_id is None or any(x.branch_id == branch_id for x in a.assignments))
        ]
        return rows[offset : offset + limit], len(rows)

    def list_overdue(self, *, now):
        return [
            a
            for a in self.rows.values()
            if a.end_date and a.end_date < now
            and a.status not in (ActivityStatus.DONE, ActivityStatus.CANCELLED, ActivityStatus.LATE)
        ]

    def count_by_status(self, *, branch_id=None):
        counts: dict[str, int] = {}
        for a in self.search(branch_id=branch_id, limit=1000)[0]:
            counts[a.status.value] = counts.get(a.status.value, 0) + 1
        return counts


@pytest.fixture
def repo():
    return FakeActivityRepo()


@pytest.fixture
def service(repo, notifier, audit):
    return ActivityService(repo, notifier, audit, clock=lambda: NOW)


def _new(**kwargs):
    data = dict(
        title="Fire drill",
        kind=ActivityKind.ONE_OFF,
        start_date=datetime(2026, 3, 1, 9, 0),
        end_date=datetime(2026, 3, 20, 17, 0),
        assignments=[BranchAssignment(branch_id=1, manager_id=2), BranchAssignment(branch_id=2, manager_id=5)],
    )
    data.update(kwargs)
    return NewActivity(**data)


def test_create_records_history_and_notifies_managers(service, repo, notifier, audit_repo):
    activity_id = service.create(actor=ADMIN, new_activity=_new(title="  Fire drill  "))

    activity = repo.rows[activity_id]
    assert activity.status == ActivityStatus.PLANNED
    assert activity.title == "Fire drill"
    assert repo.history[activity_id][0].comment == "Activity created"
    assert notifier.recipients(NotificationType.ACTIVITY_ASSIGNED) == [2, 5]
    assert audit_repo.entries[-1].action == AuditAction.CREATE


def test_employee_cannot_create(service):
    with pytest.raises(AuthorizationError):
        service.create(actor=EMPLOYEE, new_activity=_new())


@pytest.mark.parametrize(
    "overrides",
    [
        {"title": "ab"},
        {"start_date": None},
        {"end_date": None},
        {"end_date": datetime(2026, 3, 1, 9, 0)},
        {"budget": 0.0},
        {"assignments": []},
        {"assignments": [BranchAssignment(1, 2), BranchAssignment(1, 5)]},
        {"kind": ActivityKind.PERIODIC, "frequency": None},
    ],
)
def test_create_validation(service, overrides):
    with pytest.raises(ValidationError):
        service.create(actor=ADMIN, new_activity=_new(**overrides))


def test_periodic_activity_needs_no_dates(service, repo):
    activity_id = service.create(
        actor=NORTH_MANAGER,
        new_activity=_new(kind=ActivityKind.PERIODIC, frequency=Frequency.MONTHLY, start_date=None, end_date=None),
    )
    assert repo.rows[activity_id].frequency == Frequency.MONTHLY


def test_done_stamps_completion_and_locks_status(service):
    activity_id = service.create(actor=ADMIN, new_activity=_new())

    done = service.update_status(actor=NORTH_MANAGER, activity_id=activity_id, new_status=ActivityStatus.DONE)
    assert done.status == ActivityStatus.DONE
    assert done.completed_at == NOW

    with pytest.raises(InvalidStateError):
        service.update_status(actor=ADMIN, activity_id=activity_id, new_status=ActivityStatus.IN_PROGRESS)


def test_same_status_is_refused(service):
    activity_id = service.create(actor=ADMIN, new_activity=_new())
    with pytest.raises(ValidationError):
        service.update_status(actor=ADMIN, activity_id=activity_id, new_status=ActivityStatus.PLANNED)


def test_manual_late_notifies_branch_managers(service, notifier):
    activity_id = service.create(actor=ADMIN, new_activity=_new())
    service.update_status(actor=ADMIN, activity_id=activity_id, new_status=ActivityStatus.LATE, comment="stalled")

    assert notifier.recipients(NotificationType.ACTIVITY_LATE) == [2, 5]


def test_update_unknown_activity(service):
    with pytest.raises(NotFoundError):
        service.update_status(actor=ADMIN, activity_id=42, new_status=ActivityStatus.DONE)


def test_delete_is_super_admin_only(service, repo):
    activity_id = service.create(actor=ADMIN, new_activity=_new())
    with pytest.raises(AuthorizationError):
        service.delete(actor=NORTH_MANAGER, activity_id=activity_id)

    service.delete(actor=ADMIN, activity_id=activity_id)
    assert activity_id not in repo.rows


def test_branch_manager_only_sees_own_branch(service):
    service.create(actor=ADMIN, new_activity=_new(title="Both branches"))
    south_only = service.create(
        actor=ADMIN, new_activity=_new(title="South only", assignments=[BranchAssignment(2, 5)])
    )

    page = service.list_activities(actor=NORTH_MANAGER)
    assert [a.title for a in page.items] == ["Both branches"]
    assert service.list_activities(actor=ADMIN).total == 2

    with pytest.raises(AuthorizationError):
        service.get_detail(actor=NORTH_MANAGER, activity_id=south_only)
    assert service.get_detail(actor=SOUTH_MANAGER, activity_id=south_only).activity.title == "South only"


def test_manager_without_branch_is_refused(service):
    with pytest.raises(AuthorizationError):
        service.list_activities(actor=Actor(user_id=9, role=Role.BRANCH_MANAGER))


def test_detect_late_flags_overdue_once(service, repo, notifier):
    overdue = service.create(actor=ADMIN, new_activity=_new(end_date=datetime(2026, 3, 5, 17, 0)))
    service.create(actor=ADMIN, new_activity=_new(title="Upcoming"))

    assert service.detect_late() == 1
    assert repo.rows[overdue].status == ActivityStatus.LATE
    last = repo.history[overdue][-1]
    assert last.changed_by is None
    assert last.comment == "Automatic late detection"
    assert notifier.recipients(NotificationType.ACTIVITY_LATE) == [2, 5]

    assert service.detect_late() == 0


def test_compute_status():
    end = datetime(2026, 3, 5)
    assert policy.compute_status(end, ActivityStatus.IN_PROGRESS, NOW) == ActivityStatus.LATE
    assert policy.compute_status(end, ActivityStatus.DONE, NOW) == ActivityStatus.DONE
    assert policy.compute_status(None, ActivityStatus.PLANNED, NOW) == ActivityStatus.PLANNED
    assert policy.compute_status(datetime(2026, 4, 1), ActivityStatus.PLANNED, NOW) == ActivityStatus.PLANNED
