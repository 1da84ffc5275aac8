from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import pytest

from src.staff_portal.staff_portal.audit.model import AuditLogEntry
from src.staff_portal.staff_portal.audit.service import AuditService
from src.staff_portal.staff_portal.core.enums import Role
from src.staff_portal.staff_portal.users.model import Branch, User


class FakeUsersRepo:
    def __init__(self, users=()):
        self._users = {u.user_id: u for u in users}

    def add(self, user: User) -> None:
        self._users[user.user_id] = user

    def get_by_id(self, user_id):
        return self._users.get(int(user_id))

    def get_by_username(self, username):
        return next((u for u in self._users.values() if u.username == username), None)

    def get_by_email(self, email):
        return next((u for u in self._users.values() if u.email == email), None)

    def list_by_branch(self, branch_id, *, active_only=True):
        members = [u for u in self._users.values() if u.branch_id == branch_id and (u.is_active or not active_only)]
        return sorted(members, key=lambda u: (u.last_name, u.first_name))

    def list_by_branch_and_role(self, *, branch_id, role, active_only=True):
        return [
            u
            for u in self._users.values()
            if u.branch_id == branch_id and u.role == role and (u.is_active or not active_only)
        ]

    def count_active(self, *, branch_id=None):
        return sum(1 for u in self._users.values() if u.is_active and (branch_id is None or u.branch_id == branch_id))

    def create_user(self, *, first_name, last_name, email, username, password_hash, role, branch_id):
        user_id = max(self._users, default=0) + 1
        self._users[user_id] = User(
            user_id=user_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            username=username,
            password_hash=password_hash,
            role=role,
            branch_id=branch_id,
        )
        return user_id

    def update_user(self, user_id, *, first_name, last_name, email, username, role, branch_id, password_hash=None):
        user = self._users.get(int(user_id))
        if not user:
            return False
        self._users[user.user_id] = replace(
            user,
            first_name=first_name,
            last_name=last_name,
            email=email,
            username=username,
            role=role,
            branch_id=branch_id,
            password_hash=password_hash or user.password_hash,
        )
        return True

    def set_active(self, user_id, *, is_active):
        user = self._users.get(int(user_id))
        if not user:
            return False
        self._users[user.user_id] = replace(user, is_active=is_active)
        return True

    def list_admin_view(self):
        return [
            {
                "user_id": u.user_id,
                "full_name": u.full_name,
                "username": u.username,
                "email": u.email,
                "role": u.role.value,
                "branch_name": "-",
                "is_active": u.is_active,
            }
            for u in self._users.values()
        ]


class FakeBranchesRepo:
    def __init__(self, branches=()):
        self._branches = {b.branch_id: b for b in branches}

    def get_by_id(self, branch_id):
        return self._branches.get(int(branch_id))

    def get_by_code(self, code):
        return next((b for b in self._branches.values() if b.code == code), None)

    def list_all(self, *, active_only=False):
        return [b for b in self._branches.values() if b.is_active or not active_only]

    def create(self, *, name, code):
        branch_id = max(self._branches, default=0) + 1
        self._branches[branch_id] = Branch(branch_id=branch_id, name=name, code=code)
        return branch_id

    def update(self, branch_id, *, name, code):
        branch = self._branches.get(int(branch_id))
        if not branch:
            return False
        self._branches[branch.branch_id] = replace(branch, name=name, code=code)
        return True

    def set_active(self, branch_id, *, is_active):
        branch = self._branches.get(int(branch_id))
        if not branch or branch.is_active == is_active:
            return False
        self._branches[branch.branch_id] = replace(branch, is_active=is_active)
        return True


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, *, user_id, notification_type, title, message, link=None):
        self.sent.append(
            {"user_id": user_id, "type": notification_type, "title": title, "message": message, "link": link}
        )

    def recipients(self, notification_type=None):
        return [n["user_id"] for n in self.sent if notification_type is None or n["type"] == notification_type]


class FakeAuditRepo:
    def __init__(self):
        self.entries: list[AuditLogEntry] = []

    def create(self, *, action, entity, entity_id, user_id, details):
        log_id = len(self.entries) + 1
        self.entries.append(
            AuditLogEntry(
                log_id=log_id,
                action=action,
                entity=entity,
                entity_id=entity_id,
                user_id=user_id,
                details=details,
                created_at=datetime(2026, 3, 2, 9, 0, 0),
            )
        )
        return log_id

    def search(self, *, entity=None, action=None, user_id=None, search=None, limit=20, offset=0):
        rows = [
            e
            for e in reversed(self.entries)
            if (entity is None or e.entity == entity)
            and (action is None or e.action == action)
            and (user_id is None or e.user_id == user_id)
            and (search is None or search in (e.details or ""))
        ]
        return rows[offset : offset + limit], len(rows)


def make_user(user_id, role, branch_id=1, first_name="User", last_name=None, **kwargs):
    return User(
        user_id=user_id,
        first_name=first_name,
        last_name=last_name or str(user_id),
        email=f"user{user_id}@example.com",
        username=f"user{user_id}",
        password_hash="x",
        role=role,
        branch_id=branch_id,
        **kwargs,
    )


@pytest.fixture
def users_repo():
    return FakeUsersRepo(
        [
            make_user(1, Role.SUPER_ADMIN, branch_id=None, first_name="Ada"),
            make_user(2, Role.BRANCH_MANAGER, branch_id=1, first_name="Bram"),
            make_user(3, Role.CAREGIVER, branch_id=1, first_name="Cleo"),
            make_user(4, Role.ADMINISTRATIVE, branch_id=1, first_name="Dina"),
            make_user(5, Role.BRANCH_MANAGER, branch_id=2, first_name="Emil"),
            make_user(6, Role.CAREGIVER, branch_id=2, first_name="Fay"),
        ]
    )


@pytest.fixture
def branches_repo():
    return FakeBranchesRepo([Branch(1, "North", "NORTH"), Branch(2, "South", "SOUTH")])


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def audit_repo():
    return FakeAuditRepo()


@pytest.fixture
def audit(audit_repo):
    return AuditService(audit_repo)
