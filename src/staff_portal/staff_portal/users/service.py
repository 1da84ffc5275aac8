from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..audit.service import AuditService
from ..common.validators import require_min_length, require_non_empty
from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.enums import AuditAction, Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from .model import Actor, Branch, User
from .repository import BranchRepository, UserRepository

logger = logging.getLogger(__name__)

ENTITY_USER = "User"
ENTITY_BRANCH = "Branch"


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    full_name: str
    role: Role
    branch_id: Optional[int]
    branch_name: Optional[str]

    def to_actor(self) -> Actor:
        return Actor(user_id=self.user_id, role=self.role, branch_id=self.branch_id)


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository, branches: BranchRepository):
        self._users = users
        self._branches = branches

    def authenticate(self, username: str, password: str) -> SessionUser:
        user = self._users.get_by_username((username or "").strip())
        if not user or not user.is_active:
            raise AuthenticationError("Invalid username or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # placeholder hashes like 'CHANGE_ME'
            ok = False

        if not ok:
            logger.warning("Failed login for %s", user.username)
            raise AuthenticationError("Invalid username or password")

        branch = self._branches.get_by_id(user.branch_id) if user.branch_id else None
        return SessionUser(
            user_id=user.user_id,
            full_name=user.full_name,
            role=user.role,
            branch_id=user.branch_id,
            branch_name=branch.name if branch else None,
        )


class UserService:
    """Use case: manage accounts.

    Super admins manage every account. Branch managers may read and edit the
    accounts of their own branch but cannot promote anyone or move them out.
    """

    def __init__(self, users: UserRepository, branches: BranchRepository, audit: AuditService):
        self._users = users
        self._branches = branches
        self._audit = audit

    def _get_or_raise(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        return user

    def _active_branch(self, branch_id: Optional[int]) -> Optional[int]:
        if not branch_id:
            return None
        branch = self._branches.get_by_id(int(branch_id))
        if not branch:
            raise NotFoundError("Branch not found")
        if not branch.is_active:
            raise ValidationError(f'Branch "{branch.name}" is no longer active')
        return branch.branch_id

    def _clean_profile(self, *, first_name, last_name, email, username, role: Role, branch_id) -> dict:
        email = require_non_empty(email, "Email").lower()
        if "@" not in email:
            raise ValidationError("Email is invalid")
        if role == Role.BRANCH_MANAGER and not branch_id:
            raise ValidationError("A branch manager must belong to a branch")
        return {
            "first_name": require_non_empty(first_name, "First name"),
            "last_name": require_non_empty(last_name, "Last name"),
            "email": email,
            "username": require_non_empty(username, "Username"),
            "role": role,
            "branch_id": self._active_branch(branch_id),
        }

    def _ensure_unique(self, *, email: str, username: str, exclude_user_id: Optional[int] = None) -> None:
        for other in (self._users.get_by_username(username), self._users.get_by_email(email)):
            if other and other.user_id != exclude_user_id:
                raise ValidationError("A user with this email or username already exists")

    def create_account(
        self,
        *,
        actor: Actor,
        first_name: str,
        last_name: str,
        email: str,
        username: str,
        password: str,
        role: Role,
        branch_id: Optional[int] = None,
    ) -> int:
        if not actor.is_super_admin:
            raise AuthorizationError("You are not allowed to create accounts")

        profile = self._clean_profile(
            first_name=first_name, last_name=last_name, email=email, username=username, role=role, branch_id=branch_id
        )
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)
        self._ensure_unique(email=profile["email"], username=profile["username"])

        user_id = self._users.create_user(password_hash=generate_password_hash(password), **profile)
        self._audit.record(
            action=AuditAction.CREATE,
            entity=ENTITY_USER,
            entity_id=user_id,
            user_id=actor.user_id,
            details={"username": profile["username"], "role": role.value, "branch_id": profile["branch_id"]},
        )
        logger.info("Account %s created (role=%s) by user %s", profile["username"], role.value, actor.user_id)
        return user_id

    def get_account(self, *, actor: Actor, user_id: int) -> User:
        user = self._get_or_raise(user_id)
        if actor.is_super_admin or actor.user_id == user.user_id:
            return user
        if actor.role == Role.BRANCH_MANAGER and actor.branch_id is not None and user.branch_id == actor.branch_id:
            return user
        raise AuthorizationError("You cannot view this account")

    def update_account(
        self,
        *,
        actor: Actor,
        user_id: int,
        first_name: str,
        last_name: str,
        email: str,
        username: str,
        role: Role,
        branch_id: Optional[int] = None,
        password: Optional[str] = None,
    ) -> User:
        """Edit a profile. A blank password keeps the current one."""
        if not actor.is_manager:
            raise AuthorizationError("You are not allowed to change accounts")
        user = self._get_or_raise(user_id)

        if not actor.is_super_admin:
            if actor.branch_id is None or user.branch_id != actor.branch_id:
                raise AuthorizationError("You can only edit accounts of your own branch")
            if role == Role.SUPER_ADMIN or branch_id != actor.branch_id:
                raise AuthorizationError("Only an administrator can promote an account or move it to another branch")
        if user.user_id == actor.user_id and role != user.role:
            raise ValidationError("You cannot change your own account type")

        profile = self._clean_profile(
            first_name=first_name, last_name=last_name, email=email, username=username, role=role, branch_id=branch_id
        )
        self._ensure_unique(email=profile["email"], username=profile["username"], exclude_user_id=user.user_id)

        password_hash = None
        if password:
            require_min_length(password, "Password", MIN_PASSWORD_LENGTH)
            password_hash = generate_password_hash(password)

        self._users.update_user(user.user_id, password_hash=password_hash, **profile)
        self._audit.record(
            action=AuditAction.UPDATE,
            entity=ENTITY_USER,
            entity_id=user.user_id,
            user_id=actor.user_id,
            details={
                "username": profile["username"],
                "email": profile["email"],
                "role": role.value,
                "branch_id": profile["branch_id"],
                "password_changed": password_hash is not None,
            },
        )
        logger.info("Account %s updated by user %s", user.user_id, actor.user_id)
        return self._get_or_raise(user.user_id)

    def set_active(self, *, actor: Actor, user_id: int, is_active: bool) -> None:
        if not actor.is_super_admin:
            raise AuthorizationError("You are not allowed to change accounts")
        if int(user_id) == actor.user_id and not is_active:
            raise ValidationError("You cannot deactivate your own account")

        user = self._get_or_raise(user_id)
        self._users.set_active(user.user_id, is_active=is_active)
        self._audit.record(
            action=AuditAction.STATUS_CHANGE,
            entity=ENTITY_USER,
            entity_id=user.user_id,
            user_id=actor.user_id,
            details="Account enabled" if is_active else "Account disabled",
        )

    def list_admin_view(self):
        return self._users.list_admin_view()


class BranchService:
    def __init__(self, branches: BranchRepository, audit: AuditService):
        self._branches = branches
        self._audit = audit

    @staticmethod
    def _require_admin(actor: Actor) -> None:
        if not actor.is_super_admin:
            raise AuthorizationError("Only administrators can manage branches")

    def _clean(self, name: str, code: str, *, exclude_branch_id: Optional[int] = None) -> tuple[str, str]:
        name = require_min_length(name, "Branch name", 2)
        code = require_min_length(code, "Branch code", 2).upper()
        other = self._branches.get_by_code(code)
        if other and other.branch_id != exclude_branch_id:
            raise ValidationError("A branch with this code already exists")
        return name, code

    def _get_or_raise(self, branch_id: int) -> Branch:
        branch = self._branches.get_by_id(int(branch_id))
        if not branch:
            raise NotFoundError("Branch not found")
        return branch

    def create_branch(self, *, actor: Actor, name: str, code: str) -> int:
        self._require_admin(actor)
        name, code = self._clean(name, code)
        branch_id = self._branches.create(name=name, code=code)
        self._audit.record(
            action=AuditAction.CREATE,
            entity=ENTITY_BRANCH,
            entity_id=branch_id,
            user_id=actor.user_id,
            details={"name": name, "code": code},
        )
        return branch_id

    def update_branch(self, *, actor: Actor, branch_id: int, name: str, code: str) -> Branch:
        self._require_admin(actor)
        branch = self._get_or_raise(branch_id)
        name, code = self._clean(name, code, exclude_branch_id=branch.branch_id)

        self._branches.update(branch.branch_id, name=name, code=code)
        self._audit.record(
            action=AuditAction.UPDATE,
            entity=ENTITY_BRANCH,
            entity_id=branch.branch_id,
            user_id=actor.user_id,
            details={"name": name, "code": code},
        )
        logger.info("Branch %s renamed to %s (%s)", branch.branch_id, name, code)
        return replace(branch, name=name, code=code)

    def deactivate_branch(self, *, actor: Actor, branch_id: int) -> None:
        """Soft delete: the branch keeps its history but no longer accepts new members."""
        self._require_admin(actor)
        branch = self._get_or_raise(branch_id)
        if not branch.is_active:
            raise InvalidStateError("This branch is already inactive")

        if not self._branches.set_active(branch.branch_id, is_active=False):
            raise InvalidStateError("This branch is already inactive")
        self._audit.record(
            action=AuditAction.DELETE,
            entity=ENTITY_BRANCH,
            entity_id=branch.branch_id,
            user_id=actor.user_id,
            details=f"Branch {branch.code} deactivated",
        )
        logger.info("Branch %s deactivated by %s", branch.branch_id, actor.user_id)

    def list_branches(self, *, active_only: bool = False):
        return self._branches.list_all(active_only=active_only)
