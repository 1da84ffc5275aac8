from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional

from ..core.enums import Role

MANAGER_ROLES = frozenset({Role.SUPER_ADMIN, Role.BRANCH_MANAGER})


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Plain data object, no database access code.
    """

    user_id: int
    first_name: str
    last_name: str
    email: str
    username: str
    password_hash: str
    role: Role
    branch_id: Optional[int]
    is_active: bool = True
    work_start: Optional[time] = None
    work_end: Optional[time] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Branch:
    branch_id: int
    name: str
    code: str
    is_active: bool = True


@dataclass(frozen=True)
class Actor:
    """Who is performing a use case. Passed explicitly into every service call."""

    user_id: int
    role: Role
    branch_id: Optional[int] = None

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN
