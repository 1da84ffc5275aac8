from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import Branch, User


class UserRepository(Protocol):
    """Repository interface for User.

    Services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def list_by_branch(self, branch_id: int, *, active_only: bool = True) -> Sequence[User]:
        """Members of a branch ordered by last then first name."""

        raise NotImplementedError

    def list_by_branch_and_role(self, *, branch_id: int, role: Role, active_only: bool = True) -> Sequence[User]:
        raise NotImplementedError

    def count_active(self, *, branch_id: Optional[int] = None) -> int:
        raise NotImplementedError

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
        raise NotImplementedError

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
        """Overwrite the profile; the password only changes when `password_hash` is given."""

        raise NotImplementedError

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        raise NotImplementedError

    def list_admin_view(self) -> Sequence[dict]:
        raise NotImplementedError


class BranchRepository(Protocol):
    def get_by_id(self, branch_id: int) -> Optional[Branch]:
        raise NotImplementedError

    def get_by_code(self, code: str) -> Optional[Branch]:
        raise NotImplementedError

    def list_all(self, *, active_only: bool = False) -> Sequence[Branch]:
        raise NotImplementedError

    def create(self, *, name: str, code: str) -> int:
        raise NotImplementedError

    def update(self, branch_id: int, *, name: str, code: str) -> bool:
        raise NotImplementedError

    def set_active(self, branch_id: int, *, is_active: bool) -> bool:
        raise NotImplementedError
