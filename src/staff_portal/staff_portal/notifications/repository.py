from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import NotificationType
from .model import Notification


class NotificationRepository(Protocol):
    def create(
        self,
        *,
        user_id: int,
        notification_type: NotificationType,
        title: str,
        message: str,
        link: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def get_by_id(self, notification_id: int) -> Optional[Notification]:
        raise NotImplementedError

    def list_for_user(self, *, user_id: int, limit: int, offset: int = 0) -> Sequence[Notification]:
        raise NotImplementedError

    def count_for_user(self, *, user_id: int, unread_only: bool = False) -> int:
        raise NotImplementedError

    def mark_read(self, notification_id: int) -> bool:
        raise NotImplementedError

    def mark_all_read(self, *, user_id: int) -> int:
        raise NotImplementedError
