from __future__ import annotations

import logging
from typing import Optional

from ..common.pagination import Page, PageRequest
from ..core.enums import NotificationType
from ..core.exceptions import NotFoundError
from .model import Notification
from .notifier import Notifier
from .repository import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationService(Notifier):
    """In-app notifications stored per user."""

    def __init__(self, notifications: NotificationRepository):
        self._notifications = notifications

    def notify(
        self,
        *,
        user_id: int,
        notification_type: NotificationType,
        title: str,
        message: str,
        link: Optional[str] = None,
    ) -> None:
        self._notifications.create(
            user_id=int(user_id),
            notification_type=notification_type,
            title=title,
            message=message,
            link=link,
        )
        logger.debug("Notified user %s: %s", user_id, notification_type.value)

    def unread_count(self, user_id: int) -> int:
        return self._notifications.count_for_user(user_id=int(user_id), unread_only=True)

    def list_for_user(self, user_id: int, *, page: int = 1, page_size: int = 20) -> Page[Notification]:
        req = PageRequest(page=page, page_size=page_size)
        items = self._notifications.list_for_user(user_id=int(user_id), limit=req.page_size, offset=req.offset)
        total = self._notifications.count_for_user(user_id=int(user_id))
        return Page(items=items, total=total, page=req.page, page_size=req.page_size)

    def mark_as_read(self, *, user_id: int, notification_id: int) -> None:
        n = self._notifications.get_by_id(int(notification_id))
        # other users' notifications are reported as missing
        if not n or n.user_id != int(user_id):
            raise NotFoundError("Notification not found")
        if not n.is_read:
            self._notifications.mark_read(n.notification_id)

    def mark_all_as_read(self, user_id: int) -> int:
        return self._notifications.mark_all_read(user_id=int(user_id))
