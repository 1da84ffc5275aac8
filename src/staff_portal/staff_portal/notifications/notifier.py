from __future__ import annotations

from typing import Optional, Protocol

from ..core.enums import NotificationType


class Notifier(Protocol):
    """Delivers a message to one user. Services only know this capability."""

    def notify(
        self,
        *,
        user_id: int,
        notification_type: NotificationType,
        title: str,
        message: str,
        link: Optional[str] = None,
    ) -> None:
        raise NotImplementedError
