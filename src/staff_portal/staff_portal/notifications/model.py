from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import NotificationType


@dataclass(frozen=True)
class Notification:
    notification_id: int
    user_id: int
    notification_type: NotificationType
    title: str
    message: str
    created_at: datetime
    link: Optional[str] = None
    is_read: bool = False
