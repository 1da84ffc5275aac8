from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import AuditAction
from .model import AuditLogEntry


class AuditLogRepository(Protocol):
    def create(
        self,
        *,
        action: AuditAction,
        entity: str,
        entity_id: Optional[int],
        user_id: Optional[int],
        details: Optional[str],
    ) -> int:
        raise NotImplementedError

    def search(
        self,
        *,
        entity: Optional[str] = None,
        action: Optional[AuditAction] = None,
        user_id: Optional[int] = None,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[Sequence[AuditLogEntry], int]:
        """Return one page of entries (newest first) and the total match count."""

        raise NotImplementedError
