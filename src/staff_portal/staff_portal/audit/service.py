from __future__ import annotations

import json
import logging
from typing import Any, Optional, Union

from ..common.pagination import Page, PageRequest
from ..core.enums import AuditAction
from ..core.exceptions import AuthorizationError
from ..users.model import Actor
from .model import AuditLogEntry, AuditRecord
from .repository import AuditLogRepository

logger = logging.getLogger(__name__)


class AuditService:
    """Append-only trail of who changed what."""

    def __init__(self, logs: AuditLogRepository):
        self._logs = logs

    @staticmethod
    def entry(
        *,
        action: AuditAction,
        entity: str,
        entity_id: Optional[int],
        user_id: Optional[int],
        details: Union[str, dict[str, Any], None] = None,
    ) -> AuditRecord:
        """Build a row for a repository to write together with the change it describes."""
        if isinstance(details, dict):
            details = json.dumps(details, default=str, ensure_ascii=False)
        return AuditRecord(action=action, entity=entity, entity_id=entity_id, user_id=user_id, details=details)

    def record(
        self,
        *,
        action: AuditAction,
        entity: str,
        entity_id: Optional[int],
        user_id: Optional[int],
        details: Union[str, dict[str, Any], None] = None,
    ) -> int:
        row = self.entry(action=action, entity=entity, entity_id=entity_id, user_id=user_id, details=details)
        log_id = self._logs.create(
            action=row.action,
            entity=row.entity,
            entity_id=row.entity_id,
            user_id=row.user_id,
            details=row.details,
        )
        logger.debug("audit %s %s#%s by %s", action.value, entity, entity_id, user_id)
        return log_id

    def list_logs(
        self,
        *,
        actor: Actor,
        entity: Optional[str] = None,
        action: Optional[AuditAction] = None,
        user_id: Optional[int] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[AuditLogEntry]:
        if not actor.is_super_admin:
            raise AuthorizationError("Only administrators can read the audit log")

        req = PageRequest(page=page, page_size=page_size)
        items, total = self._logs.search(
            entity=entity or None,
            action=action,
            user_id=user_id,
            search=(search or "").strip() or None,
            limit=req.page_size,
            offset=req.offset,
        )
        return Page(items=items, total=total, page=req.page, page_size=req.page_size)
