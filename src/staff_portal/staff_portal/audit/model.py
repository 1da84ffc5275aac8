from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import AuditAction


@dataclass(frozen=True)
class AuditLogEntry:
    log_id: int
    action: AuditAction
    entity: str
    entity_id: Optional[int]
    user_id: Optional[int]
    details: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class AuditRecord:
    """An audit row not yet written, handed to repositories that store it in their own transaction."""

    action: AuditAction
    entity: str
    entity_id: Optional[int]
    user_id: Optional[int]
    details: Optional[str] = None
