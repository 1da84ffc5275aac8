from __future__ import annotations

from datetime import date, datetime
from typing import Collection, Optional, Protocol, Sequence

from ..audit.model import AuditRecord
from ..core.enums import LeaveStatus, LeaveType
from .model import LeaveRequest, LeaveRequestView


class LeaveRequestRepository(Protocol):
    """Storage for leave requests.

    Status changes are compare-and-set: they only apply while the stored
    status still equals `expected_status` and report whether a row changed.
    Every write also stores its `audit` row in the same transaction; if
    either insert fails, neither is kept.
    """

    def create(
        self,
        *,
        user_id: int,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        business_days: int,
        reason: str,
        audit: AuditRecord,
    ) -> int:
        raise NotImplementedError

    def get_by_id(self, request_id: int) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def update_status(
        self, *, request_id: int, expected_status: LeaveStatus, status: LeaveStatus, audit: AuditRecord
    ) -> bool:
        raise NotImplementedError

    def decide(
        self,
        *,
        request_id: int,
        expected_status: LeaveStatus,
        status: LeaveStatus,
        approver_id: int,
        approved_at: datetime,
        approver_comment: Optional[str],
        audit: AuditRecord,
    ) -> bool:
        """Record an approval or a rejection."""

        raise NotImplementedError

    def find_for_user(
        self,
        *,
        user_id: int,
        year: Optional[int] = None,
        leave_type: Optional[LeaveType] = None,
    ) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def list_for_user(
        self,
        *,
        user_id: int,
        year: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[Sequence[LeaveRequestView], int]:
        raise NotImplementedError

    def list_by_statuses(
        self,
        *,
        statuses: Collection[LeaveStatus],
        branch_id: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[Sequence[LeaveRequestView], int]:
        raise NotImplementedError
