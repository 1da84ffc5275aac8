from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import LeaveStatus, LeaveType


@dataclass(frozen=True)
class LeaveRequest:
    """One employee's request for time off.

    `business_days` is computed from the date range when the request is
    created and never edited afterwards.
    """

    request_id: int
    user_id: int
    leave_type: LeaveType
    status: LeaveStatus
    start_date: date
    end_date: date
    business_days: int
    reason: str
    created_at: datetime
    approver_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    approver_comment: Optional[str] = None


@dataclass(frozen=True)
class LeaveRequestView:
    """Read-model for listings (request joined with people and branch)."""

    request: LeaveRequest
    requester_name: str
    branch_name: Optional[str] = None
    approver_name: Optional[str] = None


@dataclass(frozen=True)
class LeaveBalance:
    """Per-employee, per-year aggregate of annual leave. Derived, not stored."""

    year: int
    total: int
    used: int
    pending: int
    remaining: int
