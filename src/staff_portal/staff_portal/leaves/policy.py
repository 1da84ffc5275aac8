"""Pure leave rules: business days, approval tiers, cancellation, balance.

Nothing in here touches storage, so every rule can be tested on its own.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable

from ..common.datetime_utils import as_date
from ..core.enums import LeaveStatus, LeaveType, Role
from .model import LeaveBalance, LeaveRequest

TERMINAL_STATUSES = frozenset({LeaveStatus.TIER2_APPROVED, LeaveStatus.REJECTED, LeaveStatus.CANCELLED})
APPROVED_STATUSES = frozenset({LeaveStatus.TIER1_APPROVED, LeaveStatus.TIER2_APPROVED})
PENDING_STATUSES = frozenset({LeaveStatus.DRAFT, LeaveStatus.SUBMITTED})
REJECTABLE_STATUSES = frozenset({LeaveStatus.SUBMITTED, LeaveStatus.TIER1_APPROVED})
OWNER_CANCELLABLE_STATUSES = frozenset({LeaveStatus.DRAFT, LeaveStatus.SUBMITTED})

_APPROVABLE_BY_ROLE = {
    Role.BRANCH_MANAGER: frozenset({LeaveStatus.SUBMITTED}),
    Role.SUPER_ADMIN: frozenset({LeaveStatus.SUBMITTED, LeaveStatus.TIER1_APPROVED}),
}


def count_business_days(start: date | datetime, end: date | datetime) -> int:
    """Monday-Friday days in the inclusive range, 0 when end precedes start."""
    start_d = as_date(start)
    end_d = as_date(end)
    if end_d < start_d:
        return 0

    total_days = (end_d - start_d).days + 1
    full_weeks, rest = divmod(total_days, 7)
    count = full_weeks * 5
    for offset in range(rest):
        if (start_d + timedelta(days=offset)).weekday() < 5:
            count += 1
    return count


def is_manager(role: Role) -> bool:
    return role in _APPROVABLE_BY_ROLE


def is_terminal(status: LeaveStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_approve(approver_role: Role, current_status: LeaveStatus) -> bool:
    """Branch managers approve submitted requests; super admins also approve tier-1 approved ones."""
    return current_status in _APPROVABLE_BY_ROLE.get(approver_role, frozenset())


def next_approval_status(approver_role: Role) -> LeaveStatus:
    """Status reached after `approver_role` approves.

    A super admin acting on a SUBMITTED request jumps straight to
    TIER2_APPROVED: the branch-manager step is optional when an
    administrator acts first.
    """
    if approver_role == Role.BRANCH_MANAGER:
        return LeaveStatus.TIER1_APPROVED
    if approver_role == Role.SUPER_ADMIN:
        return LeaveStatus.TIER2_APPROVED
    raise ValueError(f"{approver_role!r} is not an approver role")


def can_reject(current_status: LeaveStatus) -> bool:
    return current_status in REJECTABLE_STATUSES


def can_cancel(current_status: LeaveStatus, *, is_owner: bool, is_manager: bool) -> bool:
    if is_manager:
        return not is_terminal(current_status)
    if is_owner:
        return current_status in OWNER_CANCELLABLE_STATUSES
    return False


def compute_balance(requests: Iterable[LeaveRequest], *, year: int, total: int) -> LeaveBalance:
    """Annual leave consumed and pending for requests starting in `year`."""
    used = 0
    pending = 0
    for r in requests:
        if r.leave_type != LeaveType.ANNUAL or r.start_date.year != year:
            continue
        if r.status in APPROVED_STATUSES:
            used += r.business_days
        elif r.status in PENDING_STATUSES:
            pending += r.business_days

    return LeaveBalance(
        year=year,
        total=total,
        used=used,
        pending=pending,
        remaining=max(0, total - used),
    )
