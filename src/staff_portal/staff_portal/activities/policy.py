from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..core.enums import ActivityStatus
from .model import HistoryEntry

TERMINAL_STATUSES = frozenset({ActivityStatus.DONE, ActivityStatus.CANCELLED})


def is_terminal(status: ActivityStatus) -> bool:
    return status in TERMINAL_STATUSES


def compute_status(end_date: Optional[datetime], current: ActivityStatus, now: datetime) -> ActivityStatus:
    """LATE once the end date has passed, unless the activity is finished."""
    if end_date is None:
        return current
    if now > end_date and not is_terminal(current):
        return ActivityStatus.LATE
    return current


def should_flag_late(end_date: Optional[datetime], status: ActivityStatus, now: datetime) -> bool:
    if end_date is None:
        return False
    return now > end_date and not is_terminal(status) and status != ActivityStatus.LATE


def build_history_entry(
    old: ActivityStatus,
    new: ActivityStatus,
    changed_by: Optional[int],
    comment: Optional[str] = None,
) -> HistoryEntry:
    return HistoryEntry(old_status=old.value, new_status=new.value, changed_by=changed_by, comment=comment)
