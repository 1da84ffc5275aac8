from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..activities.model import HistoryEntry
from ..core.enums import RecommendationStatus

TERMINAL_STATUSES = frozenset({RecommendationStatus.RESOLVED, RecommendationStatus.CANCELLED})


def is_terminal(status: RecommendationStatus) -> bool:
    return status in TERMINAL_STATUSES


def compute_status(due_date: datetime, current: RecommendationStatus, now: datetime) -> RecommendationStatus:
    if is_terminal(current):
        return current
    if now > due_date:
        return RecommendationStatus.LATE
    return current


def should_flag_late(due_date: datetime, status: RecommendationStatus, now: datetime) -> bool:
    if is_terminal(status) or status == RecommendationStatus.LATE:
        return False
    return now > due_date


def build_history_entry(
    old: RecommendationStatus,
    new: RecommendationStatus,
    changed_by: Optional[int],
    comment: Optional[str] = None,
) -> HistoryEntry:
    return HistoryEntry(old_status=old.value, new_status=new.value, changed_by=changed_by, comment=comment)
