from __future__ import annotations

from datetime import datetime, time
from typing import Iterable

from ..core.enums import TimesheetStatus
from .model import MonthSummary, TimesheetEntry


def compute_overtime(left_at: datetime, expected_end: time) -> float:
    """Hours worked past the expected end, two decimals. 0 when leaving early."""
    end = datetime.combine(left_at.date(), expected_end)
    seconds = (left_at - end).total_seconds()
    if seconds <= 0:
        return 0.0
    return round(seconds / 3600, 2)


def summarize_month(entries: Iterable[TimesheetEntry]) -> MonthSummary:
    present = absent = late = 0
    late_minutes = 0
    overtime = 0.0

    for e in entries:
        if e.status == TimesheetStatus.PRESENT:
            present += 1
        elif e.status == TimesheetStatus.ABSENT:
            absent += 1
        elif e.status == TimesheetStatus.LATE:
            late += 1
            late_minutes += int(e.late_minutes)
        overtime += float(e.overtime_hours or 0)

    return MonthSummary(
        present=present,
        absent=absent,
        late=late,
        total_late_minutes=late_minutes,
        total_overtime_hours=round(overtime, 2),
    )
