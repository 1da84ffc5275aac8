from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import Role, TimesheetStatus


@dataclass(frozen=True)
class TimesheetEntry:
    """Domain entity: one employee's day (arrival, departure, status)."""

    entry_id: int
    user_id: int
    work_date: date
    status: TimesheetStatus
    arrived_at: Optional[datetime] = None
    left_at: Optional[datetime] = None
    late_minutes: int = 0
    overtime_hours: float = 0.0
    observations: Optional[str] = None


@dataclass(frozen=True)
class MonthSummary:
    present: int
    absent: int
    late: int
    total_late_minutes: int
    total_overtime_hours: float


@dataclass(frozen=True)
class RosterRow:
    """One employee of a branch on a given day, with their entry if any."""

    user_id: int
    full_name: str
    role: Role
    entry: Optional[TimesheetEntry] = None
