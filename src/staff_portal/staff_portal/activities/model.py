from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import ActivityKind, ActivityStatus, Frequency


@dataclass(frozen=True)
class BranchAssignment:
    """One branch taking part in an activity, with the manager in charge."""

    branch_id: int
    manager_id: int
    branch_name: Optional[str] = None
    manager_name: Optional[str] = None


@dataclass(frozen=True)
class Activity:
    activity_id: int
    title: str
    kind: ActivityKind
    status: ActivityStatus
    created_by: int
    description: Optional[str] = None
    frequency: Optional[Frequency] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    budget: Optional[float] = None
    created_at: Optional[datetime] = None
    assignments: tuple[BranchAssignment, ...] = ()


@dataclass(frozen=True)
class HistoryEntry:
    old_status: str
    new_status: str
    changed_by: Optional[int]
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class NewActivity:
    """Input for ActivityService.create (what the form posts)."""

    title: str
    kind: ActivityKind
    description: Optional[str] = None
    frequency: Optional[Frequency] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    budget: Optional[float] = None
    assignments: list[BranchAssignment] = field(default_factory=list)


@dataclass(frozen=True)
class ActivityDetail:
    activity: Activity
    history: tuple[HistoryEntry, ...]
