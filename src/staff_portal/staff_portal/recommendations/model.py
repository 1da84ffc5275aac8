from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..activities.model import HistoryEntry
from ..core.enums import Frequency, Priority, RecommendationSource, RecommendationStatus, ResolutionKind


@dataclass(frozen=True)
class Assignee:
    user_id: int
    is_principal: bool = False
    full_name: Optional[str] = None


@dataclass(frozen=True)
class Recommendation:
    recommendation_id: int
    title: str
    description: str
    source: RecommendationSource
    resolution_kind: ResolutionKind
    priority: Priority
    status: RecommendationStatus
    due_date: datetime
    created_by: int
    frequency: Optional[Frequency] = None
    resolved_at: Optional[datetime] = None
    observations: Optional[str] = None
    activity_id: Optional[int] = None
    branch_id: Optional[int] = None
    branch_name: Optional[str] = None
    created_at: Optional[datetime] = None
    assignees: tuple[Assignee, ...] = ()

    def is_assigned_to(self, user_id: int) -> bool:
        return any(a.user_id == user_id for a in self.assignees)


@dataclass
class NewRecommendation:
    """Input for RecommendationService.create. The first assignee is the principal one."""

    title: str
    description: str
    source: RecommendationSource
    resolution_kind: ResolutionKind
    priority: Priority
    due_date: Optional[datetime]
    frequency: Optional[Frequency] = None
    observations: Optional[str] = None
    activity_id: Optional[int] = None
    branch_id: Optional[int] = None
    assignee_ids: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class RecommendationDetail:
    recommendation: Recommendation
    history: tuple[HistoryEntry, ...]
