from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..activities.model import HistoryEntry
from ..core.enums import Priority, RecommendationSource, RecommendationStatus
from .model import NewRecommendation, Recommendation


class RecommendationRepository(Protocol):
    def create(self, *, data: NewRecommendation, created_by: int, history: HistoryEntry) -> int:
        raise NotImplementedError

    def get_by_id(self, recommendation_id: int) -> Optional[Recommendation]:
        raise NotImplementedError

    def list_history(self, recommendation_id: int) -> Sequence[HistoryEntry]:
        raise NotImplementedError

    def change_status(
        self,
        *,
        recommendation_id: int,
        expected_status: RecommendationStatus,
        history: HistoryEntry,
        resolved_at: Optional[datetime] = None,
        observations: Optional[str] = None,
    ) -> bool:
        raise NotImplementedError

    def delete(self, recommendation_id: int) -> bool:
        raise NotImplementedError

    def search(
        self,
        *,
        status: Optional[RecommendationStatus] = None,
        priority: Optional[Priority] = None,
        source: Optional[RecommendationSource] = None,
        search: Optional[str] = None,
        branch_id: Optional[int] = None,
        assignee_id: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[Sequence[Recommendation], int]:
        raise NotImplementedError

    def list_overdue(self, *, now: datetime) -> Sequence[Recommendation]:
        raise NotImplementedError

    def count_by_status(
        self, *, branch_id: Optional[int] = None, assignee_id: Optional[int] = None
    ) -> dict[str, int]:
        raise NotImplementedError
