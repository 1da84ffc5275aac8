from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import ActivityStatus
from .model import Activity, HistoryEntry, NewActivity


class ActivityRepository(Protocol):
    def create(self, *, data: NewActivity, created_by: int, history: HistoryEntry) -> int:
        """Insert the activity, its branch assignments and first history row in one transaction."""

        raise NotImplementedError

    def get_by_id(self, activity_id: int) -> Optional[Activity]:
        raise NotImplementedError

    def list_history(self, activity_id: int) -> Sequence[HistoryEntry]:
        raise NotImplementedError

    def change_status(
        self,
        *,
        activity_id: int,
        expected_status: ActivityStatus,
        history: HistoryEntry,
        completed_at: Optional[datetime] = None,
    ) -> bool:
        """Move to history.new_status only if the row still has expected_status."""

        raise NotImplementedError

    def delete(self, activity_id: int) -> bool:
        raise NotImplementedError

    def search(
        self,
        *,
        status: Optional[ActivityStatus] = None,
        search: Optional[str] = None,
        branch_id: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[Sequence[Activity], int]:
        raise NotImplementedError

    def list_overdue(self, *, now: datetime) -> Sequence[Activity]:
        raise NotImplementedError

    def count_by_status(self, *, branch_id: Optional[int] = None) -> dict[str, int]:
        raise NotImplementedError
