from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import TimesheetStatus
from .model import TimesheetEntry


class TimesheetRepository(Protocol):
    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[TimesheetEntry]:
        raise NotImplementedError

    def create_entry(
        self,
        *,
        user_id: int,
        work_date: date,
        status: TimesheetStatus,
        arrived_at: Optional[datetime] = None,
        late_minutes: int = 0,
        observations: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def update_checkout(self, *, entry_id: int, left_at: datetime, overtime_hours: float) -> bool:
        """Set the departure once; returns False if it was already set."""

        raise NotImplementedError

    def list_for_user_between(self, *, user_id: int, start_date: date, end_date: date) -> Sequence[TimesheetEntry]:
        raise NotImplementedError

    def list_for_users_on(self, *, user_ids: Sequence[int], work_date: date) -> Sequence[TimesheetEntry]:
        raise NotImplementedError
