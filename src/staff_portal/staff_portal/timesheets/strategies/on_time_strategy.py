from __future__ import annotations

from datetime import datetime

from ...core.enums import TimesheetStatus
from .base import ArrivalDecision, ArrivalStrategy


class OnTimeStrategy(ArrivalStrategy):
    """Arrived before the tolerance deadline."""

    def decide(self, *, arrived_at: datetime, expected_start: datetime) -> ArrivalDecision:
        return ArrivalDecision(status=TimesheetStatus.PRESENT)
