from __future__ import annotations

import math
from datetime import datetime

from ...core.enums import TimesheetStatus
from .base import ArrivalDecision, ArrivalStrategy


class LateStrategy(ArrivalStrategy):
    """Late check-in. Minutes are counted from the expected start, rounded up."""

    def decide(self, *, arrived_at: datetime, expected_start: datetime) -> ArrivalDecision:
        seconds = (arrived_at - expected_start).total_seconds()
        return ArrivalDecision(status=TimesheetStatus.LATE, late_minutes=max(math.ceil(seconds / 60), 0))
