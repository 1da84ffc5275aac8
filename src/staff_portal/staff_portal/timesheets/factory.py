from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from .strategies.base import ArrivalStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.on_time_strategy import OnTimeStrategy


@dataclass
class ArrivalStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    threshold_minutes: int = 15

    def for_arrival(self, *, arrived_at: datetime, expected_start: datetime) -> ArrivalStrategy:
        if arrived_at <= expected_start + timedelta(minutes=self.threshold_minutes):
            return OnTimeStrategy()
        return LateStrategy()
