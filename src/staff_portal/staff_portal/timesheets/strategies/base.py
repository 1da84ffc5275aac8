from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from ...core.enums import TimesheetStatus


@dataclass(frozen=True)
class ArrivalDecision:
    status: TimesheetStatus
    late_minutes: int = 0


class ArrivalStrategy(ABC):
    """Strategy Pattern: encapsulate how we decide a check-in status."""

    @abstractmethod
    def decide(self, *, arrived_at: datetime, expected_start: datetime) -> ArrivalDecision:
        raise NotImplementedError
