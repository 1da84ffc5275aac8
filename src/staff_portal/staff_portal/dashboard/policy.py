from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping, Optional


@dataclass(frozen=True)
class KpiInput:
    activities_total: int = 0
    activities_done: int = 0
    activities_late: int = 0
    recommendations_total: int = 0
    recommendations_resolved: int = 0
    recommendations_late: int = 0
    employees_total: int = 0
    leaves_pending: int = 0


@dataclass(frozen=True)
class Kpis:
    activities_total: int
    activities_done: int
    activities_late: int
    completion_rate: float
    recommendations_total: int
    recommendations_resolved: int
    recommendations_late: int
    resolution_rate: float
    employees_total: int
    leaves_pending: int


@dataclass(frozen=True)
class ChartPoint:
    name: str
    value: int
    status: Optional[str] = None


def percentage(part: int, total: int) -> float:
    """Percentage rounded half up to one decimal; 0 when total is 0."""
    if total <= 0:
        return 0.0
    return math.floor(part / total * 1000 + 0.5) / 10


def compute_kpis(counts: KpiInput) -> Kpis:
    return Kpis(
        activities_total=counts.activities_total,
        activities_done=counts.activities_done,
        activities_late=counts.activities_late,
        completion_rate=percentage(counts.activities_done, counts.activities_total),
        recommendations_total=counts.recommendations_total,
        recommendations_resolved=counts.recommendations_resolved,
        recommendations_late=counts.recommendations_late,
        resolution_rate=percentage(counts.recommendations_resolved, counts.recommendations_total),
        employees_total=counts.employees_total,
        leaves_pending=counts.leaves_pending,
    )


def _key(status) -> str:
    return status.value if isinstance(status, Enum) else str(status)


def counts_to_points(counts: Mapping[str, int], labels: Mapping[str, str]) -> list[ChartPoint]:
    return [
        ChartPoint(name=labels.get(status, status.replace("_", " ")), value=int(value), status=status)
        for status, value in counts.items()
    ]


def group_by_status(items: Iterable, labels: Mapping[str, str]) -> list[ChartPoint]:
    """Chart points for items carrying a `status`, in first-seen order."""
    counts = Counter(_key(item.status) for item in items)
    return counts_to_points(counts, labels)
