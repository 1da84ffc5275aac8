from dataclasses import dataclass

import pytest

from src.staff_portal.staff_portal.core.constants import ACTIVITY_STATUS_LABELS
from src.staff_portal.staff_portal.core.enums import ActivityStatus
from src.staff_portal.staff_portal.dashboard.policy import (
    KpiInput,
    compute_kpis,
    counts_to_points,
    group_by_status,
    percentage,
)


@dataclass
class _Item:
    status: ActivityStatus


@pytest.mark.parametrize(
    "part,total,expected",
    [(0, 0, 0.0), (5, 0, 0.0), (1, 3, 33.3), (2, 3, 66.7), (1, 16, 6.3), (4, 4, 100.0)],
)
def test_percentage_rounds_half_up(part, total, expected):
    assert percentage(part, total) == expected


def test_compute_kpis():
    kpis = compute_kpis(
        KpiInput(
            activities_total=8,
            activities_done=3,
            activities_late=1,
            recommendations_total=0,
            employees_total=12,
            leaves_pending=2,
        )
    )

    assert kpis.completion_rate == 37.5
    assert kpis.resolution_rate == 0.0
    assert kpis.employees_total == 12
    assert kpis.leaves_pending == 2


def test_group_by_status_keeps_first_seen_order():
    items = [_Item(ActivityStatus.LATE), _Item(ActivityStatus.DONE), _Item(ActivityStatus.LATE)]

    points = group_by_status(items, ACTIVITY_STATUS_LABELS)

    assert [(p.status, p.value) for p in points] == [("LATE", 2), ("DONE", 1)]
    assert points[1].name == ACTIVITY_STATUS_LABELS["DONE"]


def test_counts_to_points_falls_back_to_readable_status():
    points = counts_to_points({"ON_HOLD": 2}, {})
    assert points[0].name == "ON HOLD"
