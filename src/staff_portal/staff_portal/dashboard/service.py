from __future__ import annotations

from dataclasses import dataclass

from ..activities.service import ActivityService
from ..core.constants import ACTIVITY_STATUS_LABELS, RECOMMENDATION_STATUS_LABELS
from ..core.enums import ActivityStatus, RecommendationStatus, Role
from ..leaves.service import LeaveService
from ..recommendations.service import RecommendationService
from ..users.model import Actor
from ..users.repository import UserRepository
from .policy import ChartPoint, KpiInput, Kpis, compute_kpis, counts_to_points


@dataclass(frozen=True)
class DashboardData:
    kpis: Kpis
    activities_by_status: list[ChartPoint]
    recommendations_by_status: list[ChartPoint]


class DashboardService:
    def __init__(
        self,
        activities: ActivityService,
        recommendations: RecommendationService,
        leaves: LeaveService,
        users: UserRepository,
    ):
        self._activities = activities
        self._recommendations = recommendations
        self._leaves = leaves
        self._users = users

    def overview(self, *, actor: Actor) -> DashboardData:
        activity_counts = self._activities.count_by_status(actor=actor)
        recommendation_counts = self._recommendations.count_by_status(actor=actor)

        branch_id = actor.branch_id if actor.role == Role.BRANCH_MANAGER else None
        employees = self._users.count_active(branch_id=branch_id) if actor.is_manager else 0
        pending = self._leaves.count_awaiting_decision(actor=actor) if actor.is_manager else 0

        kpis = compute_kpis(
            KpiInput(
                activities_total=sum(activity_counts.values()),
                activities_done=activity_counts.get(ActivityStatus.DONE.value, 0),
                activities_late=activity_counts.get(ActivityStatus.LATE.value, 0),
                recommendations_total=sum(recommendation_counts.values()),
                recommendations_resolved=recommendation_counts.get(RecommendationStatus.RESOLVED.value, 0),
                recommendations_late=recommendation_counts.get(RecommendationStatus.LATE.value, 0),
                employees_total=employees,
                leaves_pending=pending,
            )
        )
        return DashboardData(
            kpis=kpis,
            activities_by_status=counts_to_points(activity_counts, ACTIVITY_STATUS_LABELS),
            recommendations_by_status=counts_to_points(recommendation_counts, RECOMMENDATION_STATUS_LABELS),
        )
