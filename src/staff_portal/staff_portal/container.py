from __future__ import annotations

from dataclasses import dataclass

from .activities.mysql_activity_repository import MySQLActivityRepository
from .activities.service import ActivityService
from .audit.mysql_audit_repository import MySQLAuditLogRepository
from .audit.service import AuditService
from .core.constants import (
    DEFAULT_ANNUAL_LEAVE_DAYS,
    DEFAULT_LATE_THRESHOLD_MINUTES,
    DEFAULT_WORK_END,
    DEFAULT_WORK_START,
)
from .dashboard.service import DashboardService
from .database.connection import DBConfig, DatabaseConnection
from .leaves.mysql_leave_repository import MySQLLeaveRequestRepository
from .leaves.service import LeaveService
from .notifications.mysql_notification_repository import MySQLNotificationRepository
from .notifications.service import NotificationService
from .recommendations.mysql_recommendation_repository import MySQLRecommendationRepository
from .recommendations.service import RecommendationService
from .timesheets.factory import ArrivalStrategyFactory
from .timesheets.mysql_timesheet_repository import MySQLTimesheetRepository
from .timesheets.service import TimesheetService
from .users.mysql_branch_repository import MySQLBranchRepository
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService, BranchService, UserService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    users_repo: MySQLUserRepository
    branches_repo: MySQLBranchRepository

    auth_service: AuthService
    user_service: UserService
    branch_service: BranchService
    notification_service: NotificationService
    audit_service: AuditService
    leave_service: LeaveService
    timesheet_service: TimesheetService
    activity_service: ActivityService
    recommendation_service: RecommendationService
    dashboard_service: DashboardService


def build_container(*, db_config: dict, settings: dict | None = None) -> Container:
    """Wire repositories and services. `settings` carries the business knobs from config."""
    settings = settings or {}
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    users_repo = MySQLUserRepository(conn)
    branches_repo = MySQLBranchRepository(conn)

    notification_service = NotificationService(MySQLNotificationRepository(conn))
    audit_service = AuditService(MySQLAuditLogRepository(conn))

    leave_service = LeaveService(
        MySQLLeaveRequestRepository(conn),
        users_repo,
        notification_service,
        audit_service,
        annual_days=int(settings.get("ANNUAL_LEAVE_DAYS", DEFAULT_ANNUAL_LEAVE_DAYS)),
    )
    late_threshold = int(settings.get("LATE_THRESHOLD_MINUTES", DEFAULT_LATE_THRESHOLD_MINUTES))
    timesheet_service = TimesheetService(
        MySQLTimesheetRepository(conn),
        users_repo,
        audit_service,
        strategy_factory=ArrivalStrategyFactory(threshold_minutes=late_threshold),
        work_start=str(settings.get("WORK_START", DEFAULT_WORK_START)),
        work_end=str(settings.get("WORK_END", DEFAULT_WORK_END)),
    )
    activity_service = ActivityService(MySQLActivityRepository(conn), notification_service, audit_service)
    recommendation_service = RecommendationService(
        MySQLRecommendationRepository(conn), notification_service, audit_service
    )

    return Container(
        conn=conn,
        users_repo=users_repo,
        branches_repo=branches_repo,
        auth_service=AuthService(users_repo, branches_repo),
        user_service=UserService(users_repo, branches_repo, audit_service),
        branch_service=BranchService(branches_repo, audit_service),
        notification_service=notification_service,
        audit_service=audit_service,
        leave_service=leave_service,
        timesheet_service=timesheet_service,
        activity_service=activity_service,
        recommendation_service=recommendation_service,
        dashboard_service=DashboardService(activity_service, recommendation_service, leave_service, users_repo),
    )
