from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..audit.service import AuditService
from ..common.datetime_utils import now_local
from ..common.pagination import Page, PageRequest
from ..common.validators import optional_text, require_min_length
from ..core.constants import ACTIVITY_STATUS_LABELS
from ..core.enums import ActivityKind, ActivityStatus, AuditAction, NotificationType, Role
from ..core.exceptions import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from ..notifications.notifier import Notifier
from ..users.model import Actor
from . import policy
from .model import Activity, ActivityDetail, NewActivity
from .repository import ActivityRepository

logger = logging.getLogger(__name__)

ENTITY = "Activity"


def _link(activity_id: int) -> str:
    return f"/activities/{activity_id}"


class ActivityService:
    """Activities planned for one or more branches, with a status history."""

    def __init__(
        self,
        activities: ActivityRepository,
        notifier: Notifier,
        audit: AuditService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._activities = activities
        self._notifier = notifier
        self._audit = audit
        self._clock = clock

    @staticmethod
    def _require_manager(actor: Actor) -> None:
        if not actor.is_manager:
            raise AuthorizationError("Only managers can manage activities")

    def _get_or_raise(self, activity_id: int) -> Activity:
        activity = self._activities.get_by_id(int(activity_id))
        if not activity:
            raise NotFoundError("Activity not found")
        return activity

    @staticmethod
    def _validate(data: NewActivity) -> None:
        data.title = require_min_length(data.title, "Title", 3)
        data.description = optional_text(data.description)

        if data.kind == ActivityKind.ONE_OFF:
            if not data.start_date:
                raise ValidationError("Start date is required")
            if not data.end_date:
                raise ValidationError("End date is required")
            if data.end_date <= data.start_date:
                raise ValidationError("End date must be after the start date")
        elif data.kind == ActivityKind.PERIODIC and not data.frequency:
            raise ValidationError("A periodic activity needs a frequency")

        if data.budget is not None and data.budget <= 0:
            raise ValidationError("Budget must be positive")
        if not data.assignments:
            raise ValidationError("Assign the activity to at least one branch")
        branch_ids = [a.branch_id for a in data.assignments]
        if len(set(branch_ids)) != len(branch_ids):
            raise ValidationError("A branch can only be assigned once")

    def create(self, *, actor: Actor, new_activity: NewActivity) -> int:
        self._require_manager(actor)
        self._validate(new_activity)

        history = policy.build_history_entry(
            ActivityStatus.PLANNED, ActivityStatus.PLANNED, actor.user_id, "Activity created"
        )
        activity_id = self._activities.create(data=new_activity, created_by=actor.user_id, history=history)

        self._audit.record(
            action=AuditAction.CREATE,
            entity=ENTITY,
            entity_id=activity_id,
            user_id=actor.user_id,
            details={
                "title": new_activity.title,
                "kind": new_activity.kind.value,
                "start_date": new_activity.start_date,
                "end_date": new_activity.end_date,
                "branches": len(new_activity.assignments),
            },
        )
        for assignment in new_activity.assignments:
            self._notifier.notify(
                user_id=assignment.manager_id,
                notification_type=NotificationType.ACTIVITY_ASSIGNED,
                title="New activity assigned",
                message=f'You are now in charge of the activity "{new_activity.title}".',
                link=_link(activity_id),
            )
        logger.info("Activity %s created by %s", activity_id, actor.user_id)
        return activity_id

    def update_status(
        self,
        *,
        actor: Actor,
        activity_id: int,
        new_status: ActivityStatus,
        comment: Optional[str] = None,
    ) -> Activity:
        self._require_manager(actor)
        activity = self._get_or_raise(activity_id)
        if policy.is_terminal(activity.status):
            label = ACTIVITY_STATUS_LABELS.get(activity.status.value, activity.status.value)
            raise InvalidStateError(f'An activity with status "{label}" can no longer change')
        if new_status == activity.status:
            raise ValidationError("The activity already has this status")

        comment = optional_text(comment)
        history = policy.build_history_entry(activity.status, new_status, actor.user_id, comment)
        completed_at = self._clock() if new_status == ActivityStatus.DONE else None
        if not self._activities.change_status(
            activity_id=activity.activity_id,
            expected_status=activity.status,
            history=history,
            completed_at=completed_at,
        ):
            raise InvalidStateError("This activity was modified in the meantime, please reload it")

        self._audit.record(
            action=AuditAction.STATUS_CHANGE,
            entity=ENTITY,
            entity_id=activity.activity_id,
            user_id=actor.user_id,
            details={"from": activity.status.value, "to": new_status.value, "comment": comment},
        )
        if new_status == ActivityStatus.LATE:
            self._notify_late(activity, f'The activity "{activity.title}" is now late.')
        logger.info("Activity %s: %s -> %s", activity.activity_id, activity.status.value, new_status.value)
        return self._get_or_raise(activity.activity_id)

    def _notify_late(self, activity: Activity, message: str) -> None:
        for assignment in activity.assignments:
            self._notifier.notify(
                user_id=assignment.manager_id,
                notification_type=NotificationType.ACTIVITY_LATE,
                title="Activity late",
                message=message,
                link=_link(activity.activity_id),
            )

    def delete(self, *, actor: Actor, activity_id: int) -> None:
        if not actor.is_super_admin:
            raise AuthorizationError("Only administrators can delete activities")
        activity = self._get_or_raise(activity_id)
        self._activities.delete(activity.activity_id)
        self._audit.record(
            action=AuditAction.DELETE,
            entity=ENTITY,
            entity_id=activity.activity_id,
            user_id=actor.user_id,
            details={"title": activity.title},
        )

    def _branch_scope(self, actor: Actor) -> Optional[int]:
        if actor.role == Role.BRANCH_MANAGER:
            if actor.branch_id is None:
                raise AuthorizationError("Your account is not attached to a branch")
            return actor.branch_id
        return None

    def get_detail(self, *, actor: Actor, activity_id: int) -> ActivityDetail:
        activity = self._get_or_raise(activity_id)
        branch_id = self._branch_scope(actor)
        if branch_id is not None and all(a.branch_id != branch_id for a in activity.assignments):
            raise AuthorizationError("This activity is not assigned to your branch")
        return ActivityDetail(activity=activity, history=tuple(self._activities.list_history(activity.activity_id)))

    def list_activities(
        self,
        *,
        actor: Actor,
        status: Optional[ActivityStatus] = None,
        search: Optional[str] = None,
        branch_id: Optional[int] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[Activity]:
        scope = self._branch_scope(actor)
        req = PageRequest(page=page, page_size=page_size)
        items, total = self._activities.search(
            status=status,
            search=(search or "").strip() or None,
            branch_id=scope if scope is not None else branch_id,
            limit=req.page_size,
            offset=req.offset,
        )
        return Page(items=items, total=total, page=req.page, page_size=req.page_size)

    def count_by_status(self, *, actor: Actor) -> dict[str, int]:
        return self._activities.count_by_status(branch_id=self._branch_scope(actor))

    def detect_late(self, *, now: Optional[datetime] = None) -> int:
        """Flag overdue activities as LATE. Returns how many were flagged."""
        now = now or self._clock()
        flagged = 0
        for activity in self._activities.list_overdue(now=now):
            if not policy.should_flag_late(activity.end_date, activity.status, now):
                continue
            history = policy.build_history_entry(
                activity.status, ActivityStatus.LATE, None, "Automatic late detection"
            )
            if not self._activities.change_status(
                activity_id=activity.activity_id, expected_status=activity.status, history=history
            ):
                # changed by someone else since the query, next run will see it
                continue
            flagged += 1
            self._notify_late(activity, f'The activity "{activity.title}" is late (end date passed).')

        if flagged:
            logger.info("Flagged %d late activities", flagged)
        return flagged
