from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..audit.service import AuditService
from ..common.datetime_utils import now_local
from ..common.pagination import Page, PageRequest
from ..common.validators import optional_text, require_min_length, require_non_empty
from ..core.constants import RECOMMENDATION_STATUS_LABELS
from ..core.enums import (
    AuditAction,
    NotificationType,
    Priority,
    RecommendationSource,
    RecommendationStatus,
    ResolutionKind,
    Role,
)
from ..core.exceptions import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from ..notifications.notifier import Notifier
from ..users.model import Actor
from . import policy
from .model import NewRecommendation, Recommendation, RecommendationDetail
from .repository import RecommendationRepository

logger = logging.getLogger(__name__)

ENTITY = "Recommendation"


def _link(recommendation_id: int) -> str:
    return f"/recommendations/{recommendation_id}"


class RecommendationService:
    def __init__(
        self,
        recommendations: RecommendationRepository,
        notifier: Notifier,
        audit: AuditService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._recommendations = recommendations
        self._notifier = notifier
        self._audit = audit
        self._clock = clock

    @staticmethod
    def _require_manager(actor: Actor) -> None:
        if not actor.is_manager:
            raise AuthorizationError("Only managers can manage recommendations")

    def _get_or_raise(self, recommendation_id: int) -> Recommendation:
        rec = self._recommendations.get_by_id(int(recommendation_id))
        if not rec:
            raise NotFoundError("Recommendation not found")
        return rec

    @staticmethod
    def _ensure_open(rec: Recommendation) -> None:
        if policy.is_terminal(rec.status):
            label = RECOMMENDATION_STATUS_LABELS.get(rec.status.value, rec.status.value)
            raise InvalidStateError(f'A recommendation with status "{label}" can no longer change')

    @staticmethod
    def _stale() -> InvalidStateError:
        return InvalidStateError("This recommendation was modified in the meantime, please reload it")

    @staticmethod
    def _validate(data: NewRecommendation) -> None:
        data.title = require_min_length(data.title, "Title", 3)
        data.description = require_min_length(data.description, "Description", 10)
        data.observations = optional_text(data.observations)
        if data.due_date is None:
            raise ValidationError("Due date is required")
        if data.resolution_kind == ResolutionKind.PERIODIC and not data.frequency:
            raise ValidationError("A periodic resolution needs a frequency")
        # keep the first one as principal, drop repeats
        data.assignee_ids = list(dict.fromkeys(int(uid) for uid in data.assignee_ids))
        if not data.assignee_ids:
            raise ValidationError("Assign at least one person")

    def create(self, *, actor: Actor, new_recommendation: NewRecommendation) -> int:
        self._require_manager(actor)
        self._validate(new_recommendation)
        if actor.role == Role.BRANCH_MANAGER and new_recommendation.branch_id is None:
            new_recommendation.branch_id = actor.branch_id

        history = policy.build_history_entry(
            RecommendationStatus.PENDING, RecommendationStatus.PENDING, actor.user_id, "Recommendation created"
        )
        recommendation_id = self._recommendations.create(
            data=new_recommendation, created_by=actor.user_id, history=history
        )

        self._audit.record(
            action=AuditAction.CREATE,
            entity=ENTITY,
            entity_id=recommendation_id,
            user_id=actor.user_id,
            details={
                "title": new_recommendation.title,
                "source": new_recommendation.source.value,
                "priority": new_recommendation.priority.value,
            },
        )
        for user_id in new_recommendation.assignee_ids:
            self._notifier.notify(
                user_id=user_id,
                notification_type=NotificationType.RECOMMENDATION_ASSIGNED,
                title="New recommendation assigned",
                message=f"You were assigned to the recommendation: {new_recommendation.title}",
                link=_link(recommendation_id),
            )
        logger.info("Recommendation %s created by %s", recommendation_id, actor.user_id)
        return recommendation_id

    def update_status(
        self,
        *,
        actor: Actor,
        recommendation_id: int,
        new_status: RecommendationStatus,
        comment: Optional[str] = None,
    ) -> Recommendation:
        self._require_manager(actor)
        rec = self._get_or_raise(recommendation_id)
        self._ensure_open(rec)
        if new_status == rec.status:
            raise ValidationError("The recommendation already has this status")

        comment = optional_text(comment)
        resolved_at = self._clock() if new_status == RecommendationStatus.RESOLVED else None
        if not self._recommendations.change_status(
            recommendation_id=rec.recommendation_id,
            expected_status=rec.status,
            history=policy.build_history_entry(rec.status, new_status, actor.user_id, comment),
            resolved_at=resolved_at,
        ):
            raise self._stale()

        self._audit.record(
            action=AuditAction.STATUS_CHANGE,
            entity=ENTITY,
            entity_id=rec.recommendation_id,
            user_id=actor.user_id,
            details={"from": rec.status.value, "to": new_status.value},
        )
        if new_status == RecommendationStatus.LATE:
            self._notify_late(rec)
        logger.info("Recommendation %s: %s -> %s", rec.recommendation_id, rec.status.value, new_status.value)
        return self._get_or_raise(rec.recommendation_id)

    def resolve(self, *, actor: Actor, recommendation_id: int, observations: str) -> Recommendation:
        self._require_manager(actor)
        observations = require_non_empty(observations, "Observations")
        rec = self._get_or_raise(recommendation_id)
        self._ensure_open(rec)

        if not self._recommendations.change_status(
            recommendation_id=rec.recommendation_id,
            expected_status=rec.status,
            history=policy.build_history_entry(
                rec.status, RecommendationStatus.RESOLVED, actor.user_id, f"Resolution: {observations}"
            ),
            resolved_at=self._clock(),
            observations=observations,
        ):
            raise self._stale()

        self._audit.record(
            action=AuditAction.STATUS_CHANGE,
            entity=ENTITY,
            entity_id=rec.recommendation_id,
            user_id=actor.user_id,
            details={"from": rec.status.value, "to": RecommendationStatus.RESOLVED.value},
        )
        return self._get_or_raise(rec.recommendation_id)

    def _notify_late(self, rec: Recommendation) -> None:
        for assignee in rec.assignees:
            self._notifier.notify(
                user_id=assignee.user_id,
                notification_type=NotificationType.RECOMMENDATION_LATE,
                title="Recommendation late",
                message=f'The recommendation "{rec.title}" is late',
                link=_link(rec.recommendation_id),
            )

    def delete(self, *, actor: Actor, recommendation_id: int) -> None:
        if not actor.is_super_admin:
            raise AuthorizationError("Only administrators can delete recommendations")
        rec = self._get_or_raise(recommendation_id)
        self._recommendations.delete(rec.recommendation_id)
        self._audit.record(
            action=AuditAction.DELETE,
            entity=ENTITY,
            entity_id=rec.recommendation_id,
            user_id=actor.user_id,
            details={"title": rec.title},
        )

    @staticmethod
    def _scope(actor: Actor) -> tuple[Optional[int], Optional[int]]:
        """(branch_id, assignee_id) filters implied by the actor's role."""
        if actor.role == Role.SUPER_ADMIN:
            return None, None
        if actor.role == Role.BRANCH_MANAGER:
            if actor.branch_id is None:
                raise AuthorizationError("Your account is not attached to a branch")
            return actor.branch_id, None
        return None, actor.user_id

    def get_detail(self, *, actor: Actor, recommendation_id: int) -> RecommendationDetail:
        rec = self._get_or_raise(recommendation_id)
        branch_id, assignee_id = self._scope(actor)
        if branch_id is not None and rec.branch_id != branch_id:
            raise AuthorizationError("This recommendation belongs to another branch")
        if assignee_id is not None and not rec.is_assigned_to(assignee_id):
            raise AuthorizationError("You are not assigned to this recommendation")
        history = tuple(self._recommendations.list_history(rec.recommendation_id))
        return RecommendationDetail(recommendation=rec, history=history)

    def list_recommendations(
        self,
        *,
        actor: Actor,
        status: Optional[RecommendationStatus] = None,
        priority: Optional[Priority] = None,
        source: Optional[RecommendationSource] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[Recommendation]:
        branch_id, assignee_id = self._scope(actor)
        req = PageRequest(page=page, page_size=page_size)
        items, total = self._recommendations.search(
            status=status,
            priority=priority,
            source=source,
            search=(search or "").strip() or None,
            branch_id=branch_id,
            assignee_id=assignee_id,
            limit=req.page_size,
            offset=req.offset,
        )
        return Page(items=items, total=total, page=req.page, page_size=req.page_size)

    def count_by_status(self, *, actor: Actor) -> dict[str, int]:
        branch_id, assignee_id = self._scope(actor)
        return self._recommendations.count_by_status(branch_id=branch_id, assignee_id=assignee_id)

    def detect_late(self, *, actor: Optional[Actor] = None, now: Optional[datetime] = None) -> int:
        """Flag overdue recommendations as LATE.

        Run by the scheduled job without an actor, or on demand by an administrator.
        """
        if actor is not None and not actor.is_super_admin:
            raise AuthorizationError("Only administrators can run late detection")
        now = now or self._clock()
        changed_by = actor.user_id if actor else None

        flagged = 0
        for rec in self._recommendations.list_overdue(now=now):
            if not policy.should_flag_late(rec.due_date, rec.status, now):
                continue
            history = policy.build_history_entry(
                rec.status, RecommendationStatus.LATE, changed_by, "Automatic late detection"
            )
            if not self._recommendations.change_status(
                recommendation_id=rec.recommendation_id, expected_status=rec.status, history=history
            ):
                continue
            flagged += 1
            self._notify_late(rec)

        if flagged:
            logger.info("Flagged %d late recommendations", flagged)
        return flagged
