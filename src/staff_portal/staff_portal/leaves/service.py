from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional

from ..audit.service import AuditService
from ..common.datetime_utils import now_local
from ..common.pagination import Page, PageRequest
from ..common.validators import optional_text, require_non_empty
from ..core.constants import (
    DEFAULT_ANNUAL_LEAVE_DAYS,
    LEAVE_STATUS_LABELS,
    LEAVE_TYPE_LABELS,
)
from ..core.enums import AuditAction, LeaveStatus, LeaveType, NotificationType, Role
from ..core.exceptions import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from ..notifications.notifier import Notifier
from ..users.model import Actor
from ..users.repository import UserRepository
from . import policy
from .model import LeaveBalance, LeaveRequest, LeaveRequestView
from .repository import LeaveRequestRepository

logger = logging.getLogger(__name__)

ENTITY = "LeaveRequest"


def _status_label(status: LeaveStatus) -> str:
    return LEAVE_STATUS_LABELS.get(status.value, status.value)


def _link(request_id: int) -> str:
    return f"/leaves/{request_id}"


class LeaveService:
    """Leave request lifecycle: create, submit, two-tier approval, reject, cancel."""

    def __init__(
        self,
        leaves: LeaveRequestRepository,
        users: UserRepository,
        notifier: Notifier,
        audit: AuditService,
        *,
        annual_days: int = DEFAULT_ANNUAL_LEAVE_DAYS,
        clock: Callable[[], datetime] = now_local,
    ):
        self._leaves = leaves
        self._users = users
        self._notifier = notifier
        self._audit = audit
        self._annual_days = int(annual_days)
        self._clock = clock

    def _get_or_raise(self, request_id: int) -> LeaveRequest:
        req = self._leaves.get_by_id(int(request_id))
        if not req:
            raise NotFoundError("Leave request not found")
        return req

    @staticmethod
    def _require_manager(actor: Actor) -> None:
        if not policy.is_manager(actor.role):
            raise AuthorizationError("Only managers can decide on leave requests")

    @staticmethod
    def _stale(req: LeaveRequest) -> InvalidStateError:
        # the row changed between our read and the conditional update
        logger.warning("Leave request %s changed concurrently (was %s)", req.request_id, req.status.value)
        return InvalidStateError("This leave request was modified in the meantime, please reload it")

    def create(
        self,
        *,
        actor: Actor,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        reason: str,
    ) -> LeaveRequest:
        if end_date < start_date:
            raise ValidationError("End date must be on or after the start date")
        reason = require_non_empty(reason, "Reason")

        business_days = policy.count_business_days(start_date, end_date)
        if business_days <= 0:
            raise ValidationError("The selected period contains no business day")

        request_id = self._leaves.create(
            user_id=actor.user_id,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            business_days=business_days,
            reason=reason,
            audit=self._audit.entry(
                action=AuditAction.CREATE,
                entity=ENTITY,
                entity_id=None,
                user_id=actor.user_id,
                details=f"{LEAVE_TYPE_LABELS.get(leave_type.value, leave_type.value)} request ({business_days} days)",
            ),
        )
        logger.info("Leave request %s created by user %s (%d days)", request_id, actor.user_id, business_days)
        return self._get_or_raise(request_id)

    def submit(self, *, actor: Actor, request_id: int) -> LeaveRequest:
        req = self._get_or_raise(request_id)
        if req.user_id != actor.user_id:
            raise AuthorizationError("You can only submit your own leave requests")
        if req.status != LeaveStatus.DRAFT:
            raise InvalidStateError("Only a draft can be submitted")

        if not self._leaves.update_status(
            request_id=req.request_id,
            expected_status=LeaveStatus.DRAFT,
            status=LeaveStatus.SUBMITTED,
            audit=self._audit.entry(
                action=AuditAction.STATUS_CHANGE,
                entity=ENTITY,
                entity_id=req.request_id,
                user_id=actor.user_id,
                details=f"Status: {LeaveStatus.DRAFT.value} -> {LeaveStatus.SUBMITTED.value}",
            ),
        ):
            raise self._stale(req)
        updated = replace(req, status=LeaveStatus.SUBMITTED)

        self._notify_branch_managers(updated)
        logger.info("Leave request %s submitted", req.request_id)
        return updated

    def _notify_branch_managers(self, req: LeaveRequest) -> None:
        requester = self._users.get_by_id(req.user_id)
        if not requester or not requester.branch_id:
            return

        type_label = LEAVE_TYPE_LABELS.get(req.leave_type.value, req.leave_type.value)
        managers = self._users.list_by_branch_and_role(branch_id=requester.branch_id, role=Role.BRANCH_MANAGER)
        for manager in managers:
            self._notifier.notify(
                user_id=manager.user_id,
                notification_type=NotificationType.LEAVE_SUBMITTED,
                title="New leave request",
                message=f"{requester.full_name} submitted a {type_label} request ({req.business_days} days)",
                link=_link(req.request_id),
            )

    def approve(self, *, actor: Actor, request_id: int, comment: Optional[str] = None) -> LeaveRequest:
        self._require_manager(actor)
        req = self._get_or_raise(request_id)
        if not policy.can_approve(actor.role, req.status):
            raise InvalidStateError(f'A leave request with status "{_status_label(req.status)}" cannot be approved')

        new_status = policy.next_approval_status(actor.role)
        comment = optional_text(comment)
        approved_at = self._clock()
        if not self._leaves.decide(
            request_id=req.request_id,
            expected_status=req.status,
            status=new_status,
            approver_id=actor.user_id,
            approved_at=approved_at,
            approver_comment=comment,
            audit=self._audit.entry(
                action=AuditAction.APPROVE,
                entity=ENTITY,
                entity_id=req.request_id,
                user_id=actor.user_id,
                details={"from": req.status.value, "to": new_status.value, "comment": comment},
            ),
        ):
            raise self._stale(req)
        updated = replace(
            req,
            status=new_status,
            approver_id=actor.user_id,
            approved_at=approved_at,
            approver_comment=comment,
        )

        message = f"Your leave request was approved ({_status_label(new_status)})"
        if comment:
            message += f". Comment: {comment}"
        self._notifier.notify(
            user_id=req.user_id,
            notification_type=NotificationType.LEAVE_APPROVED,
            title="Leave request approved",
            message=message,
            link=_link(req.request_id),
        )
        logger.info("Leave request %s approved by %s: %s -> %s", req.request_id, actor.user_id, req.status.value, new_status.value)
        return updated

    def reject(self, *, actor: Actor, request_id: int, comment: str) -> LeaveRequest:
        self._require_manager(actor)
        comment = optional_text(comment)
        if not comment:
            raise ValidationError("A comment is required to reject a leave request")

        req = self._get_or_raise(request_id)
        if not policy.can_reject(req.status):
            raise InvalidStateError("This leave request cannot be rejected in its current status")

        decided_at = self._clock()
        if not self._leaves.decide(
            request_id=req.request_id,
            expected_status=req.status,
            status=LeaveStatus.REJECTED,
            approver_id=actor.user_id,
            approved_at=decided_at,
            approver_comment=comment,
            audit=self._audit.entry(
                action=AuditAction.REJECT,
                entity=ENTITY,
                entity_id=req.request_id,
                user_id=actor.user_id,
                details={"from": req.status.value, "to": LeaveStatus.REJECTED.value, "comment": comment},
            ),
        ):
            raise self._stale(req)
        updated = replace(
            req,
            status=LeaveStatus.REJECTED,
            approver_id=actor.user_id,
            approved_at=decided_at,
            approver_comment=comment,
        )

        self._notifier.notify(
            user_id=req.user_id,
            notification_type=NotificationType.LEAVE_REJECTED,
            title="Leave request rejected",
            message=f"Your leave request was rejected. Reason: {comment}",
            link=_link(req.request_id),
        )
        logger.info("Leave request %s rejected by %s", req.request_id, actor.user_id)
        return updated

    def cancel(self, *, actor: Actor, request_id: int) -> LeaveRequest:
        req = self._get_or_raise(request_id)
        is_owner = req.user_id == actor.user_id
        is_manager = policy.is_manager(actor.role)
        if not is_owner and not is_manager:
            raise AuthorizationError("You cannot cancel this leave request")

        if req.status == LeaveStatus.CANCELLED:
            raise InvalidStateError("This leave request is already cancelled")
        if not policy.can_cancel(req.status, is_owner=is_owner, is_manager=is_manager):
            if is_manager:
                raise InvalidStateError("A decided leave request cannot be cancelled")
            raise InvalidStateError("Only drafts and submitted requests can be cancelled")

        if not self._leaves.update_status(
            request_id=req.request_id,
            expected_status=req.status,
            status=LeaveStatus.CANCELLED,
            audit=self._audit.entry(
                action=AuditAction.STATUS_CHANGE,
                entity=ENTITY,
                entity_id=req.request_id,
                user_id=actor.user_id,
                details=f"Status: {req.status.value} -> {LeaveStatus.CANCELLED.value}",
            ),
        ):
            raise self._stale(req)
        updated = replace(req, status=LeaveStatus.CANCELLED)

        logger.info("Leave request %s cancelled by %s", req.request_id, actor.user_id)
        return updated

    def _require_self_or_manager(self, actor: Actor, employee_id: int) -> None:
        if actor.user_id != int(employee_id) and not policy.is_manager(actor.role):
            raise AuthorizationError("You cannot view another employee's leave")

    def get_balance(self, *, actor: Actor, employee_id: int, year: int) -> LeaveBalance:
        self._require_self_or_manager(actor, employee_id)
        requests = self._leaves.find_for_user(user_id=int(employee_id), year=int(year), leave_type=LeaveType.ANNUAL)
        return policy.compute_balance(requests, year=int(year), total=self._annual_days)

    def get_detail(self, *, actor: Actor, request_id: int) -> LeaveRequest:
        req = self._get_or_raise(request_id)
        self._require_self_or_manager(actor, req.user_id)
        return req

    def list_for_employee(
        self,
        *,
        actor: Actor,
        employee_id: int,
        year: Optional[int] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[LeaveRequestView]:
        self._require_self_or_manager(actor, employee_id)
        req = PageRequest(page=page, page_size=page_size)
        items, total = self._leaves.list_for_user(
            user_id=int(employee_id), year=year, limit=req.page_size, offset=req.offset
        )
        return Page(items=items, total=total, page=req.page, page_size=req.page_size)

    def list_for_approval(
        self,
        *,
        actor: Actor,
        branch_id: Optional[int] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[LeaveRequestView]:
        self._require_manager(actor)
        if actor.role == Role.SUPER_ADMIN:
            statuses = [LeaveStatus.SUBMITTED, LeaveStatus.TIER1_APPROVED]
        else:
            statuses = [LeaveStatus.SUBMITTED]
            if actor.branch_id is None:
                return Page(items=[], total=0, page=1, page_size=page_size)
            branch_id = actor.branch_id

        req = PageRequest(page=page, page_size=page_size)
        items, total = self._leaves.list_by_statuses(
            statuses=statuses, branch_id=branch_id, limit=req.page_size, offset=req.offset
        )
        return Page(items=items, total=total, page=req.page, page_size=req.page_size)

    def count_awaiting_decision(self, *, actor: Actor) -> int:
        return self.list_for_approval(actor=actor, page=1, page_size=1).total
