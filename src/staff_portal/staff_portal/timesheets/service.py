from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, time
from typing import Callable, Optional

from ..audit.service import AuditService
from ..common.datetime_utils import now_local, parse_hhmm
from ..common.validators import optional_text
from ..core.constants import DEFAULT_LATE_THRESHOLD_MINUTES, DEFAULT_WORK_END, DEFAULT_WORK_START
from ..core.enums import AuditAction, TimesheetStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import Actor
from ..users.repository import UserRepository
from . import policy
from .factory import ArrivalStrategyFactory
from .model import MonthSummary, RosterRow, TimesheetEntry
from .repository import TimesheetRepository

logger = logging.getLogger(__name__)

ENTITY = "Timesheet"

_STATUS_LABELS = {
    TimesheetStatus.PRESENT: ("Present", "bg-success"),
    TimesheetStatus.LATE: ("Late", "bg-danger"),
    TimesheetStatus.ABSENT: ("Absent", "bg-secondary"),
    TimesheetStatus.ON_LEAVE: ("On leave", "bg-info text-dark"),
}


class TimesheetService:
    def __init__(
        self,
        timesheets: TimesheetRepository,
        users: UserRepository,
        audit: AuditService,
        *,
        strategy_factory: ArrivalStrategyFactory | None = None,
        work_start: str = DEFAULT_WORK_START,
        work_end: str = DEFAULT_WORK_END,
        late_threshold_minutes: int = DEFAULT_LATE_THRESHOLD_MINUTES,
        clock: Callable[[], datetime] = now_local,
    ):
        self._timesheets = timesheets
        self._users = users
        self._audit = audit
        self._factory = strategy_factory or ArrivalStrategyFactory(threshold_minutes=int(late_threshold_minutes))
        self._work_start = parse_hhmm(work_start)
        self._work_end = parse_hhmm(work_end)
        self._clock = clock

    @staticmethod
    def _require_self_or_manager(actor: Actor, user_id: int) -> None:
        if actor.user_id != int(user_id) and not actor.is_manager:
            raise AuthorizationError("You can only manage your own timesheet")

    def _expected_hours(self, user_id: int) -> tuple[time, time]:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("Employee not found")
        return user.work_start or self._work_start, user.work_end or self._work_end

    def check_in(
        self,
        *,
        actor: Actor,
        user_id: int,
        now: Optional[datetime] = None,
        observations: Optional[str] = None,
    ) -> TimesheetEntry:
        self._require_self_or_manager(actor, user_id)
        now = now or self._clock()
        today = now.date()

        if self._timesheets.get_for_user_and_date(int(user_id), today):
            raise ValidationError("A check-in already exists for today")

        start, _ = self._expected_hours(user_id)
        expected_start = datetime.combine(today, start)
        strategy = self._factory.for_arrival(arrived_at=now, expected_start=expected_start)
        decision = strategy.decide(arrived_at=now, expected_start=expected_start)

        entry_id = self._timesheets.create_entry(
            user_id=int(user_id),
            work_date=today,
            status=decision.status,
            arrived_at=now,
            late_minutes=decision.late_minutes,
            observations=optional_text(observations),
        )
        details = f"Check-in: {decision.status.value}"
        if decision.late_minutes:
            details += f" ({decision.late_minutes} min late)"
        self._audit.record(
            action=AuditAction.CREATE, entity=ENTITY, entity_id=entry_id, user_id=actor.user_id, details=details
        )
        return TimesheetEntry(
            entry_id=entry_id,
            user_id=int(user_id),
            work_date=today,
            status=decision.status,
            arrived_at=now,
            late_minutes=decision.late_minutes,
            observations=optional_text(observations),
        )

    def check_out(self, *, actor: Actor, user_id: int, now: Optional[datetime] = None) -> TimesheetEntry:
        self._require_self_or_manager(actor, user_id)
        now = now or self._clock()
        today = now.date()

        entry = self._timesheets.get_for_user_and_date(int(user_id), today)
        if not entry or entry.arrived_at is None:
            raise ValidationError("No check-in found for today, please check in first")
        if entry.left_at is not None:
            raise ValidationError("Check-out was already recorded today")

        _, end = self._expected_hours(user_id)
        overtime = policy.compute_overtime(now, end)
        if not self._timesheets.update_checkout(entry_id=entry.entry_id, left_at=now, overtime_hours=overtime):
            raise ValidationError("Check-out was already recorded today")

        details = "Check-out" + (f" ({overtime}h overtime)" if overtime > 0 else "")
        self._audit.record(
            action=AuditAction.UPDATE, entity=ENTITY, entity_id=entry.entry_id, user_id=actor.user_id, details=details
        )
        return TimesheetEntry(
            entry_id=entry.entry_id,
            user_id=entry.user_id,
            work_date=entry.work_date,
            status=entry.status,
            arrived_at=entry.arrived_at,
            left_at=now,
            late_minutes=entry.late_minutes,
            overtime_hours=overtime,
            observations=entry.observations,
        )

    def mark_absent(
        self, *, actor: Actor, user_id: int, work_date: date, observations: Optional[str] = None
    ) -> int:
        if not actor.is_manager:
            raise AuthorizationError("Only managers can mark an absence")
        if self._timesheets.get_for_user_and_date(int(user_id), work_date):
            raise ValidationError("A timesheet entry already exists for this day")
        self._expected_hours(user_id)

        entry_id = self._timesheets.create_entry(
            user_id=int(user_id),
            work_date=work_date,
            status=TimesheetStatus.ABSENT,
            observations=optional_text(observations),
        )
        self._audit.record(
            action=AuditAction.CREATE,
            entity=ENTITY,
            entity_id=entry_id,
            user_id=actor.user_id,
            details=f"Absence recorded for {work_date.isoformat()}",
        )
        logger.info("User %s marked absent on %s by %s", user_id, work_date, actor.user_id)
        return entry_id

    def list_month(self, *, actor: Actor, user_id: int, year: int, month: int) -> list[TimesheetEntry]:
        self._require_self_or_manager(actor, user_id)
        if not 1 <= int(month) <= 12:
            raise ValidationError("Month must be between 1 and 12")
        last_day = calendar.monthrange(int(year), int(month))[1]
        return list(
            self._timesheets.list_for_user_between(
                user_id=int(user_id),
                start_date=date(int(year), int(month), 1),
                end_date=date(int(year), int(month), last_day),
            )
        )

    def month_summary(self, *, actor: Actor, user_id: int, year: int, month: int) -> MonthSummary:
        return policy.summarize_month(self.list_month(actor=actor, user_id=user_id, year=year, month=month))

    def list_branch_day(
        self, *, actor: Actor, branch_id: Optional[int] = None, work_date: Optional[date] = None
    ) -> list[RosterRow]:
        """Every active member of a branch with their entry for `work_date` (today by default).

        Branch managers only see their own branch; the super admin picks one.
        """
        if not actor.is_manager:
            raise AuthorizationError("Only managers can view a branch roster")
        if not actor.is_super_admin:
            if actor.branch_id is None or (branch_id is not None and int(branch_id) != actor.branch_id):
                raise AuthorizationError("You can only view your own branch")
            branch_id = actor.branch_id
        elif branch_id is None:
            raise ValidationError("Choose a branch")

        work_date = work_date or self._clock().date()
        members = list(self._users.list_by_branch(int(branch_id)))
        entries = {
            e.user_id: e
            for e in self._timesheets.list_for_users_on(user_ids=[u.user_id for u in members], work_date=work_date)
        }
        return [
            RosterRow(user_id=u.user_id, full_name=u.full_name, role=u.role, entry=entries.get(u.user_id))
            for u in members
        ]

    def get_today(self, *, user_id: int) -> Optional[TimesheetEntry]:
        return self._timesheets.get_for_user_and_date(int(user_id), self._clock().date())

    @staticmethod
    def to_ui(entry: TimesheetEntry) -> dict:
        label, css = _STATUS_LABELS.get(entry.status, (entry.status.value, "bg-secondary"))
        return {
            "date": entry.work_date.strftime("%Y-%m-%d"),
            "arrived_at": entry.arrived_at.strftime("%H:%M") if entry.arrived_at else "-",
            "left_at": entry.left_at.strftime("%H:%M") if entry.left_at else "-",
            "status": label,
            "css_class": css,
            "late_minutes": entry.late_minutes,
            "overtime_hours": entry.overtime_hours,
            "observations": entry.observations or "",
        }
