from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    SUPER_ADMIN = "super_admin"
    BRANCH_MANAGER = "branch_manager"
    ADMINISTRATIVE = "administrative"
    CAREGIVER = "caregiver"


class LeaveType(str, Enum):
    ANNUAL = "ANNUAL"
    SICK = "SICK"
    MATERNITY = "MATERNITY"
    PATERNITY = "PATERNITY"
    EXCEPTIONAL = "EXCEPTIONAL"
    UNPAID = "UNPAID"


class LeaveStatus(str, Enum):
    """Leave request lifecycle (draft -> submitted -> tier 1 -> tier 2)."""

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    TIER1_APPROVED = "TIER1_APPROVED"
    TIER2_APPROVED = "TIER2_APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class TimesheetStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    ON_LEAVE = "ON_LEAVE"


class ActivityStatus(str, Enum):
    PLANNED = "PLANNED"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    LATE = "LATE"
    CANCELLED = "CANCELLED"
    RESCHEDULED = "RESCHEDULED"


class ActivityKind(str, Enum):
    ONE_OFF = "ONE_OFF"
    PERIODIC = "PERIODIC"


class Frequency(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class RecommendationStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    PARTIALLY_DONE = "PARTIALLY_DONE"
    RESOLVED = "RESOLVED"
    LATE = "LATE"
    CANCELLED = "CANCELLED"


class RecommendationSource(str, Enum):
    ACTIVITY = "ACTIVITY"
    MEETING = "MEETING"
    SUPERVISION = "SUPERVISION"
    TRAINING = "TRAINING"


class ResolutionKind(str, Enum):
    PERMANENT = "PERMANENT"
    ONE_OFF = "ONE_OFF"
    PERIODIC = "PERIODIC"


class Priority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class NotificationType(str, Enum):
    LEAVE_SUBMITTED = "LEAVE_SUBMITTED"
    LEAVE_APPROVED = "LEAVE_APPROVED"
    LEAVE_REJECTED = "LEAVE_REJECTED"
    ACTIVITY_ASSIGNED = "ACTIVITY_ASSIGNED"
    ACTIVITY_LATE = "ACTIVITY_LATE"
    RECOMMENDATION_ASSIGNED = "RECOMMENDATION_ASSIGNED"
    RECOMMENDATION_LATE = "RECOMMENDATION_LATE"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    STATUS_CHANGE = "STATUS_CHANGE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
