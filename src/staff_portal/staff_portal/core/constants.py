"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7
DEFAULT_PAGE_SIZE = 20
DEFAULT_ANNUAL_LEAVE_DAYS = 30
DEFAULT_WORK_START = "08:00"
DEFAULT_WORK_END = "16:00"
DEFAULT_LATE_THRESHOLD_MINUTES = 15
MIN_PASSWORD_LENGTH = 6
SYSTEM_ACTOR_LABEL = "system"

LEAVE_TYPE_LABELS = {
    "ANNUAL": "Annual leave",
    "SICK": "Sick leave",
    "MATERNITY": "Maternity leave",
    "PATERNITY": "Paternity leave",
    "EXCEPTIONAL": "Exceptional leave",
    "UNPAID": "Unpaid leave",
}

LEAVE_STATUS_LABELS = {
    "DRAFT": "Draft",
    "SUBMITTED": "Submitted",
    "TIER1_APPROVED": "Approved (branch manager)",
    "TIER2_APPROVED": "Approved (final)",
    "REJECTED": "Rejected",
    "CANCELLED": "Cancelled",
}

ACTIVITY_STATUS_LABELS = {
    "PLANNED": "Planned",
    "IN_PROGRESS": "In progress",
    "DONE": "Done",
    "LATE": "Late",
    "CANCELLED": "Cancelled",
    "RESCHEDULED": "Rescheduled",
}

RECOMMENDATION_STATUS_LABELS = {
    "PENDING": "Pending",
    "IN_PROGRESS": "In progress",
    "PARTIALLY_DONE": "Partially done",
    "RESOLVED": "Resolved",
    "LATE": "Late",
    "CANCELLED": "Cancelled",
}

ROLE_LABELS = {
    "super_admin": "Super administrator",
    "branch_manager": "Branch manager",
    "administrative": "Administrative staff",
    "caregiver": "Caregiver",
}
