import json

import pytest

from src.staff_portal.staff_portal.core.enums import AuditAction, Role
from src.staff_portal.staff_portal.core.exceptions import AuthorizationError
from src.staff_portal.staff_portal.users.model import Actor

ADMIN = Actor(user_id=1, role=Role.SUPER_ADMIN)


def test_record_serializes_dict_details(audit, audit_repo):
    audit.record(
        action=AuditAction.APPROVE,
        entity="LeaveRequest",
        entity_id=7,
        user_id=2,
        details={"from": "SUBMITTED", "to": "TIER1_APPROVED", "comment": "Bon séjour"},
    )

    stored = audit_repo.entries[-1]
    assert json.loads(stored.details) == {"from": "SUBMITTED", "to": "TIER1_APPROVED", "comment": "Bon séjour"}
    assert "séjour" in stored.details


def test_list_logs_filters(audit):
    audit.record(action=AuditAction.CREATE, entity="Activity", entity_id=1, user_id=1, details="created")
    audit.record(action=AuditAction.DELETE, entity="Activity", entity_id=1, user_id=1, details="removed")
    audit.record(action=AuditAction.CREATE, entity="Recommendation", entity_id=2, user_id=2)

    page = audit.list_logs(actor=ADMIN, entity="Activity")
    assert [e.action for e in page.items] == [AuditAction.DELETE, AuditAction.CREATE]

    assert audit.list_logs(actor=ADMIN, action=AuditAction.CREATE, user_id=2).total == 1
    assert audit.list_logs(actor=ADMIN, search="  removed ").total == 1


def test_list_logs_is_admin_only(audit):
    with pytest.raises(AuthorizationError):
        audit.list_logs(actor=Actor(user_id=2, role=Role.BRANCH_MANAGER, branch_id=1))
