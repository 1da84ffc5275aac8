import pytest
from werkzeug.security import check_password_hash, generate_password_hash

from src.staff_portal.staff_portal.core.enums import AuditAction, Role
from src.staff_portal.staff_portal.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from src.staff_portal.staff_portal.users.model import Actor
from src.staff_portal.staff_portal.users.service import AuthService, BranchService, UserService

ADMIN = Actor(user_id=1, role=Role.SUPER_ADMIN)
MANAGER = Actor(user_id=2, role=Role.BRANCH_MANAGER, branch_id=1)


def _account(service, **kwargs):
    params = dict(
        actor=ADMIN,
        first_name="Gus",
        last_name="Moreau",
        email="Gus@Example.com",
        username="gus",
        password="secret1",
        role=Role.CAREGIVER,
        branch_id=1,
    )
    params.update(kwargs)
    return service.create_account(**params)


def test_created_account_can_log_in(users_repo, branches_repo, audit):
    users = UserService(users_repo, branches_repo, audit)
    user_id = _account(users)

    session_user = AuthService(users_repo, branches_repo).authenticate("gus", "secret1")

    assert session_user.user_id == user_id
    assert session_user.branch_name == "North"
    assert session_user.to_actor() == Actor(user_id=user_id, role=Role.CAREGIVER, branch_id=1)
    assert users_repo.get_by_id(user_id).email == "gus@example.com"


def test_wrong_password_and_inactive_accounts_are_refused(users_repo, branches_repo, audit):
    users = UserService(users_repo, branches_repo, audit)
    auth = AuthService(users_repo, branches_repo)
    user_id = _account(users)

    with pytest.raises(AuthenticationError):
        auth.authenticate("gus", "wrong")

    users.set_active(actor=ADMIN, user_id=user_id, is_active=False)
    with pytest.raises(AuthenticationError):
        auth.authenticate("gus", "secret1")


def test_placeholder_hash_never_matches(users_repo, branches_repo):
    # seeded rows may carry a non-hash placeholder
    with pytest.raises(AuthenticationError):
        AuthService(users_repo, branches_repo).authenticate("user3", "x")


@pytest.mark.parametrize(
    "overrides,error",
    [
        ({"actor": MANAGER}, AuthorizationError),
        ({"email": "not-an-email"}, ValidationError),
        ({"password": "123"}, ValidationError),
        ({"username": "user3"}, ValidationError),
        ({"role": Role.BRANCH_MANAGER, "branch_id": None}, ValidationError),
        ({"branch_id": 99}, NotFoundError),
    ],
)
def test_create_account_rules(users_repo, branches_repo, audit, overrides, error):
    with pytest.raises(error):
        _account(UserService(users_repo, branches_repo, audit), **overrides)


def test_admin_cannot_disable_themselves(users_repo, branches_repo, audit):
    with pytest.raises(ValidationError):
        UserService(users_repo, branches_repo, audit).set_active(actor=ADMIN, user_id=1, is_active=False)


def test_branch_codes_are_unique_and_upper_cased(branches_repo, audit):
    service = BranchService(branches_repo, audit)
    branch_id = service.create_branch(actor=ADMIN, name="East", code="east")

    assert branches_repo.get_by_id(branch_id).code == "EAST"
    with pytest.raises(ValidationError):
        service.create_branch(actor=ADMIN, name="East again", code="EAST")
    with pytest.raises(AuthorizationError):
        service.create_branch(actor=MANAGER, name="West", code="WEST")


def test_hash_helper_matches_login_check(users_repo, branches_repo):
    users_repo.create_user(
        first_name="Hal",
        last_name="Roux",
        email="hal@example.com",
        username="hal",
        password_hash=generate_password_hash("pass1234"),
        role=Role.ADMINISTRATIVE,
        branch_id=None,
    )
    assert AuthService(users_repo, branches_repo).authenticate(" hal ", "pass1234").branch_name is None


@pytest.fixture
def users(users_repo, branches_repo, audit):
    return UserService(users_repo, branches_repo, audit)


@pytest.fixture
def branches(branches_repo, audit):
    return BranchService(branches_repo, audit)


def _edit(service, user_id, **kwargs):
    current = service.get_account(actor=ADMIN, user_id=user_id)
    params = dict(
        actor=ADMIN,
        user_id=user_id,
        first_name=current.first_name,
        last_name=current.last_name,
        email=current.email,
        username=current.username,
        role=current.role,
        branch_id=current.branch_id,
    )
    params.update(kwargs)
    return service.update_account(**params)


def test_account_creation_is_audited(users, audit_repo):
    user_id = _account(users)

    entry = audit_repo.entries[-1]
    assert (entry.action, entry.entity, entry.entity_id, entry.user_id) == (AuditAction.CREATE, "User", user_id, 1)


def test_admin_edits_profile_and_keeps_password_when_blank(users, users_repo, audit_repo):
    before = users_repo.get_by_id(3).password_hash

    updated = _edit(users, 3, first_name=" Clea ", email="Clea@Example.com", role=Role.ADMINISTRATIVE, branch_id=2)

    assert (updated.first_name, updated.email, updated.role, updated.branch_id) == (
        "Clea",
        "clea@example.com",
        Role.ADMINISTRATIVE,
        2,
    )
    assert updated.password_hash == before
    entry = audit_repo.entries[-1]
    assert (entry.action, entry.entity_id) == (AuditAction.UPDATE, 3)
    assert '"password_changed": false' in entry.details


def test_new_password_is_hashed(users, users_repo):
    _edit(users, 3, password="newpass1")

    assert check_password_hash(users_repo.get_by_id(3).password_hash, "newpass1")


def test_short_new_password_is_refused(users, users_repo):
    with pytest.raises(ValidationError):
        _edit(users, 3, password="123")
    assert users_repo.get_by_id(3).password_hash == "x"


def test_user_may_keep_their_own_email(users):
    assert _edit(users, 3, email="user3@example.com").email == "user3@example.com"


@pytest.mark.parametrize("field,value", [("email", "user4@example.com"), ("username", "user4")])
def test_edit_refuses_identity_of_another_account(users, users_repo, field, value):
    with pytest.raises(ValidationError):
        _edit(users, 3, **{field: value})
    assert users_repo.get_by_id(3).email == "user3@example.com"


def test_branch_manager_edits_own_branch_member(users):
    updated = _edit(users, 3, actor=MANAGER, last_name="Dupont")

    assert updated.last_name == "Dupont"
    assert updated.branch_id == 1


@pytest.mark.parametrize(
    "user_id,overrides",
    [
        (6, {}),
        (3, {"role": Role.SUPER_ADMIN}),
        (3, {"branch_id": 2}),
        (3, {"branch_id": None}),
    ],
)
def test_branch_manager_limits(users, users_repo, user_id, overrides):
    before = users_repo.get_by_id(user_id)

    with pytest.raises(AuthorizationError):
        _edit(users, user_id, actor=MANAGER, **overrides)
    assert users_repo.get_by_id(user_id) == before


def test_employees_cannot_edit_accounts(users):
    with pytest.raises(AuthorizationError):
        _edit(users, 3, actor=Actor(user_id=3, role=Role.CAREGIVER, branch_id=1), last_name="Self")


def test_nobody_changes_their_own_role(users):
    with pytest.raises(ValidationError):
        _edit(users, 2, actor=MANAGER, role=Role.CAREGIVER)
    with pytest.raises(ValidationError):
        _edit(users, 1, role=Role.BRANCH_MANAGER, branch_id=1)


def test_get_account_scoping(users):
    caregiver = Actor(user_id=3, role=Role.CAREGIVER, branch_id=1)

    assert users.get_account(actor=caregiver, user_id=3).user_id == 3
    assert users.get_account(actor=MANAGER, user_id=4).user_id == 4
    with pytest.raises(AuthorizationError):
        users.get_account(actor=caregiver, user_id=4)
    with pytest.raises(AuthorizationError):
        users.get_account(actor=MANAGER, user_id=6)
    with pytest.raises(NotFoundError):
        users.get_account(actor=ADMIN, user_id=99)


def test_update_branch_renames_and_audits(branches, branches_repo, audit_repo):
    updated = branches.update_branch(actor=ADMIN, branch_id=1, name="North Side", code="nrt")

    assert (updated.name, updated.code) == ("North Side", "NRT")
    assert branches_repo.get_by_id(1) == updated
    assert (audit_repo.entries[-1].action, audit_repo.entries[-1].entity) == (AuditAction.UPDATE, "Branch")


def test_update_branch_keeps_own_code_but_not_anothers(branches):
    assert branches.update_branch(actor=ADMIN, branch_id=1, name="Nord", code="NORTH").code == "NORTH"
    with pytest.raises(ValidationError):
        branches.update_branch(actor=ADMIN, branch_id=1, name="Nord", code="south")
    with pytest.raises(NotFoundError):
        branches.update_branch(actor=ADMIN, branch_id=99, name="Nowhere", code="NOW")
    with pytest.raises(AuthorizationError):
        branches.update_branch(actor=MANAGER, branch_id=1, name="Mine", code="MINE")


def test_deactivated_branch_is_kept_but_hidden(branches, branches_repo, audit_repo):
    branches.deactivate_branch(actor=ADMIN, branch_id=2)

    assert branches_repo.get_by_id(2).is_active is False
    assert [b.branch_id for b in branches.list_branches()] == [1, 2]
    assert [b.branch_id for b in branches.list_branches(active_only=True)] == [1]
    entry = audit_repo.entries[-1]
    assert (entry.action, entry.entity, entry.entity_id) == (AuditAction.DELETE, "Branch", 2)

    with pytest.raises(InvalidStateError):
        branches.deactivate_branch(actor=ADMIN, branch_id=2)
    assert len(audit_repo.entries) == 1


def test_inactive_branch_takes_no_new_members(branches, users):
    branches.deactivate_branch(actor=ADMIN, branch_id=2)

    with pytest.raises(ValidationError):
        _account(users, branch_id=2)
    with pytest.raises(ValidationError):
        _edit(users, 3, branch_id=2)
