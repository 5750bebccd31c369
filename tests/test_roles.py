import pytest

from content_guardian.auth.roles import MAX_ADMINS, check_role_change, check_user_delete
from content_guardian.errors import (
    AdminCeilingReached,
    InvalidRole,
    LastAdminProtection,
    PrivilegeRevoked,
    SelfModificationForbidden,
)
from content_guardian.models import Actor, Role


ADMIN = Actor(id=1, role=Role.ADMIN)
OTHER_ADMIN = Actor(id=2, role=Role.ADMIN)
READER = Actor(id=3, role=Role.READER)


def _unused():
    raise AssertionError("admin count should not be read")


def test_promote_reader_to_author():
    assert check_role_change(ADMIN, READER, "author", _unused) is Role.AUTHOR


def test_caller_demoted_since_token_was_issued():
    demoted = Actor(id=ADMIN.id, role=Role.AUTHOR)
    with pytest.raises(PrivilegeRevoked):
        check_role_change(demoted, READER, "author", 2)


def test_caller_deleted_since_token_was_issued():
    with pytest.raises(PrivilegeRevoked):
        check_role_change(None, READER, "author", 2)


@pytest.mark.parametrize("new_role", ["admin", "author", "reader"])
def test_self_modification_always_forbidden(new_role):
    # Even when the caller is the only admin.
    with pytest.raises(SelfModificationForbidden):
        check_role_change(ADMIN, ADMIN, new_role, 1)


@pytest.mark.parametrize("new_role", ["superuser", "", None, 5, ["admin"]])
def test_invalid_role(new_role):
    with pytest.raises(InvalidRole) as exc:
        check_role_change(ADMIN, READER, new_role, 1)
    assert exc.value.status_code == 400


@pytest.mark.parametrize("new_role", [" Admin ", "Author", "READER", "reader "])
def test_role_name_must_match_exactly(new_role):
    with pytest.raises(InvalidRole):
        check_role_change(ADMIN, READER, new_role, 1)


def test_guard_order_self_before_invalid_role():
    with pytest.raises(SelfModificationForbidden):
        check_role_change(ADMIN, ADMIN, "nonsense", 1)


def test_guard_order_privilege_before_self():
    with pytest.raises(PrivilegeRevoked):
        check_role_change(Actor(id=1, role=Role.READER), Actor(id=1, role=Role.READER), "admin", 0)


@pytest.mark.parametrize("new_role", ["author", "reader"])
def test_last_admin_cannot_be_demoted(new_role):
    with pytest.raises(LastAdminProtection):
        check_role_change(ADMIN, OTHER_ADMIN, new_role, 1)


def test_demote_admin_when_another_remains():
    assert check_role_change(ADMIN, OTHER_ADMIN, "reader", 2) is Role.READER


def test_admin_ceiling():
    with pytest.raises(AdminCeilingReached):
        check_role_change(ADMIN, READER, "admin", MAX_ADMINS)
    assert check_role_change(ADMIN, READER, "admin", MAX_ADMINS - 1) is Role.ADMIN


def test_admin_ceiling_is_configurable():
    with pytest.raises(AdminCeilingReached):
        check_role_change(ADMIN, READER, "admin", 2, max_admins=2)


def test_admin_to_admin_skips_count():
    assert check_role_change(ADMIN, OTHER_ADMIN, "admin", _unused) is Role.ADMIN


def test_admin_count_callable_is_used():
    calls = []

    def count():
        calls.append(1)
        return 1

    with pytest.raises(LastAdminProtection):
        check_role_change(ADMIN, OTHER_ADMIN, "author", count)
    assert calls == [1]


def test_delete_last_admin_rejected():
    with pytest.raises(LastAdminProtection):
        check_user_delete(ADMIN, ADMIN, 1)


def test_delete_reader_allowed():
    check_user_delete(ADMIN, READER, _unused)


def test_delete_requires_current_admin():
    with pytest.raises(PrivilegeRevoked):
        check_user_delete(Actor(id=1, role=Role.AUTHOR), READER, 2)
