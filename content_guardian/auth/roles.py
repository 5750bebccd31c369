"""Role lifecycle rules (admin transitions).

Guards run in a fixed order and the first failure wins:

1. the caller must still be an admin according to the DB, not the token
2. nobody may change their own role
3. the new role must be exactly "admin", "author" or "reader"
4. the last admin can't be demoted (at least one admin must remain)
5. no more than MAX_ADMINS admins

`admin_count` may be an int or a zero-argument callable; the callable is
only invoked when guard 4 or 5 actually needs the number.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Union

from content_guardian.errors import (
    AdminCeilingReached,
    InvalidRole,
    LastAdminProtection,
    PrivilegeRevoked,
    SelfModificationForbidden,
)
from content_guardian.models import Actor, Role


MAX_ADMINS = 5

AdminCount = Union[int, Callable[[], int]]


def _resolve(admin_count: AdminCount) -> int:
    if callable(admin_count):
        return int(admin_count())
    return int(admin_count)


def _exact_role(value: Any) -> Optional[Role]:
    """Role names must match exactly; no trimming or case folding."""
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role(value)
    except ValueError:
        return None


def ensure_still_admin(current: Optional[Actor]) -> Actor:
    """`current` is the caller as re-read from the DB (None if the row is gone)."""
    if current is None or current.role is not Role.ADMIN:
        raise PrivilegeRevoked()
    return current


def check_role_change(
    current: Optional[Actor],
    target: Actor,
    new_role: Any,
    admin_count: AdminCount,
    *,
    max_admins: int = MAX_ADMINS,
) -> Role:
    """Validate `current` changing `target`'s role to `new_role`.

    Returns the parsed Role when every guard passes; the caller then persists
    it. Raises PrivilegeRevoked, SelfModificationForbidden, InvalidRole,
    LastAdminProtection or AdminCeilingReached otherwise.
    """
    actor = ensure_still_admin(current)

    if actor.id == target.id:
        raise SelfModificationForbidden()

    role = _exact_role(new_role)
    if role is None:
        raise InvalidRole()

    if target.role is Role.ADMIN and role is not Role.ADMIN:
        if _resolve(admin_count) <= 1:
            raise LastAdminProtection()

    if target.role is not Role.ADMIN and role is Role.ADMIN:
        if _resolve(admin_count) >= max_admins:
            raise AdminCeilingReached(f"Maximum number of admins ({max_admins}) already reached")

    return role


def check_user_delete(current: Optional[Actor], target: Actor, admin_count: AdminCount) -> None:
    """Deleting an admin must not leave the system without one."""
    ensure_still_admin(current)
    if target.role is Role.ADMIN and _resolve(admin_count) <= 1:
        raise LastAdminProtection("Cannot delete user: System requires at least one admin")
