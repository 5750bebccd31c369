"""Authentication / authorization.

- Users table (name/email/password hash + role)
- JWT access tokens carrying `{id, role}` (30 day expiry by default)
- `policy`: who may do what to posts and comments
- `roles`: guards around admin role transitions

Requests authenticate with `Authorization: Bearer <token>`.
"""

from .crud import create_user, register_user
from .deps import get_current_actor, require_admin, require_author, require_roles

__all__ = [
    "get_current_actor",
    "require_admin",
    "require_author",
    "require_roles",
    "create_user",
    "register_user",
]
