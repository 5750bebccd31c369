from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from content_guardian.config import Config
from content_guardian.db import connect
from content_guardian.errors import Forbidden, InternalFailure, InvalidToken, Unauthenticated
from content_guardian.models import Actor, Role

from .crud import get_user_by_id
from .security import decode_access_token


_bearer = HTTPBearer(auto_error=False)


def get_config(request: Request) -> Config:
    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise InternalFailure("Server configuration missing", detail="server_config_missing")
    return cfg


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    cfg: Config = Depends(get_config),
) -> Actor:
    """Authenticate a request from its `Authorization: Bearer <jwt>` header.

    The returned role is the snapshot stored in the token. With
    AUTH_REVALIDATE_ROLE enabled the role is re-read from the DB instead, and
    tokens of deleted users are rejected.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Unauthorized", detail="missing_token")

    claims = decode_access_token(token=credentials.credentials, secret=cfg.AUTH_JWT_SECRET)
    actor = Actor(id=claims.id, role=claims.role)

    if cfg.AUTH_REVALIDATE_ROLE:
        with connect(cfg.DB_DSN) as conn:
            row = get_user_by_id(conn, claims.id)
        if row is None:
            raise InvalidToken("Invalid token", detail="user_not_found")
        role = Role.parse(row["role"])
        if role is None:
            raise InvalidToken("Invalid token", detail="token_invalid_role")
        actor = Actor(id=claims.id, role=role)

    return actor


def require_roles(*roles: Role) -> Callable[..., Actor]:
    """Dependency factory: the caller must hold one of `roles`."""
    allowed = frozenset(roles)

    def _dep(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed:
            raise Forbidden("Access denied", detail="role_not_allowed")
        return actor

    return _dep


require_admin = require_roles(Role.ADMIN)
require_author = require_roles(Role.ADMIN, Role.AUTHOR)
