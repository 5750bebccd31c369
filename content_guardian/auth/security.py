from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict

import jwt
from passlib.context import CryptContext

from content_guardian.errors import InvalidToken
from content_guardian.models import Role
from content_guardian.util.time import utcnow


_pwd = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
_JWT_ALG = "HS256"

DEFAULT_TOKEN_EXPIRE_DAYS = 30


@dataclass(frozen=True)
class TokenClaims:
    id: int
    role: Role


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("password_blank")
    return _pwd.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return _pwd.verify(password, password_hash)
    except (ValueError, TypeError):
        # Unknown / corrupted hash format.
        return False


def create_access_token(
    *,
    secret: str,
    user_id: int,
    role: Role | str,
    expires_days: int = DEFAULT_TOKEN_EXPIRE_DAYS,
) -> str:
    """Sign a token carrying the user's id and a snapshot of their role."""
    if not secret:
        raise ValueError("jwt_secret_blank")
    r = Role.parse(role)
    if r is None:
        raise ValueError("invalid_role")

    now = utcnow()
    exp = now + timedelta(days=max(1, int(expires_days)))

    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "id": int(user_id),
        "role": r.value,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=_JWT_ALG)


def decode_access_token(*, token: str, secret: str) -> TokenClaims:
    """Verify signature + expiry and return the embedded identity.

    Raises InvalidToken for anything that isn't a well-formed, unexpired token
    signed with `secret`.
    """
    if not token:
        raise InvalidToken("Unauthorized", detail="missing_token")
    if not secret:
        raise ValueError("jwt_secret_blank")

    try:
        payload = jwt.decode(token, secret, algorithms=[_JWT_ALG])
    except jwt.ExpiredSignatureError:
        raise InvalidToken("Token expired", detail="token_expired")
    except jwt.InvalidTokenError:
        raise InvalidToken("Invalid token", detail="token_invalid")

    raw_id = payload.get("id", payload.get("sub"))
    try:
        user_id = int(raw_id)
    except (TypeError, ValueError):
        raise InvalidToken("Invalid token", detail="token_missing_sub")

    role = Role.parse(payload.get("role"))
    if role is None:
        raise InvalidToken("Invalid token", detail="token_invalid_role")

    return TokenClaims(id=user_id, role=role)
