"""Error taxonomy shared by the stores, the policy layer and the API.

Each error carries an HTTP status, a stable machine-readable `detail` code
(what the frontend switches on) and a human-readable `message`. The API turns
them into `{"detail": ..., "message": ...}` JSON bodies.
"""

from __future__ import annotations

from typing import Optional


class ApiError(Exception):
    status_code: int = 500
    default_detail: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = detail or self.default_detail
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = 400
    default_detail = "invalid_request"
    default_message = "Invalid request"


class Unauthenticated(ApiError):
    status_code = 401
    default_detail = "unauthorized"
    default_message = "Unauthorized"


class Forbidden(ApiError):
    status_code = 403
    default_detail = "access_denied"
    default_message = "Access denied"


class NotFound(ApiError):
    status_code = 404
    default_detail = "not_found"
    default_message = "Not found"


class InternalFailure(ApiError):
    pass


# -----------------------------
# Token failures
# -----------------------------


class InvalidToken(Unauthenticated):
    default_detail = "token_invalid"
    default_message = "Invalid token"


# -----------------------------
# Role lifecycle failures
# -----------------------------


class PrivilegeRevoked(Forbidden):
    default_detail = "privilege_revoked"
    default_message = "You no longer have admin privileges"


class SelfModificationForbidden(Forbidden):
    default_detail = "self_modification_forbidden"
    default_message = "Cannot modify your own role for security reasons"


class InvalidRole(ValidationError):
    default_detail = "invalid_role"
    default_message = "Invalid role"


class LastAdminProtection(Forbidden):
    default_detail = "last_admin_protection"
    default_message = "Cannot change role: System requires at least one admin"


class AdminCeilingReached(Forbidden):
    default_detail = "admin_ceiling_reached"
    default_message = "Maximum number of admins already reached"
