from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Role(str, Enum):
    ADMIN = "admin"
    AUTHOR = "author"
    READER = "reader"

    @classmethod
    def parse(cls, value: Any) -> Optional["Role"]:
        """Return the Role for `value`, or None if it isn't one of the three."""
        if isinstance(value, Role):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return None


ALL_ROLES = (Role.ADMIN, Role.AUTHOR, Role.READER)


@dataclass(frozen=True)
class Actor:
    """Who is making a request: user id + role as seen by the caller."""

    id: int
    role: Role


@dataclass(frozen=True)
class PostRef:
    post_id: int
    author_id: Optional[int]


@dataclass(frozen=True)
class CommentRef:
    comment_id: int
    post_id: int
    user_id: Optional[int]
