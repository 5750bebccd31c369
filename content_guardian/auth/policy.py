"""Authorization policy for posts and comments.

Pure decision functions: they look only at the actor (id + role) and the
target's ownership fields, never at the database. Handlers load the target,
ask the policy, and only persist after an allow.

    Post create          admin, author
    Post read / list     everyone (no token needed)
    Post update / delete admin, or an author who owns the post
    Comment create       any authenticated user
    Comment delete       admin, the post's author, or the comment's author
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from content_guardian.errors import Forbidden, Unauthenticated
from content_guardian.models import Actor, CommentRef, PostRef, Role


class Action(str, Enum):
    POST_CREATE = "post:create"
    POST_READ = "post:read"
    POST_UPDATE = "post:update"
    POST_DELETE = "post:delete"
    COMMENT_CREATE = "comment:create"
    COMMENT_DELETE = "comment:delete"


@dataclass(frozen=True)
class CommentTarget:
    post: PostRef
    comment: CommentRef


Resource = Union[PostRef, CommentTarget, None]


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None
    message: Optional[str] = None


ALLOW = Decision(True)


def _deny(reason: str, message: str) -> Decision:
    return Decision(False, reason=reason, message=message)


def _can_author_posts(role: Role) -> bool:
    if role is Role.ADMIN:
        return True
    if role is Role.AUTHOR:
        return True
    if role is Role.READER:
        return False
    raise AssertionError(f"unhandled role: {role!r}")


def _decide_post_write(actor: Actor, action: Action, post: PostRef) -> Decision:
    if not _can_author_posts(actor.role):
        return _deny("role_not_allowed", "Access denied")
    if actor.role is Role.ADMIN:
        return ALLOW
    if post.author_id is not None and post.author_id == actor.id:
        return ALLOW
    verb = "update" if action is Action.POST_UPDATE else "delete"
    return _deny("not_post_owner", f"Access denied: You are not authorized to {verb} this post")


def _decide_comment_delete(actor: Actor, target: CommentTarget) -> Decision:
    if actor.role is Role.ADMIN:
        return ALLOW
    if target.post.author_id is not None and target.post.author_id == actor.id:
        return ALLOW
    if target.comment.user_id is not None and target.comment.user_id == actor.id:
        return ALLOW
    return _deny("not_comment_owner", "Access denied: You are not authorized to delete this comment")


def decide(actor: Optional[Actor], action: Action, resource: Resource = None) -> Decision:
    """Return allow/deny for `actor` performing `action` on `resource`.

    `actor` is None for anonymous requests. `resource` is the PostRef for post
    update/delete, a CommentTarget for comment delete, and ignored otherwise.
    """
    if action is Action.POST_READ:
        return ALLOW

    if actor is None:
        return _deny("unauthenticated", "Unauthorized")

    if action is Action.POST_CREATE:
        if _can_author_posts(actor.role):
            return ALLOW
        return _deny("role_not_allowed", "Access denied")

    if action in (Action.POST_UPDATE, Action.POST_DELETE):
        if not isinstance(resource, PostRef):
            raise TypeError(f"{action.value} needs a PostRef, got {type(resource).__name__}")
        return _decide_post_write(actor, action, resource)

    if action is Action.COMMENT_CREATE:
        # Every role may comment; the token already proved who the caller is.
        if actor.role in (Role.ADMIN, Role.AUTHOR, Role.READER):
            return ALLOW
        return _deny("role_not_allowed", "Access denied")

    if action is Action.COMMENT_DELETE:
        if not isinstance(resource, CommentTarget):
            raise TypeError(f"{action.value} needs a CommentTarget, got {type(resource).__name__}")
        return _decide_comment_delete(actor, resource)

    raise AssertionError(f"unhandled action: {action!r}")


def ensure_allowed(actor: Optional[Actor], action: Action, resource: Resource = None) -> None:
    """Raise Forbidden (or Unauthenticated for anonymous callers) unless allowed."""
    d = decide(actor, action, resource)
    if not d.allowed:
        if actor is None:
            raise Unauthenticated(d.message, detail=d.reason)
        raise Forbidden(d.message, detail=d.reason)
