from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from content_guardian import __version__
from content_guardian.auth import get_current_actor, require_admin, require_author
from content_guardian.auth.crud import (
    count_admins,
    delete_user,
    get_user_by_id,
    list_users,
    public_user,
    register_user,
    touch_last_login,
    update_user_role,
    user_stats,
    verify_user_credentials,
)
from content_guardian.auth.deps import get_config
from content_guardian.auth.policy import Action, CommentTarget, ensure_allowed
from content_guardian.auth.roles import check_role_change, check_user_delete
from content_guardian.auth.security import create_access_token
from content_guardian.config import Config, load_config
from content_guardian.db import connect, init_db
from content_guardian.errors import ApiError, InvalidToken, NotFound, Unauthenticated, ValidationError
from content_guardian.models import Actor, PostRef, Role
from content_guardian.posts import crud as posts
from content_guardian.util.ids import parse_id


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


# -----------------------------
# Error rendering
# -----------------------------


def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "message": exc.message},
        headers=headers,
    )


def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed bodies are client errors like any other validation failure.
    return JSONResponse(
        status_code=400,
        content={
            "detail": "invalid_request",
            "message": "Invalid request body",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    _debug(f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "internal_error", "message": "Server error"},
    )


def _value_error(e: ValueError) -> ValidationError:
    """Map store-level ValueError codes onto a 400."""
    code = str(e)
    messages = {
        "user_exists": "User already exists",
        "name_blank": "Name is required",
        "email_blank": "Email is required",
        "password_blank": "Password is required",
        "title_blank": "Title is required",
        "content_blank": "Content is required",
        "comment_blank": "Comment is required",
        "invalid_role": "Invalid role",
    }
    return ValidationError(messages.get(code, "Invalid request"), detail=code)


def _actor_from_row(row: Any) -> Optional[Actor]:
    if row is None:
        return None
    return Actor(id=int(row["user_id"]), role=Role(str(row["role"])))


def _token_response(cfg: Config, user: Dict[str, Any]) -> Dict[str, Any]:
    token = create_access_token(
        secret=cfg.AUTH_JWT_SECRET,
        user_id=int(user["user_id"]),
        role=str(user["role"]),
        expires_days=int(cfg.AUTH_TOKEN_EXPIRE_DAYS),
    )
    return {"access_token": token, "token_type": "bearer", "user": user}


# -----------------------------
# Auth
# -----------------------------

auth_router = APIRouter()


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


class UpdateRoleRequest(BaseModel):
    # Checked by check_role_change after the caller and target guards.
    role: Any = None


@auth_router.post("/register", status_code=201)
def auth_register(payload: RegisterRequest, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    """Create an account. The very first account becomes admin; later ones are readers."""
    name = (payload.name or "").strip()
    email = (payload.email or "").strip().lower()
    password = payload.password or ""
    if not name:
        raise ValidationError("Name is required", detail="name_blank")
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        raise ValidationError("Invalid email address", detail="invalid_email")
    if len(password) < cfg.AUTH_MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {cfg.AUTH_MIN_PASSWORD_LENGTH} characters",
            detail="password_too_short",
        )

    with connect(cfg.DB_DSN) as conn:
        try:
            u = register_user(conn, name=name, email=email, password=password)
        except ValueError as e:
            raise _value_error(e)

    _debug(f"Registered user_id={u['user_id']} role={u['role']}")
    return _token_response(cfg, u)


@auth_router.post("/login")
def auth_login(payload: LoginRequest, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        row = verify_user_credentials(conn, payload.email, payload.password)
        if row is None:
            raise Unauthenticated("Invalid email or password", detail="invalid_credentials")

        touch_last_login(conn, int(row["user_id"]))
        u = public_user(get_user_by_id(conn, int(row["user_id"])))

    return _token_response(cfg, u)


@auth_router.get("/profile")
def auth_profile(
    actor: Actor = Depends(get_current_actor),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        row = get_user_by_id(conn, actor.id)
    if row is None:
        raise NotFound("User not found", detail="user_not_found")
    return {"user": public_user(row)}


# Admin: user management


@auth_router.get("/users")
def admin_list_users(
    _admin: Actor = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> List[Dict[str, Any]]:
    with connect(cfg.DB_DSN) as conn:
        return list_users(conn)


@auth_router.get("/users/{user_id}")
def admin_get_user(
    user_id: str,
    _admin: Actor = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    uid = parse_id(user_id, kind="user")
    with connect(cfg.DB_DSN) as conn:
        row = get_user_by_id(conn, uid)
    if row is None:
        raise NotFound("User not found", detail="user_not_found")
    return public_user(row)


@auth_router.delete("/users/{user_id}")
def admin_delete_user(
    user_id: str,
    admin: Actor = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    uid = parse_id(user_id, kind="user")
    with connect(cfg.DB_DSN) as conn:
        target = _actor_from_row(get_user_by_id(conn, uid))
        if target is None:
            raise NotFound("User not found", detail="user_not_found")

        current = _actor_from_row(get_user_by_id(conn, admin.id))
        check_user_delete(current, target, lambda: count_admins(conn))

        delete_user(conn, uid)

    _debug(f"Deleted user_id={uid} by admin user_id={admin.id}")
    return {"message": "User deleted successfully"}


@auth_router.get("/stats")
def admin_user_stats(
    _admin: Actor = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        return user_stats(conn)


@auth_router.put("/update-role/{user_id}")
def admin_update_role(
    user_id: str,
    payload: UpdateRoleRequest,
    admin: Actor = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    """Change another user's role.

    The caller's admin status is re-read from the DB here rather than trusted
    from the token.
    """
    uid = parse_id(user_id, kind="user")
    with connect(cfg.DB_DSN) as conn:
        target = _actor_from_row(get_user_by_id(conn, uid))
        if target is None:
            raise NotFound("User not found", detail="user_not_found")

        current = _actor_from_row(get_user_by_id(conn, admin.id))
        role = check_role_change(
            current,
            target,
            payload.role,
            lambda: count_admins(conn),
            max_admins=cfg.MAX_ADMINS,
        )
        u = update_user_role(conn, uid, role)

    _debug(f"Role change user_id={uid} {target.role.value}->{role.value} by admin user_id={admin.id}")
    return {"message": "User role updated successfully", "user": u}


# -----------------------------
# Posts + comments
# -----------------------------

posts_router = APIRouter()


class PostCreateRequest(BaseModel):
    title: str
    content: str


class PostUpdateRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


class CommentCreateRequest(BaseModel):
    comment: str


def _load_post_ref(conn: Any, post_id: int) -> PostRef:
    ref = posts.get_post_ref(conn, post_id)
    if ref is None:
        raise NotFound("Post not found", detail="post_not_found")
    return ref


def _ensure_user_exists(conn: Any, actor: Actor) -> None:
    # New posts and comments must reference a live user; a token can outlive its user.
    if get_user_by_id(conn, actor.id) is None:
        raise InvalidToken("Invalid token", detail="user_not_found")


@posts_router.post("", status_code=201)
def create_post(
    payload: PostCreateRequest,
    actor: Actor = Depends(get_current_actor),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    ensure_allowed(actor, Action.POST_CREATE)
    with connect(cfg.DB_DSN) as conn:
        _ensure_user_exists(conn, actor)
        try:
            return posts.create_post(conn, author_id=actor.id, title=payload.title, content=payload.content)
        except ValueError as e:
            raise _value_error(e)


@posts_router.get("")
def list_posts(cfg: Config = Depends(get_config)) -> List[Dict[str, Any]]:
    with connect(cfg.DB_DSN) as conn:
        return posts.list_posts(conn)


@posts_router.get("/{post_id}")
def get_post(post_id: str, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    pid = parse_id(post_id, kind="post")
    with connect(cfg.DB_DSN) as conn:
        post = posts.get_post(conn, pid)
    if post is None:
        raise NotFound("Post not found", detail="post_not_found")
    return post


@posts_router.put("/{post_id}")
def update_post(
    post_id: str,
    payload: PostUpdateRequest,
    actor: Actor = Depends(require_author),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    pid = parse_id(post_id, kind="post")
    with connect(cfg.DB_DSN) as conn:
        ref = _load_post_ref(conn, pid)
        ensure_allowed(actor, Action.POST_UPDATE, ref)
        post = posts.update_post(conn, pid, title=payload.title, content=payload.content)
    assert post is not None
    return post


@posts_router.delete("/{post_id}")
def delete_post(
    post_id: str,
    actor: Actor = Depends(require_author),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    pid = parse_id(post_id, kind="post")
    with connect(cfg.DB_DSN) as conn:
        ref = _load_post_ref(conn, pid)
        ensure_allowed(actor, Action.POST_DELETE, ref)
        if not posts.delete_post(conn, pid):
            raise NotFound("Post could not be deleted", detail="post_not_found")
    return {"message": "Post deleted successfully"}


@posts_router.post("/{post_id}/comments", status_code=201)
def add_comment(
    post_id: str,
    payload: CommentCreateRequest,
    actor: Actor = Depends(get_current_actor),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    ensure_allowed(actor, Action.COMMENT_CREATE)
    pid = parse_id(post_id, kind="post")
    with connect(cfg.DB_DSN) as conn:
        _load_post_ref(conn, pid)
        _ensure_user_exists(conn, actor)
        try:
            post = posts.add_comment(conn, pid, user_id=actor.id, comment=payload.comment)
        except ValueError as e:
            raise _value_error(e)
    assert post is not None
    return post


@posts_router.delete("/{post_id}/comments/{comment_id}")
def delete_comment(
    post_id: str,
    comment_id: str,
    actor: Actor = Depends(get_current_actor),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    pid = parse_id(post_id, kind="post")
    cid = parse_id(comment_id, kind="comment")
    with connect(cfg.DB_DSN) as conn:
        post_ref = _load_post_ref(conn, pid)
        comment_ref = posts.get_comment_ref(conn, pid, cid)
        if comment_ref is None:
            raise NotFound("Comment not found", detail="comment_not_found")

        ensure_allowed(actor, Action.COMMENT_DELETE, CommentTarget(post=post_ref, comment=comment_ref))
        posts.delete_comment(conn, pid, cid)

    return {"message": "Comment deleted successfully"}


# -----------------------------
# App
# -----------------------------


def create_app(cfg: Optional[Config] = None) -> FastAPI:
    cfg = cfg or load_config()
    app = FastAPI(title="ContentGuardian API", version=__version__)
    # Make config available to auth deps.
    app.state.cfg = cfg

    # CORS is mainly needed for local development (Vite on :5173 -> API on :5000).
    cors_origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
        )

    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    @app.on_event("startup")
    def _on_startup() -> None:
        # Ensure schema exists.
        init_db(cfg.DB_DSN)

    @app.get("/")
    def root() -> Dict[str, Any]:
        return {"message": "ContentGuardian API is running"}

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok"}

    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(posts_router, prefix="/api/posts", tags=["posts"])
    return app


app = create_app()
