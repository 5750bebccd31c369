from __future__ import annotations

from typing import Any, Dict, List, Optional

from content_guardian.db import REGISTRATION_LOCK_ID, lock_for_write
from content_guardian.models import ALL_ROLES, Role
from content_guardian.util.time import utcnow_iso

from .security import hash_password, verify_password


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


_PUBLIC_FIELDS = ("user_id", "name", "email", "role", "created_at", "last_login_at")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def public_user(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    """User as returned by the API (never includes the password hash)."""
    d = dict(row)
    return {k: d.get(k) for k in _PUBLIC_FIELDS}


def get_user_by_email(conn: Any, email: str) -> Optional[Any]:
    e = normalize_email(email)
    if not e:
        return None
    return conn.execute(
        "SELECT * FROM users WHERE email=?",
        (e,),
    ).fetchone()


def get_user_by_id(conn: Any, user_id: int) -> Optional[Any]:
    return conn.execute(
        "SELECT * FROM users WHERE user_id=?",
        (int(user_id),),
    ).fetchone()


def list_users(conn: Any) -> List[Dict[str, Any]]:
    rows = conn.execute("SELECT * FROM users ORDER BY user_id ASC").fetchall()
    return [public_user(r) for r in rows]


def count_users(conn: Any) -> int:
    return int(conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"])


def count_admins(conn: Any) -> int:
    row = conn.execute(
        "SELECT COUNT(*) AS n FROM users WHERE role=?",
        (Role.ADMIN.value,),
    ).fetchone()
    return int(row["n"])


def user_stats(conn: Any) -> Dict[str, Any]:
    rows = conn.execute(
        "SELECT role, COUNT(*) AS n FROM users GROUP BY role ORDER BY role"
    ).fetchall()
    counts = {str(r["role"]): int(r["n"]) for r in rows}
    return {
        "total_users": sum(counts.values()),
        "users_by_role": [{"role": r.value, "count": counts.get(r.value, 0)} for r in ALL_ROLES],
    }


def verify_user_credentials(conn: Any, email: str, password: str) -> Optional[Any]:
    row = get_user_by_email(conn, email)
    if row is None:
        return None
    if not verify_password(password, str(row["password_hash"])):
        return None
    return row


def create_user(
    conn: Any,
    *,
    name: str,
    email: str,
    password: str,
    role: Role | str = Role.READER,
) -> Dict[str, Any]:
    n = (name or "").strip()
    e = normalize_email(email)
    if not n:
        raise ValueError("name_blank")
    if not e:
        raise ValueError("email_blank")
    r = Role.parse(role)
    if r is None:
        raise ValueError("invalid_role")

    if get_user_by_email(conn, e) is not None:
        raise ValueError("user_exists")

    now = utcnow_iso()
    conn.execute(
        """
        INSERT INTO users (name, email, password_hash, role, created_at, updated_at)
        VALUES (?,?,?,?,?,?)
        """,
        (n, e, hash_password(password), r.value, now, now),
    )
    row = get_user_by_email(conn, e)
    assert row is not None
    return public_user(row)


def register_user(conn: Any, *, name: str, email: str, password: str) -> Dict[str, Any]:
    """Self-serve registration.

    The very first user becomes admin, everybody after that starts as reader.
    The count and the insert happen under one write lock so two concurrent
    first registrations can't both see an empty table.
    """
    lock_for_write(conn, REGISTRATION_LOCK_ID)
    role = Role.ADMIN if count_users(conn) == 0 else Role.READER
    u = create_user(conn, name=name, email=email, password=password, role=role)
    if role is Role.ADMIN:
        _debug(f"First user registered, granted admin: user_id={u['user_id']}")
    return u


def touch_last_login(conn: Any, user_id: int) -> None:
    now = utcnow_iso()
    conn.execute(
        "UPDATE users SET last_login_at=?, updated_at=? WHERE user_id=?",
        (now, now, int(user_id)),
    )


def update_user_role(conn: Any, user_id: int, role: Role) -> Dict[str, Any]:
    now = utcnow_iso()
    conn.execute(
        "UPDATE users SET role=?, updated_at=? WHERE user_id=?",
        (role.value, now, int(user_id)),
    )
    row = get_user_by_id(conn, user_id)
    assert row is not None
    return public_user(row)


def delete_user(conn: Any, user_id: int) -> bool:
    cur = conn.execute("DELETE FROM users WHERE user_id=?", (int(user_id),))
    return int(cur.rowcount or 0) > 0
