"""Post + comment persistence.

Comments live in their own table but are only ever read or written through
their post: every comment query is scoped by `post_id`. Rendered posts carry
their comments in insertion order, with the author / commenter reduced to
`{user_id, name, role}` (or null once that user has been deleted).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from content_guardian.models import CommentRef, PostRef
from content_guardian.util.time import utcnow_iso


def _debug(msg: str) -> None:
    print(f"[posts] {msg}")


_POST_SELECT = """
SELECT p.post_id, p.title, p.content, p.author_id, p.created_at, p.updated_at,
       u.name AS author_name, u.role AS author_role
FROM posts p
LEFT JOIN users u ON u.user_id = p.author_id
"""

_COMMENT_SELECT = """
SELECT c.comment_id, c.post_id, c.user_id, c.comment, c.created_at,
       u.name AS user_name, u.role AS user_role
FROM comments c
LEFT JOIN users u ON u.user_id = c.user_id
"""


def _user_summary(user_id: Any, name: Any, role: Any) -> Optional[Dict[str, Any]]:
    if user_id is None or name is None:
        return None
    return {"user_id": int(user_id), "name": str(name), "role": str(role)}


def _render_comment(row: Any) -> Dict[str, Any]:
    return {
        "comment_id": int(row["comment_id"]),
        "user": _user_summary(row["user_id"], row["user_name"], row["user_role"]),
        "comment": row["comment"],
        "created_at": row["created_at"],
    }


def _render_post(row: Any, comments: Sequence[Any]) -> Dict[str, Any]:
    return {
        "post_id": int(row["post_id"]),
        "title": row["title"],
        "content": row["content"],
        "author": _user_summary(row["author_id"], row["author_name"], row["author_role"]),
        "comments": [_render_comment(c) for c in comments],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


# -----------------------------
# Lookups (ownership only)
# -----------------------------


def get_post_ref(conn: Any, post_id: int) -> Optional[PostRef]:
    row = conn.execute(
        "SELECT post_id, author_id FROM posts WHERE post_id=?",
        (int(post_id),),
    ).fetchone()
    if row is None:
        return None
    author_id = row["author_id"]
    return PostRef(post_id=int(row["post_id"]), author_id=int(author_id) if author_id is not None else None)


def get_comment_ref(conn: Any, post_id: int, comment_id: int) -> Optional[CommentRef]:
    row = conn.execute(
        "SELECT comment_id, post_id, user_id FROM comments WHERE post_id=? AND comment_id=?",
        (int(post_id), int(comment_id)),
    ).fetchone()
    if row is None:
        return None
    user_id = row["user_id"]
    return CommentRef(
        comment_id=int(row["comment_id"]),
        post_id=int(row["post_id"]),
        user_id=int(user_id) if user_id is not None else None,
    )


# -----------------------------
# Reads
# -----------------------------


def get_post(conn: Any, post_id: int) -> Optional[Dict[str, Any]]:
    row = conn.execute(_POST_SELECT + " WHERE p.post_id=?", (int(post_id),)).fetchone()
    if row is None:
        return None
    comments = conn.execute(
        _COMMENT_SELECT + " WHERE c.post_id=? ORDER BY c.comment_id ASC",
        (int(post_id),),
    ).fetchall()
    return _render_post(row, comments)


def list_posts(conn: Any) -> List[Dict[str, Any]]:
    """All posts in creation order, each with its comments."""
    rows = conn.execute(_POST_SELECT + " ORDER BY p.post_id ASC").fetchall()
    if not rows:
        return []

    by_post: Dict[int, List[Any]] = {int(r["post_id"]): [] for r in rows}
    for c in conn.execute(_COMMENT_SELECT + " ORDER BY c.post_id ASC, c.comment_id ASC").fetchall():
        bucket = by_post.get(int(c["post_id"]))
        if bucket is not None:
            bucket.append(c)

    return [_render_post(r, by_post[int(r["post_id"])]) for r in rows]


# -----------------------------
# Writes
# -----------------------------


def create_post(conn: Any, *, author_id: int, title: str, content: str) -> Dict[str, Any]:
    t = (title or "").strip()
    body = (content or "").strip()
    if not t:
        raise ValueError("title_blank")
    if not body:
        raise ValueError("content_blank")

    now = utcnow_iso()
    row = conn.execute(
        """
        INSERT INTO posts (title, content, author_id, created_at, updated_at)
        VALUES (?,?,?,?,?)
        RETURNING post_id
        """,
        (t, body, int(author_id), now, now),
    ).fetchone()
    post_id = int(row["post_id"])
    _debug(f"Created post post_id={post_id} author_id={author_id}")

    post = get_post(conn, post_id)
    assert post is not None
    return post


def update_post(
    conn: Any,
    post_id: int,
    *,
    title: Optional[str] = None,
    content: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """Update title/content. Missing or blank values keep the current text.

    The author is never touched.
    """
    fields: list[tuple[str, Any]] = []
    if title and title.strip():
        fields.append(("title", title.strip()))
    if content and content.strip():
        fields.append(("content", content.strip()))

    if fields:
        fields.append(("updated_at", utcnow_iso()))
        sets = ", ".join([f"{k}=?" for k, _ in fields])
        params = [v for _, v in fields] + [int(post_id)]
        conn.execute(f"UPDATE posts SET {sets} WHERE post_id=?", params)

    return get_post(conn, post_id)


def delete_post(conn: Any, post_id: int) -> bool:
    conn.execute("DELETE FROM comments WHERE post_id=?", (int(post_id),))
    cur = conn.execute("DELETE FROM posts WHERE post_id=?", (int(post_id),))
    deleted = int(cur.rowcount or 0) > 0
    if deleted:
        _debug(f"Deleted post post_id={post_id}")
    return deleted


def add_comment(conn: Any, post_id: int, *, user_id: int, comment: str) -> Optional[Dict[str, Any]]:
    text = (comment or "").strip()
    if not text:
        raise ValueError("comment_blank")

    conn.execute(
        "INSERT INTO comments (post_id, user_id, comment, created_at) VALUES (?,?,?,?)",
        (int(post_id), int(user_id), text, utcnow_iso()),
    )
    return get_post(conn, post_id)


def delete_comment(conn: Any, post_id: int, comment_id: int) -> bool:
    cur = conn.execute(
        "DELETE FROM comments WHERE post_id=? AND comment_id=?",
        (int(post_id), int(comment_id)),
    )
    return int(cur.rowcount or 0) > 0
