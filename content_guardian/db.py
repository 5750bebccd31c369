from __future__ import annotations

import re
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence
from urllib.parse import urlparse

from content_guardian.schema import get_schema_sql


def _debug(msg: str) -> None:
    print(f"[db] {msg}")


# Advisory lock ids (Postgres). Any stable 64-bit integers work.
SCHEMA_LOCK_ID = 2147483647
REGISTRATION_LOCK_ID = 2147483646


def detect_dialect(dsn: str) -> str:
    """Return 'postgres' or 'sqlite'."""
    s = (dsn or "").strip()
    if not s:
        return "sqlite"
    scheme = urlparse(s).scheme.lower()
    if scheme in ("postgres", "postgresql"):
        return "postgres"
    # sqlite:///path style or a bare file path
    return "sqlite"


def dialect_of(conn: Any) -> str:
    return str(getattr(conn, "dialect", "sqlite") or "sqlite").lower()


# '...' / "..." literals or a bare '?' placeholder
_QMARK_RE = re.compile(r"'(?:[^']|'')*'|\"(?:[^\"]|\"\")*\"|\?")


def _qmark_to_pct(sql: str) -> str:
    """Rewrite SQLite `?` placeholders to psycopg2 `%s`, leaving quoted literals alone."""
    return _QMARK_RE.sub(lambda m: "%s" if m.group(0) == "?" else m.group(0), sql)


class PGConnection:
    """Wraps a psycopg2 connection so callers can use the sqlite3 `conn.execute(...)` style."""

    dialect = "postgres"

    def __init__(self, conn: Any):
        self._conn = conn

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> Any:
        cur = self._conn.cursor()
        cur.execute(_qmark_to_pct(sql), tuple(params or ()))
        return cur

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()


@contextmanager
def connect(db_dsn: str) -> Iterator[Any]:
    """Open a connection for one unit of work.

    Commits when the block exits cleanly, rolls back on any exception, and
    always closes. Rows behave like dicts on both engines.
    """
    dsn = (db_dsn or "").strip()

    if detect_dialect(dsn) == "postgres":
        try:
            import psycopg2
            import psycopg2.extras
        except Exception as e:
            raise RuntimeError(
                "Postgres selected but psycopg2 is not installed. "
                "Install psycopg2-binary and try again."
            ) from e

        conn: Any = PGConnection(psycopg2.connect(dsn, cursor_factory=psycopg2.extras.RealDictCursor))
    else:
        if dsn.lower().startswith("sqlite:///"):
            dsn = dsn[len("sqlite:///") :]
        Path(dsn).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(dsn, timeout=30, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA busy_timeout=5000;")
        # Needed for ON DELETE SET NULL / CASCADE; off by default per connection.
        conn.execute("PRAGMA foreign_keys = ON;")

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def lock_for_write(conn: Any, lock_id: int) -> None:
    """Serialize a read-then-write sequence against other connections.

    - Postgres: transaction-scoped advisory lock (released on commit/rollback).
    - SQLite: upgrade to a RESERVED lock up front with BEGIN IMMEDIATE.
    """
    if dialect_of(conn) == "postgres":
        conn.execute("SELECT pg_advisory_xact_lock(?)", (int(lock_id),))
        return
    if not conn.in_transaction:
        conn.execute("BEGIN IMMEDIATE")


def init_db(db_dsn: str) -> None:
    """Create all tables (idempotent)."""
    dialect = detect_dialect(db_dsn)
    _debug(f"Initializing DB ({dialect}) at {db_dsn}")
    ddl = get_schema_sql(dialect)
    with connect(db_dsn) as conn:
        if dialect == "postgres":
            # One process runs DDL at a time; naive split is fine for our schema.
            conn.execute("SELECT pg_advisory_lock(?)", (SCHEMA_LOCK_ID,))
            try:
                for stmt in (s.strip() for s in ddl.split(";")):
                    if stmt:
                        conn.execute(stmt)
            finally:
                conn.execute("SELECT pg_advisory_unlock(?)", (SCHEMA_LOCK_ID,))
        else:
            conn.executescript(ddl)
