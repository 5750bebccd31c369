import os
from dataclasses import dataclass
from typing import Optional

# Optional: load a local .env file if present.
try:
    from dotenv import load_dotenv

    load_dotenv()
except Exception:
    # If python-dotenv isn't installed or .env isn't present, that's fine.
    pass


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    Values are read from environment variables (or a .env file) when the
    class is first imported. Tests build their own instance with explicit
    overrides, e.g. ``Config(DB_DSN=str(tmp_path / "t.sqlite"))``.
    """

    # -----------------
    # Core
    # -----------------
    # Preferred: set CONTENT_GUARDIAN_DATABASE_URL (or DATABASE_URL) to use Postgres.
    # Fallback: CONTENT_GUARDIAN_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("CONTENT_GUARDIAN_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("CONTENT_GUARDIAN_DB_PATH", "./content_guardian.sqlite")
    )

    # -----------------
    # Auth (JWT)
    # -----------------
    # NOTE: In dev, this defaults to a fixed string so you can get started.
    # In production, you MUST set AUTH_JWT_SECRET to a strong random value.
    AUTH_JWT_SECRET: str = os.environ.get("AUTH_JWT_SECRET", "dev_change_me")
    AUTH_TOKEN_EXPIRE_DAYS: int = int(os.environ.get("AUTH_TOKEN_EXPIRE_DAYS", "30"))
    AUTH_MIN_PASSWORD_LENGTH: int = int(os.environ.get("AUTH_MIN_PASSWORD_LENGTH", "8"))

    # The role inside a token is a snapshot taken at login. By default only
    # role updates re-read the caller's role from the DB; set this to 1 to
    # re-read it on every authenticated request.
    AUTH_REVALIDATE_ROLE: bool = _env_bool("AUTH_REVALIDATE_ROLE", False) is True

    # Hard cap on the number of admins (role updates refuse to exceed it).
    MAX_ADMINS: int = int(os.environ.get("MAX_ADMINS", "5"))

    # -----------------
    # CORS (development)
    # -----------------
    CORS_ALLOW_ORIGINS: str = os.environ.get(
        "CORS_ALLOW_ORIGINS",
        "http://localhost:5173,http://localhost:5174,http://localhost:3000",
    )


def load_config() -> Config:
    return Config()
