import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from content_guardian.config import load_config
from content_guardian.db import connect, init_db
from content_guardian.auth.crud import user_stats


def main() -> None:
    cfg = load_config()
    init_db(cfg.DB_DSN)
    with connect(cfg.DB_DSN) as conn:
        stats = user_stats(conn)

    print(f"DB initialized: {cfg.DB_DSN}")
    print(f"Users: {stats['total_users']} {stats['users_by_role']}")


if __name__ == "__main__":
    main()
