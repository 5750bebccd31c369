"""Create a user directly in the DB (bypasses self-serve registration).

Usage:
  python scripts/create_user.py --name Alice --email alice@example.com --password '...' --role author

Without --role the usual registration rule applies (first user = admin,
everyone else = reader). NOTE: This is intended for local/dev.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from content_guardian.config import load_config
from content_guardian.db import init_db, connect
from content_guardian.auth.crud import create_user, register_user
from content_guardian.models import ALL_ROLES


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--name", required=True)
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--role", choices=[r.value for r in ALL_ROLES], default=None)
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    with connect(cfg.DB_DSN) as conn:
        if args.role is None:
            u = register_user(conn, name=args.name, email=args.email, password=args.password)
        else:
            u = create_user(conn, name=args.name, email=args.email, password=args.password, role=args.role)

    print("Created user:")
    print(u)


if __name__ == "__main__":
    main()
