"""Create a user directly in the DB.

Usage:
  python scripts/create_user.py --name "Alice" --email alice@example.com --password '...' --role MANAGER

NOTE: This is intended for local/dev, e.g. to create managers and admins without
going through self-registration.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from site_progress.auth.crud import create_user
from site_progress.config import load_config
from site_progress.db import connect, init_db
from site_progress.errors import AppError
from site_progress.models import Role


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--name", required=True)
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--phone", default=None)
    ap.add_argument("--role", choices=[r.value for r in Role], default=Role.WORKER.value)
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    try:
        with connect(cfg.DB_DSN) as conn:
            u = create_user(
                conn,
                name=args.name,
                email=args.email,
                password=args.password,
                role=Role(args.role),
                phone=args.phone,
            )
    except AppError as e:
        raise SystemExit(f"Could not create user: {e.message}")

    print("Created user:")
    print(u)


if __name__ == "__main__":
    main()
