"""Create a user directly in the database.

Usage:
  python scripts/create_user.py --username alice --password '...' --role-id 2

NOTE: This is intended for local/dev. The password is hashed before it is stored.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from users_api.auth import Authenticator, CredentialStore
from users_api.config import load_config
from users_api.db import init_db
from users_api.errors import ServiceError


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--username", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--role-id", type=int, default=2)
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    authenticator = Authenticator(cfg, CredentialStore(cfg.DB_DSN))
    try:
        user_id = authenticator.register(args.username, args.password, args.role_id)
    except ServiceError as e:
        print(f"Failed to create user: {e.detail}")
        raise SystemExit(1)

    print(f"Created user: user_id={user_id} username={args.username.strip()}")


if __name__ == "__main__":
    main()
