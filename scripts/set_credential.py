"""Reset the staff credential.

Usage:
  python scripts/set_credential.py --username clerk --password '...'

Overwrites the authoritative credential row (or creates it on an empty DB).
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from senior_registry.auth.crud import set_credential
from senior_registry.auth.security import PasswordHasher
from senior_registry.config import load_config
from senior_registry.db import ConnectionPool, Repository, init_db


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--username", required=True)
    ap.add_argument("--password", required=True)
    args = ap.parse_args()

    cfg = load_config()
    repo = Repository(ConnectionPool(cfg.DB_DSN, max_size=1, timeout_seconds=cfg.DB_POOL_TIMEOUT_SECONDS))
    try:
        init_db(repo)
        cred = set_credential(repo, PasswordHasher(), username=args.username, password=args.password)
    finally:
        repo.close()

    print("Credential set:")
    print(cred)


if __name__ == "__main__":
    main()
