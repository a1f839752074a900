import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from senior_registry.auth.crud import bootstrap_credential_if_needed
from senior_registry.auth.security import PasswordHasher
from senior_registry.config import load_config
from senior_registry.db import ConnectionPool, Repository, init_db


def main() -> None:
    cfg = load_config()
    repo = Repository(ConnectionPool(cfg.DB_DSN, max_size=1, timeout_seconds=cfg.DB_POOL_TIMEOUT_SECONDS))
    try:
        init_db(repo)
        boot = bootstrap_credential_if_needed(repo, PasswordHasher(), cfg)
    finally:
        repo.close()

    print(f"DB initialized: {cfg.DB_DSN}")
    if boot:
        print(f"Seeded credential: username={boot['username']}")


if __name__ == "__main__":
    main()
