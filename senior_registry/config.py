import os
import secrets
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


def _is_production(env: str) -> bool:
    return (env or "").strip().lower() in ("prod", "production")


# Generated once per process when AUTH_JWT_SECRET is unset. Tokens then stop
# verifying after a restart, which only matters for local development.
_PROCESS_SECRET = secrets.token_urlsafe(32)


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    Provide secrets via environment variables or a .env file.
    """

    # -----------------
    # Core
    # -----------------
    APP_ENV: str = os.environ.get("APP_ENV", "development")

    # Preferred: set REGISTRY_DATABASE_URL (or DATABASE_URL) to use Postgres.
    # Fallback: REGISTRY_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("REGISTRY_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("REGISTRY_DB_PATH", "./senior_registry.sqlite")
    )

    # Connection pool. Checkout waits at most DB_POOL_TIMEOUT_SECONDS when every
    # connection is in use.
    DB_POOL_MAX_SIZE: int = int(os.environ.get("DB_POOL_MAX_SIZE", "20"))
    DB_POOL_TIMEOUT_SECONDS: float = float(os.environ.get("DB_POOL_TIMEOUT_SECONDS", "2.0"))

    # -----------------
    # Auth (JWT)
    # -----------------
    # In production, you MUST set AUTH_JWT_SECRET to a strong random value.
    AUTH_JWT_SECRET: str = os.environ.get("AUTH_JWT_SECRET") or _PROCESS_SECRET
    AUTH_TOKEN_TTL_SECONDS: int = int(os.environ.get("AUTH_TOKEN_TTL_SECONDS", "86400"))  # 1 day

    # Seed the credential if the credentials table is empty
    AUTH_BOOTSTRAP_USERNAME: str = os.environ.get("AUTH_BOOTSTRAP_USERNAME", "admin")
    AUTH_BOOTSTRAP_PASSWORD: str = os.environ.get("AUTH_BOOTSTRAP_PASSWORD", "admin")

    # Session cookie (httpOnly). Secure defaults on only in production;
    # override explicitly with AUTH_COOKIE_SECURE=0/1.
    AUTH_COOKIE_NAME: str = os.environ.get("AUTH_COOKIE_NAME", "token")
    AUTH_COOKIE_PATH: str = os.environ.get("AUTH_COOKIE_PATH", "/")
    AUTH_COOKIE_SAMESITE: str = os.environ.get("AUTH_COOKIE_SAMESITE", "strict")  # lax|strict|none
    AUTH_COOKIE_SECURE: Optional[bool] = _env_bool("AUTH_COOKIE_SECURE", None)

    # -----------------
    # Request gate
    # -----------------
    GATE_LOGIN_PATH: str = os.environ.get("GATE_LOGIN_PATH", "/login")
    GATE_LANDING_PATH: str = os.environ.get("GATE_LANDING_PATH", "/admin")

    # -----------------
    # CORS (development)
    # -----------------
    CORS_ALLOW_ORIGINS: str = os.environ.get(
        "CORS_ALLOW_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    )

    def __post_init__(self) -> None:
        # Unset Secure follows this instance's APP_ENV.
        if self.AUTH_COOKIE_SECURE is None:
            object.__setattr__(self, "AUTH_COOKIE_SECURE", _is_production(self.APP_ENV))


def load_config() -> Config:
    return Config()
