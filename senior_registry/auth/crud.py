from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from senior_registry.config import Config
from senior_registry.db import Query, Repository
from senior_registry.errors import AuthenticationFailed, NotFound, ValidationFailed
from senior_registry.util.time import utcnow_iso

from .security import PasswordHasher, TokenService


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


def normalize_username(username: Optional[str]) -> str:
    return (username or "").strip()


def public_credential(row: Dict[str, Any]) -> Dict[str, Any]:
    # Never hand the password hash to callers outside this module.
    return {"id": int(row["id"]), "username": str(row["username"])}


def get_credential_by_username(repo: Repository, username: str) -> Optional[Dict[str, Any]]:
    u = normalize_username(username)
    if not u:
        return None
    rows = repo.execute(
        Query("SELECT id, username, password_hash FROM credentials WHERE username=?", (u,))
    )
    return rows[0] if rows else None


def get_authoritative_credential(repo: Repository) -> Optional[Dict[str, Any]]:
    """The single credential this system logs in with (lowest id)."""
    rows = repo.execute(
        Query("SELECT id, username, password_hash FROM credentials ORDER BY id ASC LIMIT 1")
    )
    return rows[0] if rows else None


@dataclass(frozen=True)
class LoginResult:
    id: int
    username: str
    token: str


def login(
    repo: Repository,
    hasher: PasswordHasher,
    tokens: TokenService,
    *,
    username: str,
    password: str,
) -> LoginResult:
    """Check a username/password pair and issue a session token.

    Raises NotFound when no credential has that username and
    AuthenticationFailed when the password does not match. Nothing is written.
    """
    row = get_credential_by_username(repo, username)
    if row is None:
        raise NotFound("User not found")

    if not hasher.compare(password, str(row["password_hash"])):
        raise AuthenticationFailed("Invalid credentials")

    cred = public_credential(row)
    token = tokens.issue(cred["id"], cred["username"])
    return LoginResult(id=cred["id"], username=cred["username"], token=token)


def update_account(
    repo: Repository,
    hasher: PasswordHasher,
    *,
    old_password: Optional[str],
    new_username: Optional[str],
    new_password: Optional[str],
) -> Dict[str, Any]:
    """Replace the username and password of the authoritative credential.

    Checks run in order: old password supplied, credential exists, old
    password matches, new username and password both non-blank. Both columns
    change in one UPDATE, so a rejected call leaves the row untouched.
    """
    if not old_password:
        raise ValidationFailed("Old password is required")

    row = get_authoritative_credential(repo)
    if row is None:
        raise NotFound("User not found")

    if not hasher.compare(old_password, str(row["password_hash"])):
        raise AuthenticationFailed("Current password is incorrect")

    u = normalize_username(new_username)
    if not u or not (new_password or "").strip():
        raise ValidationFailed("New username and password are required")

    new_hash = hasher.hash(str(new_password))
    repo.execute(
        Query(
            "UPDATE credentials SET username=?, password_hash=?, updated_at=? WHERE id=?",
            (u, new_hash, utcnow_iso(), int(row["id"])),
        )
    )
    return {"id": int(row["id"]), "username": u}


def set_credential(
    repo: Repository,
    hasher: PasswordHasher,
    *,
    username: str,
    password: str,
) -> Dict[str, Any]:
    """Operator reset: overwrite the authoritative credential, creating it if absent."""
    u = normalize_username(username)
    if not u:
        raise ValueError("username_blank")
    password_hash = hasher.hash(password)
    now = utcnow_iso()

    row = get_authoritative_credential(repo)
    if row is not None:
        repo.execute(
            Query(
                "UPDATE credentials SET username=?, password_hash=?, updated_at=? WHERE id=?",
                (u, password_hash, now, int(row["id"])),
            )
        )
        return {"id": int(row["id"]), "username": u}

    created = repo.execute(
        Query(
            """
            INSERT INTO credentials (username, password_hash, created_at, updated_at)
            VALUES (?,?,?,?)
            RETURNING id
            """,
            (u, password_hash, now, now),
        )
    )
    return {"id": int(created[0]["id"]), "username": u}


def bootstrap_credential_if_needed(
    repo: Repository,
    hasher: PasswordHasher,
    cfg: Config,
) -> Optional[Dict[str, Any]]:
    """Create the first credential if the credentials table is empty.

    Controlled via AUTH_BOOTSTRAP_USERNAME / AUTH_BOOTSTRAP_PASSWORD so a fresh
    install has a deterministic way to log in.
    """
    if get_authoritative_credential(repo) is not None:
        return None

    username = normalize_username(cfg.AUTH_BOOTSTRAP_USERNAME)
    password = cfg.AUTH_BOOTSTRAP_PASSWORD or ""

    # If env explicitly clears these, don't create anything.
    if not username or not password:
        _debug("Credentials table is empty and no bootstrap credential is configured")
        return None

    return set_credential(repo, hasher, username=username, password=password)
