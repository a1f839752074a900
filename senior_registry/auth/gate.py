"""Per-request route gate.

Every request passes through `decide()` before routing. The outcome depends
only on the session cookie and the path:

- protected path without a valid token -> redirect to the login page
- public page (login etc.) with a valid token -> redirect to the landing page
- everything else -> allow

Paths that are neither public nor protected count as public. The gate does
not log and does not touch the database.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, FrozenSet, Optional, Tuple

from fastapi import Request
from fastapi.responses import RedirectResponse

from .security import TokenService


PUBLIC_PATHS: FrozenSet[str] = frozenset({"/", "/login", "/register"})
PROTECTED_PREFIXES: Tuple[str, ...] = ("/admin", "/dashboard")

ALLOW = "allow"
REDIRECT = "redirect"


@dataclass(frozen=True)
class GateDecision:
    action: str
    location: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.action == ALLOW


def is_public(path: str) -> bool:
    return path in PUBLIC_PATHS


def is_protected(path: str) -> bool:
    return any(path.startswith(prefix) for prefix in PROTECTED_PREFIXES)


def decide(
    token: Optional[str],
    path: str,
    verify: Callable[[str], Any],
    *,
    login_path: str = "/login",
    landing_path: str = "/admin",
) -> GateDecision:
    protected = is_protected(path)

    if not token:
        return GateDecision(REDIRECT, login_path) if protected else GateDecision(ALLOW)

    try:
        valid = verify(token) is not None
    except Exception:
        valid = False

    if not valid:
        return GateDecision(REDIRECT, login_path) if protected else GateDecision(ALLOW)

    if is_public(path):
        return GateDecision(REDIRECT, landing_path)
    return GateDecision(ALLOW)


def make_gate_middleware(
    tokens: TokenService,
    *,
    cookie_name: str = "token",
    login_path: str = "/login",
    landing_path: str = "/admin",
):
    """Build an `@app.middleware("http")` callable bound to `tokens`."""

    async def gate_middleware(request: Request, call_next):
        decision = decide(
            request.cookies.get(cookie_name),
            request.url.path,
            tokens.verify,
            login_path=login_path,
            landing_path=landing_path,
        )
        if not decision.allowed:
            return RedirectResponse(url=str(decision.location), status_code=307)
        return await call_next(request)

    return gate_middleware
