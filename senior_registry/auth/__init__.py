"""Authentication helpers.

Auth is intentionally lightweight:

- one credential row (username/password hash)
- HS256 session tokens carried in an httpOnly `token` cookie
- a request gate that redirects page requests based on that cookie
"""

from .crud import bootstrap_credential_if_needed, login, set_credential, update_account
from .gate import decide, make_gate_middleware
from .security import PasswordHasher, TokenClaims, TokenService

__all__ = [
    "PasswordHasher",
    "TokenClaims",
    "TokenService",
    "bootstrap_credential_if_needed",
    "decide",
    "login",
    "make_gate_middleware",
    "set_credential",
    "update_account",
]
