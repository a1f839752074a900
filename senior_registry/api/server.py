from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, TypeVar

from fastapi import APIRouter, Body, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from senior_registry import __version__
from senior_registry.api.schemas import (
    MISSING_FIELDS,
    AccountUpdateRequest,
    LoginRequest,
    RegistrationRequest,
    ResidentIdRequest,
    ResidentUpdateRequest,
    parse_body,
)
from senior_registry.auth.crud import bootstrap_credential_if_needed, login, update_account
from senior_registry.auth.gate import make_gate_middleware
from senior_registry.auth.security import PasswordHasher, TokenService
from senior_registry.config import Config, load_config
from senior_registry.db import ConnectionPool, Repository, init_db
from senior_registry.errors import (
    ApiError,
    HashingError,
    InternalError,
    RepositoryError,
    StatementError,
)
from senior_registry.residents.crud import (
    create_resident,
    delete_resident,
    get_resident,
    list_residents,
    update_resident,
)


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


T = TypeVar("T")

# Never echoed into the request log.
_SENSITIVE_FIELDS = {"password", "oldpassword", "newpassword", "token"}


@dataclass(frozen=True)
class Services:
    """Process-wide resources, built once in `create_app` and shared by every request."""

    cfg: Config
    repo: Repository
    tokens: TokenService
    hasher: PasswordHasher


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise InternalError()
    return services


def _log_request(request: Request, payload: Any) -> None:
    safe: Any = None
    if isinstance(payload, dict):
        safe = {k: v for k, v in payload.items() if str(k).lower() not in _SENSITIVE_FIELDS}
    _debug(f"{request.method} {request.url.path} payload={safe}")


def _run(op: str, fn: Callable[[], T]) -> T:
    """Handler boundary: client errors pass through, everything else becomes a 500.

    The cause is logged here and never reaches the response body.
    """
    try:
        return fn()
    except ApiError:
        raise
    except RepositoryError as e:
        _debug(f"{op} failed (pool): {type(e).__name__}: {e}")
        raise InternalError() from e
    except StatementError as e:
        _debug(f"{op} failed (statement): {e}")
        raise InternalError() from e
    except HashingError as e:
        _debug(f"{op} failed (hashing): {e}")
        raise InternalError() from e
    except Exception as e:
        _debug(f"{op} failed: {type(e).__name__}: {e}")
        raise InternalError() from e


# -----------------------------
# Cookies
# -----------------------------


def _cookie_secure(cfg: Config) -> bool:
    """Return whether auth cookies should be marked Secure."""
    # Browsers require Secure when SameSite=None
    if (cfg.AUTH_COOKIE_SAMESITE or "").lower() == "none":
        return True
    return bool(cfg.AUTH_COOKIE_SECURE)


def _set_auth_cookie(response: Response, *, token: str, cfg: Config) -> None:
    response.set_cookie(
        key=cfg.AUTH_COOKIE_NAME,
        value=str(token),
        httponly=True,
        samesite=(cfg.AUTH_COOKIE_SAMESITE or "strict").lower(),
        secure=_cookie_secure(cfg),
        max_age=int(cfg.AUTH_TOKEN_TTL_SECONDS),
        path=cfg.AUTH_COOKIE_PATH or "/",
    )


def _clear_auth_cookie(response: Response, cfg: Config) -> None:
    response.delete_cookie(
        key=cfg.AUTH_COOKIE_NAME,
        path=cfg.AUTH_COOKIE_PATH or "/",
        httponly=True,
        samesite=(cfg.AUTH_COOKIE_SAMESITE or "strict").lower(),
        secure=_cookie_secure(cfg),
    )


router = APIRouter()


# -----------------------------
# Health
# -----------------------------


@router.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "ok"}


# -----------------------------
# Auth
# -----------------------------


@router.post("/auth/login")
def auth_login(
    request: Request,
    response: Response,
    payload: Any = Body(None),
    svc: Services = Depends(get_services),
) -> Dict[str, Any]:
    _log_request(request, payload)
    body = parse_body(LoginRequest, payload)

    result = _run(
        "login",
        lambda: login(svc.repo, svc.hasher, svc.tokens, username=body.username, password=body.password),
    )

    _set_auth_cookie(response, token=result.token, cfg=svc.cfg)
    return {"id": result.id, "username": result.username, "token": result.token}


@router.post("/auth/logout")
def auth_logout(
    request: Request,
    response: Response,
    svc: Services = Depends(get_services),
) -> Dict[str, Any]:
    """Clear the session cookie. The token itself stays valid until it expires."""
    _log_request(request, None)
    _clear_auth_cookie(response, svc.cfg)
    return {"message": "Logged out successfully"}


@router.put("/auth/update")
def auth_update(
    request: Request,
    payload: Any = Body(None),
    svc: Services = Depends(get_services),
) -> Dict[str, Any]:
    _log_request(request, payload)
    body = parse_body(AccountUpdateRequest, payload)

    _run(
        "account update",
        lambda: update_account(
            svc.repo,
            svc.hasher,
            old_password=body.oldpassword,
            new_username=body.newusername,
            new_password=body.newpassword,
        ),
    )
    return {"message": "Username and password updated successfully"}


# -----------------------------
# Residents
# -----------------------------


@router.get("/record")
def record_list(request: Request, svc: Services = Depends(get_services)) -> List[Dict[str, Any]]:
    _log_request(request, None)
    return _run("list residents", lambda: list_residents(svc.repo))


@router.post("/registration", status_code=201)
def registration(
    request: Request,
    payload: Any = Body(None),
    svc: Services = Depends(get_services),
) -> Dict[str, Any]:
    _log_request(request, payload)
    body = parse_body(RegistrationRequest, payload)

    new_id = _run("register resident", lambda: create_resident(svc.repo, body.to_record()))
    return {"message": "Senior information inserted successfully", "id": new_id}


@router.post("/senior/id")
def senior_get(
    request: Request,
    payload: Any = Body(None),
    svc: Services = Depends(get_services),
) -> List[Dict[str, Any]]:
    _log_request(request, payload)
    body = parse_body(ResidentIdRequest, payload)

    record = _run("fetch resident", lambda: get_resident(svc.repo, body.id))
    return [record.to_wire()]


@router.put("/senior/update")
def senior_update(
    request: Request,
    payload: Any = Body(None),
    svc: Services = Depends(get_services),
) -> Dict[str, Any]:
    _log_request(request, payload)
    body = parse_body(ResidentUpdateRequest, payload)

    matched = _run("update resident", lambda: update_resident(svc.repo, body.id, body.to_record(body.id)))
    if not matched:
        _debug(f"update resident: no resident with id={body.id}")
    return {"message": "Senior information updated successfully"}


@router.delete("/senior/delete")
def senior_delete(
    request: Request,
    payload: Any = Body(None),
    svc: Services = Depends(get_services),
) -> Dict[str, Any]:
    _log_request(request, payload)
    body = parse_body(ResidentIdRequest, payload)

    _run("delete resident", lambda: delete_resident(svc.repo, body.id))
    return {"message": "Resident deleted successfully"}


# -----------------------------
# Error normalizer
# -----------------------------


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Only reachable for bodies that are not JSON at all, so the route never
    # got to log the request.
    _log_request(request, None)
    return JSONResponse({"error": MISSING_FIELDS}, status_code=400)


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        {"error": str(exc.detail)},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


# -----------------------------
# App factory
# -----------------------------


def create_app(cfg: Optional[Config] = None) -> FastAPI:
    cfg = cfg or load_config()

    pool = ConnectionPool(
        cfg.DB_DSN,
        max_size=cfg.DB_POOL_MAX_SIZE,
        timeout_seconds=cfg.DB_POOL_TIMEOUT_SECONDS,
    )
    services = Services(
        cfg=cfg,
        repo=Repository(pool),
        tokens=TokenService(secret=cfg.AUTH_JWT_SECRET, ttl_seconds=cfg.AUTH_TOKEN_TTL_SECONDS),
        hasher=PasswordHasher(),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Ensure schema exists.
        init_db(services.repo)

        boot = bootstrap_credential_if_needed(services.repo, services.hasher, cfg)
        if boot:
            _debug(f"Bootstrapped initial credential: username={boot.get('username')}")
        try:
            yield
        finally:
            services.repo.close()

    app = FastAPI(title="Senior Registry", version=__version__, lifespan=lifespan)
    app.state.services = services

    app.middleware("http")(
        make_gate_middleware(
            services.tokens,
            cookie_name=cfg.AUTH_COOKIE_NAME,
            login_path=cfg.GATE_LOGIN_PATH,
            landing_path=cfg.GATE_LANDING_PATH,
        )
    )

    # CORS is mainly needed for local development (frontend dev server -> API).
    cors_origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)

    app.include_router(router)
    return app


app = create_app()
