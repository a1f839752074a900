from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from senior_registry.api.server import create_app
from senior_registry.auth.security import PasswordHasher, TokenService
from senior_registry.config import Config
from senior_registry.db import ConnectionPool, Repository, init_db


TEST_SECRET = "test-secret"
BOOT_USERNAME = "admin"
BOOT_PASSWORD = "admin-pass"


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def resident_payload(**overrides: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "applicationtype": "New",
        "firstname": "Ana",
        "middlename": "Reyes",
        "lastname": "Cruz",
        "sex": "Female",
        "dateofbirth": "1950-01-01",
        "placeofbirth": "Quezon City",
        "civilstatus": "Widowed",
        "education": "College",
        "occupation": "Teacher",
        "barangay": "Barangay 3",
        "name": "Maria Cruz",
        "relationship": "Child",
        "contact": "09171234567",
        "health": "Hypertension",
    }
    body.update(overrides)
    return body


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "registry.sqlite")


@pytest.fixture
def repo(db_path):
    r = Repository(ConnectionPool(db_path, max_size=4, timeout_seconds=1.0))
    init_db(r)
    yield r
    r.close()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 3, 1, 8, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def tokens(clock) -> TokenService:
    return TokenService(secret=TEST_SECRET, ttl_seconds=86400, clock=clock)


@pytest.fixture
def cfg(db_path) -> Config:
    return Config(
        APP_ENV="testing",
        DB_DSN=db_path,
        DB_POOL_MAX_SIZE=4,
        DB_POOL_TIMEOUT_SECONDS=1.0,
        AUTH_JWT_SECRET=TEST_SECRET,
        AUTH_BOOTSTRAP_USERNAME=BOOT_USERNAME,
        AUTH_BOOTSTRAP_PASSWORD=BOOT_PASSWORD,
        AUTH_COOKIE_SECURE=False,
        CORS_ALLOW_ORIGINS="",
    )


@pytest.fixture
def app(cfg):
    return create_app(cfg)


@pytest.fixture
def client(app):
    # Entering the context runs startup: schema + bootstrap credential.
    with TestClient(app) as c:
        yield c
