from __future__ import annotations

import threading
from typing import Any, List

import pytest

from senior_registry.db import ConnectionPool, Query, Repository, _qmark_to_pct, init_db
from senior_registry.errors import ConnectError, PoolExhausted, StatementError


class FakeCursor:
    def __init__(self, conn: "FakeConnection"):
        self.conn = conn
        self.description = None

    def execute(self, sql: str, params: Any) -> None:
        self.conn.statements.append((sql, params))
        if self.conn.fail:
            raise RuntimeError("relation does not exist")
        if sql.lstrip().upper().startswith("SELECT"):
            self.description = [("n", None)]

    def fetchall(self) -> List[dict]:
        return [{"n": 1}]

    def close(self) -> None:
        pass


class FakeConnection:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.statements: List[tuple] = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def close(self) -> None:
        self.closed = True


class CountingPool(ConnectionPool):
    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.acquired = 0
        self.released = 0

    def acquire(self) -> Any:
        conn = super().acquire()
        self.acquired += 1
        return conn

    def release(self, conn: Any, *, discard: bool = False) -> None:
        self.released += 1
        super().release(conn, discard=discard)


def test_execute_returns_rows_and_releases_once():
    conn = FakeConnection()
    pool = CountingPool("fake.sqlite", max_size=2, timeout_seconds=0.1, connect=lambda: conn)
    repo = Repository(pool)

    rows = repo.execute(Query("SELECT 1 AS n"))

    assert rows == [{"n": 1}]
    assert (pool.acquired, pool.released) == (1, 1)
    assert pool.in_use == 0
    assert pool.idle == 1
    assert conn.commits == 1


def test_failed_statement_still_releases_once():
    conn = FakeConnection(fail=True)
    pool = CountingPool("fake.sqlite", max_size=1, timeout_seconds=0.1, connect=lambda: conn)
    repo = Repository(pool)

    with pytest.raises(StatementError):
        repo.execute(Query("SELECT * FROM missing WHERE id=?", (1,)))

    assert (pool.acquired, pool.released) == (1, 1)
    assert pool.in_use == 0
    assert conn.rollbacks == 1
    assert conn.commits == 0

    # The single slot is free again.
    conn.fail = False
    assert repo.execute(Query("SELECT 1")) == [{"n": 1}]


def test_double_release_is_rejected():
    pool = ConnectionPool("fake.sqlite", max_size=1, connect=FakeConnection)
    conn = pool.acquire()
    pool.release(conn)
    with pytest.raises(RuntimeError):
        pool.release(conn)


def test_exhausted_pool_times_out():
    pool = ConnectionPool("fake.sqlite", max_size=1, timeout_seconds=0.05, connect=FakeConnection)
    held = pool.acquire()
    with pytest.raises(PoolExhausted):
        pool.acquire()
    pool.release(held)
    pool.release(pool.acquire())


def test_waiter_gets_connection_when_released():
    pool = ConnectionPool("fake.sqlite", max_size=1, timeout_seconds=2.0, connect=FakeConnection)
    held = pool.acquire()
    got: List[Any] = []

    t = threading.Thread(target=lambda: got.append(pool.acquire()))
    t.start()
    pool.release(held)
    t.join(timeout=5)

    assert got == [held]


def test_connect_failure_is_distinct_and_frees_slot():
    attempts = {"n": 0}

    def flaky():
        attempts["n"] += 1
        if attempts["n"] == 1:
            raise OSError("connection refused")
        return FakeConnection()

    pool = ConnectionPool("fake.sqlite", max_size=1, timeout_seconds=0.05, connect=flaky)
    repo = Repository(pool)

    with pytest.raises(ConnectError):
        repo.execute(Query("SELECT 1"))
    assert pool.in_use == 0
    assert repo.execute(Query("SELECT 1")) == [{"n": 1}]


def test_postgres_placeholders_are_rewritten():
    conn = FakeConnection()
    repo = Repository(ConnectionPool("postgresql://u:p@db/registry", connect=lambda: conn))

    repo.execute(Query("SELECT id FROM residents WHERE id=? AND note='?'", (5,)))

    sql, params = conn.statements[-1]
    assert sql == "SELECT id FROM residents WHERE id=%s AND note='?'"
    assert params == (5,)


def test_qmark_conversion_skips_literals():
    assert _qmark_to_pct("a=? AND b='it''s ?' AND c=\"?\"") == "a=%s AND b='it''s ?' AND c=\"?\""


def test_pool_rejects_bad_size():
    with pytest.raises(ValueError):
        ConnectionPool("fake.sqlite", max_size=0)


def test_sqlite_schema_is_idempotent_and_params_are_bound(repo):
    init_db(repo)

    hostile = "x'); DROP TABLE credentials; --"
    repo.execute(
        Query(
            "INSERT INTO credentials (username, password_hash, created_at, updated_at) VALUES (?,?,?,?)",
            (hostile, "h", "t", "t"),
        )
    )
    rows = repo.execute(Query("SELECT username FROM credentials WHERE username=?", (hostile,)))
    assert rows == [{"username": hostile}]


def test_sqlite_statement_error_leaves_pool_clean(repo):
    with pytest.raises(StatementError):
        repo.execute(Query("SELECT * FROM no_such_table"))
    assert repo.pool.in_use == 0


def test_close_closes_idle_connections():
    conn = FakeConnection()
    pool = ConnectionPool("fake.sqlite", connect=lambda: conn)
    pool.release(pool.acquire())
    pool.close()
    assert conn.closed
    assert pool.idle == 0
