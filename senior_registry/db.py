from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from senior_registry.errors import ConnectError, PoolExhausted, StatementError
from senior_registry.schema import get_schema_sql


def _debug(msg: str) -> None:
    print(f"[db] {msg}")


def _detect_dialect(dsn: str) -> str:
    """Return 'postgres' or 'sqlite'."""
    s = (dsn or "").strip()
    if not s:
        return "sqlite"
    try:
        scheme = urlparse(s).scheme.lower()
    except Exception:
        scheme = ""
    if scheme in ("postgres", "postgresql"):
        return "postgres"
    # Allow sqlite:///path style, but default is file path.
    return "sqlite"


def _qmark_to_pct(sql: str) -> str:
    """Convert SQLite qmark placeholders (?) to psycopg2 placeholders (%s).

    This is a lightweight conversion that avoids replacing '?' inside single/double-quoted
    string literals. It's not a full SQL parser, but it is sufficient for this codebase.
    """
    out: List[str] = []
    in_single = False
    in_double = False
    i = 0
    while i < len(sql):
        ch = sql[i]

        if ch == "'" and not in_double:
            out.append(ch)
            if in_single:
                # Escaped single quote: ''
                if i + 1 < len(sql) and sql[i + 1] == "'":
                    out.append("'")
                    i += 2
                    continue
                in_single = False
            else:
                in_single = True
            i += 1
            continue

        if ch == '"' and not in_single:
            out.append(ch)
            if in_double:
                if i + 1 < len(sql) and sql[i + 1] == '"':
                    out.append('"')
                    i += 2
                    continue
                in_double = False
            else:
                in_double = True
            i += 1
            continue

        if ch == "?" and not in_single and not in_double:
            out.append("%s")
            i += 1
            continue

        out.append(ch)
        i += 1

    return "".join(out)


@dataclass(frozen=True)
class Query:
    """A statement with `?` placeholders and its positional parameters.

    Values always travel in `params`; they are never formatted into `statement`.
    """

    statement: str
    params: Tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", tuple(self.params or ()))


def _open_postgres(dsn: str, *, connect_timeout: float) -> Any:
    try:
        import psycopg2
        import psycopg2.extras
    except Exception as e:
        raise ConnectError(
            "Postgres selected but psycopg2 is not installed. "
            "Install psycopg2-binary and try again."
        ) from e

    # RealDictCursor makes fetchone()/fetchall() rows act like dicts.
    return psycopg2.connect(
        dsn,
        cursor_factory=psycopg2.extras.RealDictCursor,
        connect_timeout=max(1, int(round(connect_timeout))),
    )


def _open_sqlite(dsn: str) -> Any:
    if dsn.lower().startswith("sqlite:///"):
        dsn = dsn[len("sqlite:///") :]

    Path(dsn).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(dsn, timeout=30, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA busy_timeout=5000;")  # 5s
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def open_connection(dsn: str, *, connect_timeout: float = 2.0) -> Any:
    """Open a raw DB-API connection for the dialect implied by `dsn`."""
    dsn = (dsn or "").strip()
    if _detect_dialect(dsn) == "postgres":
        return _open_postgres(dsn, connect_timeout=connect_timeout)
    return _open_sqlite(dsn)


def _close_quietly(conn: Any) -> None:
    try:
        conn.close()
    except Exception:
        pass


class ConnectionPool:
    """Bounded pool of DB-API connections.

    At most `max_size` connections are checked out at once. `acquire()` waits
    up to `timeout_seconds` for a free slot and then raises `PoolExhausted`.
    Connections are opened lazily and reused after `release()`.
    """

    def __init__(
        self,
        dsn: str,
        *,
        max_size: int = 20,
        timeout_seconds: float = 2.0,
        connect: Optional[Callable[[], Any]] = None,
    ):
        if int(max_size) < 1:
            raise ValueError("pool_max_size_must_be_positive")
        self.dsn = (dsn or "").strip()
        self.dialect = _detect_dialect(self.dsn)
        self.max_size = int(max_size)
        self.timeout_seconds = float(timeout_seconds)
        self._connect = connect or (lambda: open_connection(self.dsn, connect_timeout=self.timeout_seconds))
        self._slots = threading.BoundedSemaphore(self.max_size)
        self._lock = threading.Lock()
        self._idle: List[Any] = []
        self._in_use: Dict[int, Any] = {}
        self._closed = False
        _debug(f"Pool created ({self.dialect}): max_size={self.max_size} timeout={self.timeout_seconds}s")

    @property
    def in_use(self) -> int:
        with self._lock:
            return len(self._in_use)

    @property
    def idle(self) -> int:
        with self._lock:
            return len(self._idle)

    def acquire(self) -> Any:
        if not self._slots.acquire(timeout=self.timeout_seconds):
            raise PoolExhausted(
                f"no connection available within {self.timeout_seconds}s (max_size={self.max_size})"
            )
        try:
            with self._lock:
                conn = self._idle.pop() if self._idle else None
            if conn is None:
                conn = self._connect()
        except ConnectError:
            self._slots.release()
            raise
        except Exception as e:
            self._slots.release()
            raise ConnectError(f"could not open connection: {e}") from e

        with self._lock:
            self._in_use[id(conn)] = conn
        return conn

    def release(self, conn: Any, *, discard: bool = False) -> None:
        """Return a checked-out connection. `discard` closes it instead of reusing it."""
        with self._lock:
            if self._in_use.pop(id(conn), None) is None:
                raise RuntimeError("connection is not checked out from this pool")
            keep = not discard and not self._closed
            if keep:
                self._idle.append(conn)
        if not keep:
            _close_quietly(conn)
        self._slots.release()

    @contextmanager
    def connection(self) -> Iterator[Any]:
        conn = self.acquire()
        try:
            yield conn
        finally:
            self.release(conn)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            idle, self._idle = self._idle, []
        for conn in idle:
            _close_quietly(conn)


class Repository:
    """Runs `Query` descriptors on pooled connections.

    Each `execute` call checks out one connection, runs a single statement in
    its own transaction and hands the connection back on every exit path.
    """

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    @property
    def dialect(self) -> str:
        return self.pool.dialect

    def _statement(self, sql: str) -> str:
        if self.dialect == "postgres":
            return _qmark_to_pct(sql)
        return sql

    def execute(self, query: Query) -> List[Dict[str, Any]]:
        conn = self.pool.acquire()
        discard = False
        try:
            cur = conn.cursor()
            try:
                cur.execute(self._statement(query.statement), query.params)
                rows = [dict(r) for r in cur.fetchall()] if cur.description else []
            finally:
                try:
                    cur.close()
                except Exception:
                    pass
            conn.commit()
            return rows
        except Exception as e:
            try:
                conn.rollback()
            except Exception:
                # A connection that cannot roll back is not safe to reuse.
                discard = True
            raise StatementError(f"{type(e).__name__}: {e}") from e
        finally:
            self.pool.release(conn, discard=discard)

    def execute_many(self, queries: Sequence[Query]) -> None:
        for q in queries:
            self.execute(q)

    def close(self) -> None:
        self.pool.close()


def init_db(repo: Repository) -> None:
    """Create all tables (idempotent)."""
    _debug(f"Initializing DB ({repo.dialect})")
    ddl = get_schema_sql(repo.dialect)
    # Naive split is OK for our schema (no semicolons inside literals).
    statements = [s.strip() for s in ddl.split(";") if s.strip()]
    repo.execute_many([Query(stmt) for stmt in statements])
