"""Database schema for the senior registry.

Dates are kept as ISO-8601 TEXT (YYYY-MM-DD) for portability across SQLite and
Postgres. The Postgres schema is generated from the SQLite schema with a small
set of transformations (autoincrement keys).
"""

from __future__ import annotations

import re


SCHEMA_SQLITE = r"""
-- Staff credential. One row is authoritative (lowest id). username is unique
-- so a lookup can never match more than one row.
CREATE TABLE IF NOT EXISTS credentials (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Enrolled residents. The emergency contact columns are all NOT NULL so a
-- partially populated contact cannot be stored.
CREATE TABLE IF NOT EXISTS residents (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    application_type TEXT NOT NULL,
    first_name TEXT NOT NULL,
    middle_name TEXT,
    last_name TEXT NOT NULL,
    sex TEXT NOT NULL,
    date_of_birth TEXT NOT NULL,
    place_of_birth TEXT NOT NULL,
    civil_status TEXT NOT NULL,
    education TEXT NOT NULL,
    occupation TEXT NOT NULL,
    barangay TEXT NOT NULL,
    contact_name TEXT NOT NULL,
    contact_relationship TEXT NOT NULL,
    contact_phone TEXT NOT NULL,
    health_notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_residents_barangay ON residents (barangay);
CREATE INDEX IF NOT EXISTS idx_residents_last_name ON residents (last_name, first_name);
"""


def _sqlite_to_postgres(ddl: str) -> str:
    # AUTOINCREMENT primary keys
    out = re.sub(
        r"INTEGER\s+PRIMARY\s+KEY\s+AUTOINCREMENT",
        "BIGSERIAL PRIMARY KEY",
        ddl,
        flags=re.IGNORECASE,
    )
    return out


SCHEMA_POSTGRES = _sqlite_to_postgres(SCHEMA_SQLITE)


def get_schema_sql(dialect: str) -> str:
    d = (dialect or "").lower()
    if d.startswith("post"):
        return SCHEMA_POSTGRES
    return SCHEMA_SQLITE
