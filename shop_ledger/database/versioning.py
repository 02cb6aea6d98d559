# database/versioning.py
"""
Single-row record of which schema version a database file was created with.

The document schema itself is additive (CREATE IF NOT EXISTS), so there is
nothing to migrate yet; a file written by a newer release is still opened,
with a warning.
"""
from __future__ import annotations

import sqlite3

from ..constants import SCHEMA_VERSION, TABLE_SCHEMA_VERSION
from ..utils.loggers import get_logger

_log = get_logger(__name__)

_DDL = f"""
CREATE TABLE IF NOT EXISTS {TABLE_SCHEMA_VERSION}(
    id          INTEGER PRIMARY KEY CHECK (id = 1),
    version     TEXT NOT NULL,
    recorded_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""


def get_current_version(conn: sqlite3.Connection) -> str | None:
    conn.execute(_DDL)
    row = conn.execute(f"SELECT version FROM {TABLE_SCHEMA_VERSION} WHERE id = 1").fetchone()
    return None if row is None else str(row[0])


def set_current_version(conn: sqlite3.Connection, version: str = SCHEMA_VERSION) -> None:
    conn.execute(_DDL)
    conn.execute(
        f"INSERT INTO {TABLE_SCHEMA_VERSION}(id, version) VALUES (1, ?) "
        "ON CONFLICT(id) DO UPDATE SET version = excluded.version, recorded_at = CURRENT_TIMESTAMP",
        (version,),
    )
    conn.commit()


def ensure_version(conn: sqlite3.Connection) -> str:
    """Record SCHEMA_VERSION on a fresh file; otherwise return what is stored."""
    current = get_current_version(conn)
    if current is None:
        set_current_version(conn, SCHEMA_VERSION)
        return SCHEMA_VERSION
    if current != SCHEMA_VERSION:
        _log.warning("database schema version %s differs from application version %s",
                     current, SCHEMA_VERSION)
    return current
