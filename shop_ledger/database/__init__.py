# database/__init__.py
from __future__ import annotations

from pathlib import Path
import sqlite3

from ..config import DB_PATH
from . import schema as schema_module
from .versioning import ensure_version


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """
    Returns a sqlite3.Connection with:
      - WAL mode
      - foreign_keys ON
      - row_factory = sqlite3.Row (so rows behave like dicts and tuples)
    Ensures the schema is applied idempotently and the version row exists.
    """
    path = Path(db_path) if db_path is not None else DB_PATH

    # Always apply the schema (idempotent: uses CREATE IF NOT EXISTS / DROP TRIGGER IF EXISTS)
    schema_module.init_schema(path)

    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute("PRAGMA journal_mode = WAL;")

    ensure_version(conn)
    conn.commit()
    return conn


__all__ = [
    "get_connection",
]
