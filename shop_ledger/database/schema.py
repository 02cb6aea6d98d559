from pathlib import Path
import sqlite3
import sys

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== DOCUMENT STORE ======================== */

/*
   One row per record. `body` is the JSON record exactly as the caller
   handed it over (camelCase keys preserved); `version` backs the
   optimistic-concurrency check on updates.
*/
CREATE TABLE IF NOT EXISTS documents (
    collection  TEXT    NOT NULL,
    doc_id      TEXT    NOT NULL,
    body        TEXT    NOT NULL CHECK (json_valid(body)),
    version     INTEGER NOT NULL DEFAULT 1 CHECK (version >= 1),
    created_at  TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at  TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (collection, doc_id)
);
CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection);

/* bump updated_at on every write */
DROP TRIGGER IF EXISTS trg_documents_touch;
CREATE TRIGGER trg_documents_touch
AFTER UPDATE OF body ON documents
FOR EACH ROW
BEGIN
    UPDATE documents
       SET updated_at = CURRENT_TIMESTAMP
     WHERE collection = NEW.collection AND doc_id = NEW.doc_id;
END;
"""


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply the (idempotent) schema on an open connection."""
    conn.executescript(SQL)


def init_schema(db_path: Path | str = "shop_ledger.db") -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        apply_schema(conn)
        conn.commit()


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else Path(__file__).resolve().parents[1] / "data" / "shop_ledger.db"
    init_schema(target)
    print(f"✓ DB applied to {target}")
