# database/repositories/documents_repo.py
"""
Generic record store backing every collection (sales, purchases, products,
banks, currencies, checks, incomes, expenses, ...).

Contract:
  • create(collection, record)      -> record with 'id' (and 'version' = 1)
  • get(collection, id)             -> record            (NotFoundError if missing)
  • list(collection)                -> [record, ...]     (insertion order)
  • update(collection, id, partial) -> merged record     (NotFoundError if missing)
  • delete(collection, id)          -> None              (NotFoundError if missing)

Records are stored as JSON exactly as given; field names are never
rewritten, so downstream aggregation keyed on e.g. 'productId' keeps working.

update() merges the partial record into the stored one (same semantics as a
merge-set in a document database) and bumps 'version'. Passing
expected_version turns the write into a compare-and-set; a mismatch raises
ConcurrencyError instead of silently overwriting a concurrent payment.
"""
from __future__ import annotations

import json
import sqlite3
import uuid
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from ...utils.loggers import get_logger

_log = get_logger(__name__)


class DomainError(Exception):
    """Domain-level error the controller/UI can surface (toast/snackbar)."""
    pass


class NotFoundError(DomainError, LookupError):
    """The record was deleted (or never existed) in the store."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"No {collection} record found with ID: {doc_id}")
        self.collection = collection
        self.doc_id = doc_id


class ConcurrencyError(DomainError):
    """The stored record changed since the caller read it."""

    def __init__(self, collection: str, doc_id: str, expected: int, actual: int):
        super().__init__(
            f"{collection} record {doc_id} was modified elsewhere "
            f"(expected version {expected}, found {actual}). Reload and try again."
        )
        self.collection = collection
        self.doc_id = doc_id
        self.expected = expected
        self.actual = actual


@contextmanager
def transaction(conn: sqlite3.Connection):
    """
    IMMEDIATE transaction (write lock taken up front), commit on success,
    rollback on error.

    Nested use joins the open transaction: the inner block neither commits
    nor rolls back, the outermost one decides. Controllers wrap a whole
    operation (transaction + stock + check register) in one block this way.
    """
    if conn.in_transaction:
        yield conn
        return
    cur = conn.cursor()
    try:
        cur.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cur.close()


# Keys managed by the store itself; callers cannot override them through update().
_RESERVED = ("id", "version")


class DocumentsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        # Use Row for named access
        self.conn.row_factory = sqlite3.Row

    # ---------------------------- TX helper ----------------------------

    def _immediate_tx(self):
        return transaction(self.conn)

    # ---------------------------- internals ----------------------------

    @staticmethod
    def _decode(row: sqlite3.Row) -> Dict[str, Any]:
        rec = json.loads(row["body"])
        rec["id"] = row["doc_id"]
        rec["version"] = int(row["version"])
        return rec

    def _fetch(self, collection: str, doc_id: str) -> sqlite3.Row:
        row = self.conn.execute(
            "SELECT doc_id, body, version FROM documents WHERE collection=? AND doc_id=?",
            (collection, str(doc_id)),
        ).fetchone()
        if row is None:
            raise NotFoundError(collection, str(doc_id))
        return row

    # ---------------------------- API ----------------------------

    def create(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        body = {k: v for k, v in dict(record).items() if k not in _RESERVED}
        doc_id = str(record.get("id") or uuid.uuid4().hex)
        with self._immediate_tx():
            self.conn.execute(
                "INSERT INTO documents(collection, doc_id, body, version) VALUES (?, ?, ?, 1)",
                (collection, doc_id, json.dumps(body)),
            )
        _log.debug("created %s/%s", collection, doc_id)
        return {**body, "id": doc_id, "version": 1}

    def get(self, collection: str, doc_id: str) -> Dict[str, Any]:
        return self._decode(self._fetch(collection, doc_id))

    def list(self, collection: str) -> List[Dict[str, Any]]:
        rows = self.conn.execute(
            "SELECT doc_id, body, version FROM documents WHERE collection=? ORDER BY rowid",
            (collection,),
        ).fetchall()
        return [self._decode(r) for r in rows]

    def update(
        self,
        collection: str,
        doc_id: str,
        partial: Dict[str, Any],
        *,
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        with self._immediate_tx():
            row = self._fetch(collection, doc_id)
            current = int(row["version"])
            if expected_version is not None and int(expected_version) != current:
                raise ConcurrencyError(collection, str(doc_id), int(expected_version), current)

            body = json.loads(row["body"])
            body.update({k: v for k, v in dict(partial).items() if k not in _RESERVED})
            self.conn.execute(
                "UPDATE documents SET body=?, version=? WHERE collection=? AND doc_id=?",
                (json.dumps(body), current + 1, collection, str(doc_id)),
            )
        _log.debug("updated %s/%s -> v%d", collection, doc_id, current + 1)
        return {**body, "id": str(doc_id), "version": current + 1}

    def delete(self, collection: str, doc_id: str) -> None:
        with self._immediate_tx():
            cur = self.conn.execute(
                "DELETE FROM documents WHERE collection=? AND doc_id=?",
                (collection, str(doc_id)),
            )
            if cur.rowcount == 0:
                raise NotFoundError(collection, str(doc_id))
        _log.debug("deleted %s/%s", collection, doc_id)
