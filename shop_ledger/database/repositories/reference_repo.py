# shop_ledger/database/repositories/reference_repo.py
"""
Reference lists used by the check flow and the check register.

Collections:
  - 'banks'       {name}
  - 'currencies'  {name}
  - 'checks'      check details + the transaction it settled

ensure_bank()/ensure_currency() are attach-or-return by case-insensitive
name, so confirming a check against an already-known bank never creates a
duplicate entry.
"""
from __future__ import annotations

import sqlite3
from typing import Any, Dict, List, Optional

from ...constants import CHECK_STATES
from ...utils.loggers import get_logger
from .documents_repo import DocumentsRepo, DomainError
from .transactions_repo import CheckDetails

BANKS = "banks"
CURRENCIES = "currencies"
CHECKS = "checks"

_log = get_logger(__name__)


class ReferenceRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.docs = DocumentsRepo(conn)

    # ---- internals --------------------------------------------------------

    def _ensure_named(self, collection: str, name: str) -> Dict[str, Any]:
        name_n = (name or "").strip()
        if not name_n:
            raise DomainError("Name cannot be empty.")
        for rec in self.docs.list(collection):
            if str(rec.get("name", "")).strip().lower() == name_n.lower():
                return rec
        rec = self.docs.create(collection, {"name": name_n})
        _log.info("added %s entry %r", collection, name_n)
        return rec

    # ---- banks / currencies ----------------------------------------------

    def list_banks(self) -> List[Dict[str, Any]]:
        return self.docs.list(BANKS)

    def ensure_bank(self, name: str) -> Dict[str, Any]:
        return self._ensure_named(BANKS, name)

    def list_currencies(self) -> List[Dict[str, Any]]:
        return self.docs.list(CURRENCIES)

    def ensure_currency(self, name: str) -> Dict[str, Any]:
        return self._ensure_named(CURRENCIES, name)

    # ---- check register ---------------------------------------------------

    @staticmethod
    def _ensure_state(state: Optional[str]) -> str:
        s = (state or "").strip().lower()
        if s not in CHECK_STATES:
            raise DomainError("check status must be one of: " + ", ".join(CHECK_STATES))
        return s

    def register_check(
        self,
        details: CheckDetails,
        *,
        transaction_kind: str,
        transaction_id: str,
        counterparty_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        rec = details.to_record()
        rec.update({
            "status": self._ensure_state(details.status),
            "transactionKind": transaction_kind,
            "transactionId": transaction_id,
            "counterpartyName": counterparty_name,
        })
        return self.docs.create(CHECKS, rec)

    def list_checks(self, state: Optional[str] = None) -> List[Dict[str, Any]]:
        rows = self.docs.list(CHECKS)
        if state is None:
            return rows
        wanted = self._ensure_state(state)
        return [r for r in rows if str(r.get("status", "")).strip().lower() == wanted]

    def update_check_status(self, check_id: str, state: str) -> Dict[str, Any]:
        return self.docs.update(CHECKS, check_id, {"status": self._ensure_state(state)})
