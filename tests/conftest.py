# shop_ledger/tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - pytest-qt owns QApplication (use qapp/qtbot fixtures)
# - Every test gets its own SQLite file under tmp_path (no shared DB)
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON (get_connection)
# - Record builders below produce the stored camelCase shape
# ---------------------------------------------------------------------

from __future__ import annotations

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from shop_ledger.database import get_connection
from shop_ledger.database.repositories import (
    DocumentsRepo,
    LineItem,
    ProductsRepo,
    ReferenceRepo,
    Transaction,
    TransactionsRepo,
)
from shop_ledger.modules.payments.payment_utilities.calculations import balance_of, status_from_paid


# ---------- Qt: let pytest-qt own the app ----------
@pytest.fixture(scope="session")
def app(qapp):  # alias to match code that expects an `app` fixture
    return qapp


# ---------- Per-test database ----------
@pytest.fixture()
def conn(tmp_path):
    con = get_connection(tmp_path / "test.db")
    try:
        yield con
    finally:
        con.close()


@pytest.fixture()
def docs(conn) -> DocumentsRepo:
    return DocumentsRepo(conn)


@pytest.fixture()
def txns(conn) -> TransactionsRepo:
    return TransactionsRepo(conn)


@pytest.fixture()
def products_repo(conn) -> ProductsRepo:
    return ProductsRepo(conn)


@pytest.fixture()
def refs(conn) -> ReferenceRepo:
    return ReferenceRepo(conn)


# ---------- Record builders ----------
def make_txn(
    kind: str,
    items,
    *,
    paid: float = 0.0,
    date: str = "2024-01-15",
    party: str = "C1",
    name: str | None = "Acme",
    txn_id: str | None = None,
    method: str = "cash",
) -> Transaction:
    """items: [(product_id, qty, unit_price), ...]"""
    line_items = tuple(LineItem(pid, float(q), float(p)) for pid, q, p in items)
    total = sum(i.line_total for i in line_items)
    return Transaction(
        id=txn_id,
        kind=kind,
        date=date,
        counterparty_id=party,
        counterparty_name=name,
        line_items=line_items,
        total_amount=total,
        amount_paid=paid,
        balance=balance_of(total, paid),
        payment_status=status_from_paid(total, paid),
        payment_method=method,
    )


@pytest.fixture()
def seeded_products(products_repo):
    """Two products with stock; returns {name: Product}."""
    a = products_repo.create("Widget A", stock=10, price=15)
    b = products_repo.create("Widget B", stock=4, price=30)
    return {"A": a, "B": b}
