# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from shop_ledger.database.repositories import (
        # Generic store + errors
        DocumentsRepo, DomainError, NotFoundError, ConcurrencyError,
        # Sales / purchases
        TransactionsRepo, Transaction, LineItem, CheckDetails,
        # Products
        ProductsRepo, Product,
        # Banks, currencies, check register
        ReferenceRepo,
    )
"""

# ---------------- Store ----------------
from .documents_repo import (
    transaction,
    ConcurrencyError,
    DocumentsRepo,
    DomainError,
    NotFoundError,
)

# ---------------- Sales / purchases ----------------
from .transactions_repo import (
    CheckDetails,
    LineItem,
    Transaction,
    TransactionsRepo,
)

# ---------------- Products ----------------
from .products_repo import Product, ProductsRepo

# ---------------- Reference data ----------------
from .reference_repo import ReferenceRepo

__all__ = [
    "transaction",
    "ConcurrencyError",
    "DocumentsRepo",
    "DomainError",
    "NotFoundError",
    "CheckDetails",
    "LineItem",
    "Transaction",
    "TransactionsRepo",
    "Product",
    "ProductsRepo",
    "ReferenceRepo",
]
