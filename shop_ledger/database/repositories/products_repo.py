# shop_ledger/database/repositories/products_repo.py
from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, List

from ...utils.loggers import get_logger
from ...utils.validators import as_number, number_or
from .documents_repo import DocumentsRepo, DomainError

COLLECTION = "products"

_log = get_logger(__name__)


def _stock_of(rec: Dict[str, Any]) -> float:
    # Older records kept stock under 'quantity'.
    for key in ("stock", "quantity"):
        val = as_number(rec.get(key))
        if val is not None:
            return val
    return 0.0


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    stock: float
    price: float = 0.0
    category: str | None = None

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "Product":
        return cls(
            id=str(rec.get("id") or ""),
            name=str(rec.get("name") or ""),
            stock=_stock_of(rec),
            price=number_or(rec.get("price")),
            category=rec.get("category"),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "stock": self.stock,
            "price": self.price,
            "category": self.category,
        }


class ProductsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.docs = DocumentsRepo(conn)

    def list_products(self) -> List[Product]:
        return [Product.from_record(r) for r in self.docs.list(COLLECTION)]

    def get(self, product_id: str) -> Product:
        return Product.from_record(self.docs.get(COLLECTION, product_id))

    def create(self, name: str, stock: float = 0.0, price: float = 0.0, category: str | None = None) -> Product:
        if not name or not name.strip():
            raise DomainError("Product name cannot be empty.")
        if stock < 0:
            raise DomainError("Stock cannot be negative.")
        rec = self.docs.create(
            COLLECTION,
            {"name": name.strip(), "stock": float(stock), "price": float(price), "category": category},
        )
        return Product.from_record(rec)

    def set_stock(self, product_id: str, stock: float) -> None:
        self.docs.update(COLLECTION, product_id, {"stock": stock})
        _log.info("stock for product %s set to %s", product_id, stock)

    def save_stock_levels(self, before: List[Product], after: List[Product]) -> List[Product]:
        """Write only the products whose stock changed; returns the changed ones."""
        old = {p.id: p.stock for p in before}
        changed = [p for p in after if old.get(p.id) != p.stock]
        for p in changed:
            self.set_stock(p.id, p.stock)
        return changed

    def delete(self, product_id: str) -> None:
        self.docs.delete(COLLECTION, product_id)
