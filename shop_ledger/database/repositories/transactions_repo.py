from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from ...constants import COLLECTION_BY_KIND, KIND_PURCHASE, KIND_SALE
from ...utils.validators import number_or
from .documents_repo import DocumentsRepo


def _first(rec: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if rec.get(k) is not None:
            return rec[k]
    return None


@dataclass(frozen=True)
class LineItem:
    product_id: str
    quantity: float
    unit_price: float          # snapshotted at transaction time
    name: str | None = None

    @property
    def line_total(self) -> float:
        return self.quantity * self.unit_price

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "LineItem":
        # Purchases were written with priceAtPurchase, POS sales with price.
        return cls(
            product_id=str(_first(rec, "productId", "id") or ""),
            quantity=number_or(rec.get("quantity")),
            unit_price=number_or(_first(rec, "unitPriceAtTransaction", "priceAtPurchase", "price")),
            name=rec.get("name"),
        )

    def to_record(self, kind: str) -> Dict[str, Any]:
        rec: Dict[str, Any] = {
            "productId": self.product_id,
            "quantity": self.quantity,
            "unitPriceAtTransaction": self.unit_price,
        }
        if kind == KIND_PURCHASE:
            rec["priceAtPurchase"] = self.unit_price
        else:
            rec["price"] = self.unit_price
        if self.name is not None:
            rec["name"] = self.name
        return rec


@dataclass(frozen=True)
class CheckDetails:
    date: str
    bank_name: str
    check_number: str
    payee: str | None
    currency: str
    amount: float
    status: str = "pending"

    @classmethod
    def from_record(cls, rec: Optional[Dict[str, Any]]) -> Optional["CheckDetails"]:
        if not rec:
            return None
        return cls(
            date=str(rec.get("date") or ""),
            bank_name=str(rec.get("bankName") or ""),
            check_number=str(rec.get("checkNumber") or ""),
            payee=rec.get("payee"),
            currency=str(rec.get("currency") or ""),
            amount=number_or(rec.get("amount")),
            status=str(rec.get("status") or "pending"),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "bankName": self.bank_name,
            "checkNumber": self.check_number,
            "payee": self.payee,
            "currency": self.currency,
            "amount": self.amount,
            "status": self.status,
        }


@dataclass(frozen=True)
class Transaction:
    id: str | None
    kind: str                                  # 'sale' | 'purchase'
    date: str
    counterparty_id: str
    counterparty_name: str | None
    line_items: Tuple[LineItem, ...]
    total_amount: float
    amount_paid: float
    balance: float
    payment_status: str                        # 'unpaid' | 'partial' | 'paid'
    is_payment_only: bool = False
    payment_method: str | None = None
    check_details: CheckDetails | None = None
    payment_type: str | None = None
    notes: str | None = None
    last_payment_date: str | None = None
    last_payment_method: str | None = None
    last_payment_check_details: CheckDetails | None = None
    version: int | None = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    # ---- record mapping ----

    _KNOWN_KEYS = frozenset({
        "id", "date", "counterpartyId", "counterpartyName", "customerId", "customerName",
        "vendorId", "vendorName", "lineItems", "items", "products", "totalAmount",
        "amountPaid", "balance", "paymentStatus", "isPaymentOnly", "paymentMethod",
        "checkDetails", "paymentType", "paymentNotes", "lastPaymentDate",
        "lastPaymentMethod", "lastPaymentCheckDetails", "version",
    })

    @classmethod
    def from_record(cls, kind: str, rec: Dict[str, Any]) -> "Transaction":
        party_id_key, party_name_key = (
            ("customerId", "customerName") if kind == KIND_SALE else ("vendorId", "vendorName")
        )
        raw_items = _first(rec, "lineItems", "items", "products") or []
        total = number_or(rec.get("totalAmount"))
        paid = number_or(rec.get("amountPaid"))
        balance = number_or(rec.get("balance"), default=total - paid)
        version = rec.get("version")
        return cls(
            id=None if rec.get("id") is None else str(rec["id"]),
            kind=kind,
            date=str(rec.get("date") or ""),
            counterparty_id=str(_first(rec, "counterpartyId", party_id_key) or ""),
            counterparty_name=_first(rec, "counterpartyName", party_name_key),
            line_items=tuple(LineItem.from_record(i) for i in raw_items),
            total_amount=total,
            amount_paid=paid,
            balance=balance,
            payment_status=str(rec.get("paymentStatus") or "unpaid"),
            is_payment_only=bool(rec.get("isPaymentOnly", False)),
            payment_method=rec.get("paymentMethod"),
            check_details=CheckDetails.from_record(rec.get("checkDetails")),
            payment_type=rec.get("paymentType"),
            notes=rec.get("paymentNotes"),
            last_payment_date=rec.get("lastPaymentDate"),
            last_payment_method=rec.get("lastPaymentMethod"),
            last_payment_check_details=CheckDetails.from_record(rec.get("lastPaymentCheckDetails")),
            version=None if version is None else int(version),
            extra={k: v for k, v in rec.items() if k not in cls._KNOWN_KEYS},
        )

    def to_record(self) -> Dict[str, Any]:
        party_id_key, party_name_key = (
            ("customerId", "customerName") if self.kind == KIND_SALE else ("vendorId", "vendorName")
        )
        rec: Dict[str, Any] = dict(self.extra)
        rec.update({
            "date": self.date,
            "counterpartyId": self.counterparty_id,
            "counterpartyName": self.counterparty_name,
            party_id_key: self.counterparty_id,
            party_name_key: self.counterparty_name,
            "lineItems": [i.to_record(self.kind) for i in self.line_items],
            "totalAmount": self.total_amount,
            "amountPaid": self.amount_paid,
            "balance": self.balance,
            "paymentStatus": self.payment_status,
            "isPaymentOnly": self.is_payment_only,
            "paymentMethod": self.payment_method,
            "paymentType": self.payment_type,
            "paymentNotes": self.notes,
        })
        if self.check_details is not None:
            rec["checkDetails"] = self.check_details.to_record()
        if self.last_payment_date is not None:
            rec["lastPaymentDate"] = self.last_payment_date
            rec["lastPaymentMethod"] = self.last_payment_method
        if self.last_payment_check_details is not None:
            rec["lastPaymentCheckDetails"] = self.last_payment_check_details.to_record()
        if self.id is not None:
            rec["id"] = self.id
        return rec

    def payment_fields(self) -> Dict[str, Any]:
        """The only fields a payment may change on a stored transaction."""
        rec = self.to_record()
        keys = ("amountPaid", "balance", "paymentStatus", "lastPaymentDate",
                "lastPaymentMethod", "paymentNotes")
        fields = {k: rec[k] for k in keys if k in rec}
        # Always written: the store merges, so a cash payment must clear the
        # previous check's details explicitly.
        details = self.last_payment_check_details
        fields["lastPaymentCheckDetails"] = None if details is None else details.to_record()
        return fields


class TransactionsRepo:
    """
    Sales and purchases on top of the document store.

    Creation and payment updates only; line items/total are never rewritten
    after create().
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.docs = DocumentsRepo(conn)

    @staticmethod
    def _collection(kind: str) -> str:
        try:
            return COLLECTION_BY_KIND[kind]
        except KeyError:
            raise ValueError(f"Unknown transaction kind: {kind!r}") from None

    def list(self, kind: str) -> List[Transaction]:
        return [Transaction.from_record(kind, r) for r in self.docs.list(self._collection(kind))]

    def get(self, kind: str, txn_id: str) -> Transaction:
        return Transaction.from_record(kind, self.docs.get(self._collection(kind), txn_id))

    def add(self, txn: Transaction) -> Transaction:
        saved = self.docs.create(self._collection(txn.kind), txn.to_record())
        return replace(txn, id=saved["id"], version=saved["version"])

    def save_payment(self, txn: Transaction) -> Transaction:
        """
        Persist the payment fields of `txn`, guarded by the version it was
        read at (ConcurrencyError if someone else paid in between).
        """
        saved = self.docs.update(
            self._collection(txn.kind),
            txn.id,
            txn.payment_fields(),
            expected_version=txn.version,
        )
        return replace(txn, version=saved["version"])

    def delete(self, kind: str, txn_id: str) -> None:
        self.docs.delete(self._collection(kind), txn_id)

