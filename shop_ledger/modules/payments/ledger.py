"""
modules/payments/ledger.py

Balance ledger for sales and purchases (same shape, opposite direction).

Everything here is pure: functions take records, validate, and hand back
NEW records. Nothing is persisted; the controller owns the store.

Validation always runs before anything is computed, so a rejected call has
no partial effect.

Overpayment is not an error: record_payment() returns the overpaid result
with `overpaid=True` and a warning, and the caller decides whether to
commit it.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Sequence

from ...constants import (
    CHECK_METHOD,
    COLLECTION_BY_KIND,
    PAYMENT_METHODS,
    PAYMENT_TYPES,
)
from ...database.repositories.documents_repo import DomainError
from ...database.repositories.products_repo import Product
from ...database.repositories.transactions_repo import CheckDetails, LineItem, Transaction
from ...utils.helpers import fmt_money, now_iso
from ...utils.loggers import get_logger
from ...utils.validators import is_non_negative_number, is_strictly_positive_number, non_empty
from .payment_utilities.calculations import (
    balance_of,
    credit_held,
    is_overpayment,
    is_settled,
    project_after_payment,
    remaining_due,
    status_from_paid,
)
from .payment_utilities.status import PAID

_log = get_logger(__name__)


class ValidationError(DomainError, ValueError):
    """Input rejected before any state was touched."""
    pass


class OverpaymentNotConfirmed(DomainError):
    """The payment exceeds the balance and the caller did not confirm it."""

    def __init__(self, payment_amount: float, balance: float):
        super().__init__(
            f"Payment amount ({fmt_money(payment_amount)}) is greater than outstanding "
            f"balance ({fmt_money(balance)}). This will result in overpayment."
        )
        self.payment_amount = payment_amount
        self.balance = balance


@dataclass(frozen=True)
class PaymentResult:
    transaction: Transaction
    payment_amount: float
    overpaid: bool = False
    warnings: List[str] = field(default_factory=list)


# -----------------------------
# Validation helpers
# -----------------------------

def _ensure_kind(kind: str) -> str:
    if kind not in COLLECTION_BY_KIND:
        raise ValidationError(f"Unknown transaction kind: {kind!r}")
    return kind


def _ensure_method(method: str, check_details: Optional[CheckDetails]) -> str:
    m = (method or "").strip().lower()
    if m not in PAYMENT_METHODS:
        raise ValidationError(f"Unsupported payment method: {method}")
    if m == CHECK_METHOD and check_details is None:
        raise ValidationError("Check payments require check details (bank, check number).")
    return m


def _ensure_counterparty(counterparty_id) -> str:
    if not non_empty(counterparty_id):
        raise ValidationError("Please select a customer or vendor.")
    return str(counterparty_id).strip()


def _details_for(method: str, check_details: Optional[CheckDetails]) -> Optional[CheckDetails]:
    # checkDetails is present iff the method is check
    return check_details if method == CHECK_METHOD else None


# -----------------------------
# Payments
# -----------------------------

def record_payment(
    transaction: Transaction,
    payment_amount: float,
    method: str,
    check_details: Optional[CheckDetails] = None,
    *,
    date: Optional[str] = None,
    notes: Optional[str] = None,
) -> PaymentResult:
    """
    Add a payment to a sale/purchase.

    new_amount_paid = amount_paid + payment_amount
    new_balance     = total_amount - new_amount_paid
    payment_status  = status_from_paid(total_amount, new_amount_paid)

    Raises ValidationError for a non-positive amount, an unknown method, a
    check without details, or a payment-only record.
    """
    if not is_strictly_positive_number(payment_amount):
        raise ValidationError("Payment amount must be greater than 0.")
    amount = float(payment_amount)
    m = _ensure_method(method, check_details)
    if transaction.is_payment_only:
        raise ValidationError("Payment-only records carry no balance to pay against.")

    current_balance = balance_of(transaction.total_amount, transaction.amount_paid)
    new_paid, new_balance, new_status = project_after_payment(
        total_amount=transaction.total_amount,
        current_amount_paid=transaction.amount_paid,
        payment_amount=amount,
    )

    warnings: List[str] = []
    overpaid = is_overpayment(current_balance, amount)
    if overpaid:
        msg = (
            f"Payment amount ({fmt_money(amount)}) is greater than outstanding balance "
            f"({fmt_money(current_balance)}); {fmt_money(-new_balance)} becomes credit."
        )
        warnings.append(msg)
        _log.warning("%s %s: %s", transaction.kind, transaction.id, msg)

    updated = replace(
        transaction,
        amount_paid=new_paid,
        balance=new_balance,
        payment_status=new_status,
        last_payment_date=date or now_iso(),
        last_payment_method=m,
        last_payment_check_details=_details_for(m, check_details),
        notes=(notes or "").strip() or transaction.notes,
    )
    _log.info(
        "payment %s on %s %s via %s -> balance %s (%s)",
        fmt_money(amount), transaction.kind, transaction.id, m, fmt_money(new_balance), new_status,
    )
    return PaymentResult(transaction=updated, payment_amount=amount, overpaid=overpaid, warnings=warnings)


def create_payment_only_transaction(
    kind: str,
    counterparty_id: str,
    amount: float,
    method: str,
    payment_type: str,
    check_details: Optional[CheckDetails] = None,
    *,
    counterparty_name: Optional[str] = None,
    date: Optional[str] = None,
    notes: Optional[str] = None,
) -> Transaction:
    """
    Standalone settlement/advance/deposit: no line items, total 0, the whole
    amount held as credit (balance = -amount), always 'paid'.
    """
    _ensure_kind(kind)
    party = _ensure_counterparty(counterparty_id)
    if not is_strictly_positive_number(amount):
        raise ValidationError("Payment amount must be greater than 0.")
    if payment_type not in PAYMENT_TYPES:
        raise ValidationError(
            f"Unknown payment type {payment_type!r}; expected one of: {', '.join(PAYMENT_TYPES)}"
        )
    m = _ensure_method(method, check_details)
    amt = float(amount)

    return Transaction(
        id=None,
        kind=kind,
        date=date or now_iso(),
        counterparty_id=party,
        counterparty_name=counterparty_name,
        line_items=(),
        total_amount=0.0,
        amount_paid=amt,
        balance=-amt,
        payment_status=PAID,
        is_payment_only=True,
        payment_method=m,
        check_details=_details_for(m, check_details),
        payment_type=payment_type,
        notes=(notes or "").strip() or None,
    )


def create_transaction(
    kind: str,
    counterparty_id: str,
    line_items: Sequence[LineItem],
    amount_paid: float,
    method: str,
    check_details: Optional[CheckDetails] = None,
    *,
    counterparty_name: Optional[str] = None,
    date: Optional[str] = None,
    notes: Optional[str] = None,
) -> Transaction:
    """
    New sale/purchase from a cart. Prices are taken from the line items as
    given (snapshotted now), never looked up again later.
    """
    _ensure_kind(kind)
    party = _ensure_counterparty(counterparty_id)
    items = tuple(line_items or ())
    if not items:
        raise ValidationError("Cart is empty.")
    for item in items:
        if not non_empty(item.product_id):
            raise ValidationError("Every line item needs a product.")
        if not is_strictly_positive_number(item.quantity):
            raise ValidationError(f"Quantity for product {item.product_id} must be greater than 0.")
        if not is_non_negative_number(item.unit_price):
            raise ValidationError(f"Price for product {item.product_id} cannot be negative.")
    if not is_non_negative_number(amount_paid):
        raise ValidationError("Amount paid cannot be negative.")
    m = _ensure_method(method, check_details)

    total = sum(i.quantity * i.unit_price for i in items)
    paid = float(amount_paid)
    return Transaction(
        id=None,
        kind=kind,
        date=date or now_iso(),
        counterparty_id=party,
        counterparty_name=counterparty_name,
        line_items=items,
        total_amount=total,
        amount_paid=paid,
        balance=balance_of(total, paid),
        payment_status=status_from_paid(total, paid),
        is_payment_only=False,
        payment_method=m,
        check_details=_details_for(m, check_details),
        notes=(notes or "").strip() or None,
    )


# -----------------------------
# Queries
# -----------------------------

def select_outstanding(
    transactions: Iterable[Transaction],
    search_text: Optional[str] = None,
) -> List[Transaction]:
    """
    Transactions with money still owed (balance > 0). Fully paid records and
    payment-only credit records drop out. Optional case-insensitive
    substring filter on counterparty name or id.
    """
    needle = (search_text or "").strip().lower()
    out: List[Transaction] = []
    for t in transactions:
        if is_settled(t.balance):
            continue
        if needle:
            name = (t.counterparty_name or "").lower()
            if needle not in name and needle not in (t.counterparty_id or "").lower():
                continue
        out.append(t)
    return out


def counterparty_summary(transactions: Iterable[Transaction], counterparty_id: str) -> Dict[str, float]:
    """
    {outstanding, credit, net} for one customer/vendor.
    net > 0 means they still owe; net < 0 means credit held.
    """
    outstanding = 0.0
    credit = 0.0
    for t in transactions:
        if t.counterparty_id != counterparty_id:
            continue
        outstanding += remaining_due(t.balance)
        credit += credit_held(t.balance)
    return {"outstanding": outstanding, "credit": credit, "net": outstanding - credit}


# -----------------------------
# Stock
# -----------------------------

def _quantities_by_product(line_items: Iterable[LineItem]) -> Dict[str, float]:
    qty: Dict[str, float] = defaultdict(float)
    for item in line_items:
        qty[item.product_id] += item.quantity
    return dict(qty)


def check_stock_available(products: Iterable[Product], line_items: Iterable[LineItem]) -> None:
    """Raise ValidationError naming every product the cart asks too much of."""
    by_id = {p.id: p for p in products}
    short: List[str] = []
    for product_id, wanted in _quantities_by_product(line_items).items():
        product = by_id.get(product_id)
        if product is None or product.stock < wanted:
            short.append(product.name if product is not None else product_id)
    if short:
        raise ValidationError(f"Insufficient stock for: {', '.join(short)}")


def check_products_exist(products: Iterable[Product], line_items: Iterable[LineItem]) -> None:
    """Raise ValidationError listing line items whose product is not in the catalogue."""
    known = {p.id for p in products}
    missing = sorted({i.product_id for i in line_items if i.product_id not in known})
    if missing:
        raise ValidationError(f"Unknown product: {', '.join(missing)}")


def apply_stock_movement(products: Iterable[Product], transaction: Transaction) -> List[Product]:
    """
    New product list after a completed transaction: sales take stock out,
    purchases put it back in. Stock never drops below 0.
    """
    products = list(products)
    if transaction.is_payment_only:
        return products
    moved = _quantities_by_product(transaction.line_items)
    sign = -1.0 if transaction.kind == "sale" else 1.0
    out: List[Product] = []
    for p in products:
        delta = moved.pop(p.id, 0.0)
        out.append(replace(p, stock=max(0.0, p.stock + sign * delta)) if delta else p)
    for missing in moved:
        _log.debug("stock movement for unknown product %s ignored", missing)
    return out
