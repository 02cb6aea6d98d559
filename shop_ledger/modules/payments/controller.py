# shop_ledger/modules/payments/controller.py
"""
Glue between the pure ledger and the store.

Every operation follows the same order:
  1) load what is needed,
  2) validate and compute with the ledger (nothing written yet),
  3) persist.

Steps 1-3 run inside ONE immediate transaction: the sale/purchase or
payment, the stock changes and the check register entry are committed
together or not at all. The repos join that transaction instead of
committing on their own.

NotFoundError / ConcurrencyError from the store propagate unchanged so the
caller can tell "record vanished" and "someone paid in between" apart from
bad input (ValidationError).
"""
from __future__ import annotations

import sqlite3
from typing import Optional, Sequence, Tuple

from ...constants import CHECK_METHOD, MONEY_EPSILON
from ...database.repositories.documents_repo import transaction
from ...database.repositories.products_repo import ProductsRepo
from ...database.repositories.reference_repo import ReferenceRepo
from ...database.repositories.transactions_repo import CheckDetails, LineItem, Transaction, TransactionsRepo
from ...utils.helpers import fmt_money
from ...utils.loggers import get_logger
from ...utils.validators import as_number
from . import ledger
from .check_coordinator import CheckPaymentCoordinator
from .ledger import OverpaymentNotConfirmed, PaymentResult, ValidationError

_log = get_logger(__name__)


class PaymentsController:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.transactions = TransactionsRepo(conn)
        self.products = ProductsRepo(conn)
        self.references = ReferenceRepo(conn)

    # ---- helpers ----

    def new_check_coordinator(self, parent=None) -> CheckPaymentCoordinator:
        """Coordinator wired to this store's bank/currency lists."""
        return CheckPaymentCoordinator(references=self.references, parent=parent)

    @staticmethod
    def _resolve_check(
        method: str,
        amount,
        coordinator: Optional[CheckPaymentCoordinator],
        check_details: Optional[CheckDetails],
    ) -> Tuple[Optional[CheckDetails], bool]:
        """
        (details to pass to the ledger, whether the coordinator's check is used).

        The method must agree with the coordinator, and a check must be for
        exactly the amount being paid.
        """
        m = (method or "").strip().lower()
        from_coordinator = False
        details = check_details
        if coordinator is not None:
            coordinator.require_ready()
            if m != coordinator.method:
                raise ValidationError(
                    f"Payment method {method!r} does not match the selected method {coordinator.method!r}."
                )
            if coordinator.state == coordinator.CONFIRMED:
                details = coordinator.confirmed_details()
                from_coordinator = True

        if m == CHECK_METHOD and details is not None:
            paid = as_number(amount)
            # Unparseable amounts are left for the ledger to reject
            if paid is not None and abs(details.amount - paid) > MONEY_EPSILON:
                raise ValidationError(
                    f"Check amount ({fmt_money(details.amount)}) does not match "
                    f"payment amount ({fmt_money(paid)})."
                )
        return details, from_coordinator

    def _register_check(self, txn: Transaction, details: Optional[CheckDetails]) -> None:
        if details is None:
            return
        self.references.register_check(
            details,
            transaction_kind=txn.kind,
            transaction_id=txn.id,
            counterparty_name=txn.counterparty_name,
        )

    # ---- payments ----

    def record_payment(
        self,
        kind: str,
        transaction_id: str,
        amount: float,
        method: str,
        *,
        coordinator: Optional[CheckPaymentCoordinator] = None,
        check_details: Optional[CheckDetails] = None,
        allow_overpayment: bool = False,
        notes: Optional[str] = None,
    ) -> PaymentResult:
        """
        Pay against an existing sale/purchase.

        An overpayment is only committed when allow_overpayment is True
        (the user confirmed the warning); otherwise OverpaymentNotConfirmed
        is raised and nothing is written.
        """
        details, used_coordinator = self._resolve_check(method, amount, coordinator, check_details)
        with transaction(self.conn):
            current = self.transactions.get(kind, transaction_id)
            result = ledger.record_payment(current, amount, method, details, notes=notes)

            if result.overpaid and not allow_overpayment:
                raise OverpaymentNotConfirmed(result.payment_amount, current.balance)

            saved = self.transactions.save_payment(result.transaction)
            self._register_check(saved, saved.last_payment_check_details)

        if used_coordinator:
            coordinator.consume()
        return PaymentResult(
            transaction=saved,
            payment_amount=result.payment_amount,
            overpaid=result.overpaid,
            warnings=result.warnings,
        )

    def record_payment_only(
        self,
        kind: str,
        counterparty_id: str,
        amount: float,
        method: str,
        payment_type: str,
        *,
        counterparty_name: Optional[str] = None,
        coordinator: Optional[CheckPaymentCoordinator] = None,
        check_details: Optional[CheckDetails] = None,
        notes: Optional[str] = None,
    ) -> Transaction:
        details, used_coordinator = self._resolve_check(method, amount, coordinator, check_details)
        txn = ledger.create_payment_only_transaction(
            kind, counterparty_id, amount, method, payment_type, details,
            counterparty_name=counterparty_name, notes=notes,
        )
        with transaction(self.conn):
            saved = self.transactions.add(txn)
            self._register_check(saved, saved.check_details)

        if used_coordinator:
            coordinator.consume()
        _log.info("%s payment-only %s (%s) recorded for %s", kind, saved.id, payment_type, counterparty_id)
        return saved

    # ---- sales / purchases ----

    def _create_with_stock(
        self,
        kind: str,
        counterparty_id: str,
        line_items: Sequence[LineItem],
        amount_paid: float,
        method: str,
        *,
        counterparty_name: Optional[str],
        coordinator: Optional[CheckPaymentCoordinator],
        check_details: Optional[CheckDetails],
        notes: Optional[str],
    ) -> Transaction:
        details, used_coordinator = self._resolve_check(method, amount_paid, coordinator, check_details)
        txn = ledger.create_transaction(
            kind, counterparty_id, line_items, amount_paid, method, details,
            counterparty_name=counterparty_name, notes=notes,
        )
        with transaction(self.conn):
            before = self.products.list_products()
            if kind == "sale":
                ledger.check_stock_available(before, txn.line_items)
            else:
                ledger.check_products_exist(before, txn.line_items)
            after = ledger.apply_stock_movement(before, txn)

            saved = self.transactions.add(txn)
            self.products.save_stock_levels(before, after)
            self._register_check(saved, saved.check_details)

        if used_coordinator:
            coordinator.consume()
        _log.info("%s %s saved: total %.2f, paid %.2f (%s)",
                  kind, saved.id, saved.total_amount, saved.amount_paid, saved.payment_status)
        return saved

    def checkout_sale(
        self,
        customer_id: str,
        line_items: Sequence[LineItem],
        amount_paid: float,
        method: str,
        *,
        customer_name: Optional[str] = None,
        coordinator: Optional[CheckPaymentCoordinator] = None,
        check_details: Optional[CheckDetails] = None,
        notes: Optional[str] = None,
    ) -> Transaction:
        return self._create_with_stock(
            "sale", customer_id, line_items, amount_paid, method,
            counterparty_name=customer_name, coordinator=coordinator,
            check_details=check_details, notes=notes,
        )

    def record_purchase(
        self,
        vendor_id: str,
        line_items: Sequence[LineItem],
        amount_paid: float,
        method: str,
        *,
        vendor_name: Optional[str] = None,
        coordinator: Optional[CheckPaymentCoordinator] = None,
        check_details: Optional[CheckDetails] = None,
        notes: Optional[str] = None,
    ) -> Transaction:
        return self._create_with_stock(
            "purchase", vendor_id, line_items, amount_paid, method,
            counterparty_name=vendor_name, coordinator=coordinator,
            check_details=check_details, notes=notes,
        )

    # ---- queries ----

    def outstanding(self, kind: str, search_text: Optional[str] = None):
        return ledger.select_outstanding(self.transactions.list(kind), search_text)

    def counterparty_summary(self, kind: str, counterparty_id: str):
        return ledger.counterparty_summary(self.transactions.list(kind), counterparty_id)
