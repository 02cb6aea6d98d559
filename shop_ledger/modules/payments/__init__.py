# shop_ledger/modules/payments/__init__.py

from .ledger import (
    OverpaymentNotConfirmed,
    PaymentResult,
    ValidationError,
    apply_stock_movement,
    check_products_exist,
    check_stock_available,
    counterparty_summary,
    create_payment_only_transaction,
    create_transaction,
    record_payment,
    select_outstanding,
)
from .check_coordinator import CheckFlowError, CheckPaymentCoordinator
from .controller import PaymentsController

__all__ = [
    "OverpaymentNotConfirmed",
    "PaymentResult",
    "ValidationError",
    "apply_stock_movement",
    "check_products_exist",
    "check_stock_available",
    "counterparty_summary",
    "create_payment_only_transaction",
    "create_transaction",
    "record_payment",
    "select_outstanding",
    "CheckFlowError",
    "CheckPaymentCoordinator",
    "PaymentsController",
]
