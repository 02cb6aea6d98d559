"""
payment_utilities/calculations.py

Pure balance math shared by the ledger, the controller and the reports.

    balance = total_amount - amount_paid

A positive balance is money still owed; a negative balance is credit held
(overpayment or payment-only records).

Do not import repos or open DB connections here.
Only compute numbers; formatting belongs in the UI.
"""
from __future__ import annotations

from typing import Tuple

from ....constants import MONEY_EPSILON
from .status import PAID, PARTIAL, UNPAID

__all__ = [
    "clamp_non_negative",
    "balance_of",
    "is_settled",
    "status_from_paid",
    "project_after_payment",
    "is_overpayment",
    "remaining_due",
    "credit_held",
]


# -----------------------------
# Core utilities
# -----------------------------

def clamp_non_negative(x: float) -> float:
    """Return x if x > 0, else 0.0."""
    return x if x > 0.0 else 0.0


def balance_of(total_amount: float, amount_paid: float) -> float:
    return total_amount - amount_paid


# -----------------------------
# Status
# -----------------------------

def status_from_paid(total_amount: float, amount_paid: float) -> str:
    """
    Threshold helper; the only place payment status is decided:
      - 'paid'    if balance <= 0 (includes overpaid and payment-only credit)
      - 'partial' if 0 < amount_paid < total_amount
      - 'unpaid'  if amount_paid == 0

    Both comparisons allow MONEY_EPSILON of float noise: 3 x 0.10 paid with
    0.30 leaves a balance of ~5.5e-17, which is settled. The 'paid' check
    comes first so a zero-total record with nothing paid reads as settled.
    """
    if is_settled(balance_of(total_amount, amount_paid)):
        return PAID
    if amount_paid > MONEY_EPSILON:
        return PARTIAL
    return UNPAID


# -----------------------------
# Payment projection
# -----------------------------

def project_after_payment(
    *,
    total_amount: float,
    current_amount_paid: float,
    payment_amount: float,
) -> Tuple[float, float, str]:
    """
    Returns (new_amount_paid, new_balance, new_status) after adding
    payment_amount. new_balance may go negative (overpayment).
    """
    new_paid = current_amount_paid + payment_amount
    new_balance = balance_of(total_amount, new_paid)
    return new_paid, new_balance, status_from_paid(total_amount, new_paid)


def is_settled(balance: float) -> bool:
    """Nothing left to pay (balance zero or credit, within float noise)."""
    return balance <= MONEY_EPSILON


def is_overpayment(current_balance: float, payment_amount: float) -> bool:
    """True when the payment exceeds what is still owed (beyond float noise)."""
    return payment_amount > current_balance + MONEY_EPSILON


# -----------------------------
# Summaries
# -----------------------------

def remaining_due(balance: float) -> float:
    """Owed part of a balance (0 once settled)."""
    return 0.0 if is_settled(balance) else balance


def credit_held(balance: float) -> float:
    """Credit part of a balance (magnitude of a negative balance, else 0)."""
    return clamp_non_negative(-balance)
