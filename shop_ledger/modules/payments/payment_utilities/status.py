"""
payment_utilities/status.py

Names for the two status vocabularies the ledger deals with:

  * payment status of a sale/purchase, always derived from its amounts
    (see calculations.status_from_paid), never set by hand;
  * state of a received/issued check in the check register.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from ....constants import CHECK_STATES

UNPAID = "unpaid"
PARTIAL = "partial"
PAID = "paid"

PAYMENT_STATES: Tuple[str, ...] = (UNPAID, PARTIAL, PAID)

# (label, tooltip) per status, both vocabularies
_COPY: Dict[str, Tuple[str, str]] = {
    UNPAID: ("Unpaid", "Nothing has been paid against this transaction."),
    PARTIAL: ("Partial", "Part of the total is paid; a balance is outstanding."),
    PAID: ("Paid", "Settled in full; a negative balance is credit held."),
    "pending": ("Pending", "Check handed over, not yet cleared by the bank."),
    "cleared": ("Cleared", "Bank confirmed the funds."),
    "bounced": ("Bounced", "Returned unpaid by the bank."),
    "cancelled": ("Cancelled", "Voided before clearing."),
}


def _norm(state: Optional[str]) -> str:
    return (state or "").strip().lower()


def is_valid(state: Optional[str]) -> bool:
    """True iff `state` names a check-register state."""
    return _norm(state) in CHECK_STATES


def ensure_valid(state: Optional[str]) -> str:
    """Normalized check state, or ValueError (same text ReferenceRepo uses)."""
    s = _norm(state)
    if s not in CHECK_STATES:
        raise ValueError("check status must be one of: " + ", ".join(CHECK_STATES))
    return s


def label(state: Optional[str]) -> str:
    copy = _COPY.get(_norm(state))
    return copy[0] if copy else (state or "").strip().title()


def description(state: Optional[str]) -> str:
    copy = _COPY.get(_norm(state))
    return copy[1] if copy else ""


def sort_states(states: Iterable[str]) -> List[str]:
    """Register order (pending first); unknown states go last."""
    order = {s: i for i, s in enumerate(CHECK_STATES)}
    return sorted(states, key=lambda s: order.get(_norm(s), len(order)))
