"""
modules/payments/check_coordinator.py

Purpose
-------
Defers a sale/purchase/payment whenever the chosen instrument is a check
until the check itself has been described (bank, number, payee, currency).

One coordinator per pending payment action:

    idle --select_method('check', amount>0)--> awaiting_details
    awaiting_details --submit_details(...)---> confirmed
    awaiting_details --cancel()--------------> idle   (method back to default)
    confirmed --consume()--------------------> idle   (details handed to the ledger)

Choosing 'check' without a positive amount is refused on the spot: the
method snaps back to the default and the state stays idle.

Signals let a form react without polling; nothing here touches widgets.
"""

from __future__ import annotations

from typing import Optional

from PySide6.QtCore import QObject, Signal

from ...constants import CHECK_METHOD, DEFAULT_CURRENCY, DEFAULT_PAYMENT_METHOD, PAYMENT_METHODS
from ...database.repositories.transactions_repo import CheckDetails
from ...utils.helpers import today_str
from ...utils.loggers import get_logger
from ...utils.validators import is_strictly_positive_number, non_empty
from .ledger import ValidationError

_log = get_logger(__name__)


class CheckFlowError(ValidationError):
    """Illegal transition in the check flow."""
    pass


class CheckPaymentCoordinator(QObject):
    """
    State machine for check capture.

    `references` is optional; when given it must provide ensure_bank(name)
    and ensure_currency(name) (see ReferenceRepo). Banks/currencies typed in
    the details that are not known yet get created through it.
    """

    IDLE = "idle"
    AWAITING_DETAILS = "awaiting_details"
    CONFIRMED = "confirmed"

    state_changed = Signal(str)        # new state
    method_changed = Signal(str)       # current instrument (after a revert too)
    confirmed = Signal(object)         # CheckDetails
    cancelled = Signal()
    rejected = Signal(str)             # user-facing reason

    def __init__(
        self,
        references: Optional[object] = None,
        default_method: str = DEFAULT_PAYMENT_METHOD,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._references = references
        self._default_method = default_method
        self._method = default_method
        self._state = self.IDLE
        self._amount: Optional[float] = None
        self._details: Optional[CheckDetails] = None

    # -------- read-only view --------

    @property
    def state(self) -> str:
        return self._state

    @property
    def method(self) -> str:
        return self._method

    @property
    def amount(self) -> Optional[float]:
        return self._amount

    @property
    def details(self) -> Optional[CheckDetails]:
        return self._details

    # -------- internals --------

    def _set_state(self, state: str) -> None:
        if state != self._state:
            _log.debug("check flow: %s -> %s", self._state, state)
            self._state = state
            self.state_changed.emit(state)

    def _set_method(self, method: str) -> None:
        if method != self._method:
            self._method = method
            self.method_changed.emit(method)

    def _reset(self) -> None:
        self._amount = None
        self._details = None
        self._set_method(self._default_method)
        self._set_state(self.IDLE)

    # -------- transitions --------

    def select_method(self, method: str, amount: Optional[float] = None) -> None:
        """
        The user picked an instrument. For 'check' the amount must already be
        known and > 0; otherwise the choice is reverted and CheckFlowError raised.
        """
        m = (method or "").strip().lower()
        if m not in PAYMENT_METHODS:
            raise CheckFlowError(f"Unsupported payment method: {method}")

        if m != CHECK_METHOD:
            # Leaving check drops whatever was captured
            self._amount = None
            self._details = None
            self._set_method(m)
            self._set_state(self.IDLE)
            return

        if not is_strictly_positive_number(amount):
            reason = "Enter a payment amount greater than 0 before choosing check."
            self._reset()
            self.rejected.emit(reason)
            raise CheckFlowError(reason)

        self._amount = float(amount)
        self._details = None
        self._set_method(CHECK_METHOD)
        self._set_state(self.AWAITING_DETAILS)

    def submit_details(
        self,
        *,
        bank_name: str,
        check_number: str,
        payee: Optional[str] = None,
        currency: Optional[str] = None,
        date: Optional[str] = None,
    ) -> CheckDetails:
        if self._state != self.AWAITING_DETAILS:
            raise CheckFlowError(f"Check details cannot be submitted while {self._state}.")
        if not non_empty(bank_name) or not non_empty(check_number):
            # Stay in awaiting_details so the user can correct the form
            raise CheckFlowError("Please fill in all required fields (bank name, check number).")

        bank = bank_name.strip()
        cur = (currency or "").strip() or DEFAULT_CURRENCY
        if self._references is not None:
            self._references.ensure_bank(bank)
            self._references.ensure_currency(cur)

        self._details = CheckDetails(
            date=(date or "").strip() or today_str(),
            bank_name=bank,
            check_number=check_number.strip(),
            payee=(payee or "").strip() or None,
            currency=cur,
            amount=float(self._amount or 0.0),
        )
        self._set_state(self.CONFIRMED)
        self.confirmed.emit(self._details)
        return self._details

    def cancel(self) -> None:
        """Abandon the check flow; the instrument goes back to the default."""
        if self._state == self.IDLE:
            return
        self._reset()
        self.cancelled.emit()

    def require_ready(self) -> None:
        """Raise while details are still being captured (no commit mid-flow)."""
        if self._state == self.AWAITING_DETAILS:
            raise CheckFlowError("Please complete check details.")

    def confirmed_details(self) -> CheckDetails:
        """The details to pass to the ledger; the flow stays confirmed."""
        if self._state != self.CONFIRMED or self._details is None:
            raise CheckFlowError("No confirmed check details to use.")
        return self._details

    def consume(self) -> CheckDetails:
        """
        Mark the confirmed details as used (call after the payment was
        committed) and reset the form state: idle, default instrument.
        """
        details = self.confirmed_details()
        self._reset()
        return details
