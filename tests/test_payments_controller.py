# tests/test_payments_controller.py
from __future__ import annotations

import pytest

from shop_ledger.database.repositories import (
    CheckDetails,
    ConcurrencyError,
    LineItem,
    NotFoundError,
    TransactionsRepo,
)
from shop_ledger.modules.payments import (
    OverpaymentNotConfirmed,
    PaymentsController,
    ValidationError,
)
from shop_ledger.modules.payments.check_coordinator import CheckFlowError


@pytest.fixture()
def ctrl(conn):
    return PaymentsController(conn)


def _stock(ctrl):
    return {p.name: p.stock for p in ctrl.products.list_products()}


def test_checkout_sale_moves_stock_and_persists(ctrl, seeded_products):
    a = seeded_products["A"]
    sale = ctrl.checkout_sale("C1", [LineItem(a.id, 3, 15)], 20, "cash", customer_name="Acme")

    assert sale.id and sale.version == 1
    assert sale.balance == 25 and sale.payment_status == "partial"
    assert _stock(ctrl) == {"Widget A": 7, "Widget B": 4}

    stored = ctrl.transactions.get("sale", sale.id)
    assert stored.total_amount == 45
    assert stored.counterparty_name == "Acme"


def test_insufficient_stock_writes_nothing(ctrl, seeded_products):
    b = seeded_products["B"]
    with pytest.raises(ValidationError, match="Insufficient stock for: Widget B"):
        ctrl.checkout_sale("C1", [LineItem(b.id, 5, 30)], 0, "cash")
    assert ctrl.transactions.list("sale") == []
    assert _stock(ctrl)["Widget B"] == 4


def test_record_purchase_adds_stock(ctrl, seeded_products):
    b = seeded_products["B"]
    p = ctrl.record_purchase("V1", [LineItem(b.id, 6, 11)], 66, "bank_transfer", vendor_name="Supply Co")
    assert p.payment_status == "paid"
    assert _stock(ctrl)["Widget B"] == 10
    assert ctrl.transactions.get("purchase", p.id).line_items[0].unit_price == 11


def test_partial_then_full_payment_persists(ctrl, seeded_products):
    a = seeded_products["A"]
    sale = ctrl.checkout_sale("C1", [LineItem(a.id, 2, 50)], 0, "cash")

    first = ctrl.record_payment("sale", sale.id, 60, "cash")
    assert first.transaction.balance == 40
    assert first.transaction.payment_status == "partial"
    second = ctrl.record_payment("sale", sale.id, 40, "card")

    stored = ctrl.transactions.get("sale", sale.id)
    assert stored.balance == 0
    assert stored.payment_status == "paid"
    assert stored.last_payment_method == "card"
    assert stored.version == second.transaction.version == 3


def test_overpayment_needs_confirmation(ctrl, seeded_products):
    a = seeded_products["A"]
    sale = ctrl.checkout_sale("C1", [LineItem(a.id, 1, 15)], 10, "cash")

    with pytest.raises(OverpaymentNotConfirmed) as exc:
        ctrl.record_payment("sale", sale.id, 20, "cash")
    assert exc.value.balance == 5
    assert ctrl.transactions.get("sale", sale.id).amount_paid == 10

    res = ctrl.record_payment("sale", sale.id, 20, "cash", allow_overpayment=True)
    assert res.overpaid
    assert ctrl.transactions.get("sale", sale.id).balance == -15


def test_check_payment_via_coordinator_registers_check(qtbot, ctrl, seeded_products):
    a = seeded_products["A"]
    sale = ctrl.checkout_sale("C1", [LineItem(a.id, 2, 15)], 0, "cash", customer_name="Acme")

    coord = ctrl.new_check_coordinator()
    coord.select_method("check", 30)
    with pytest.raises(CheckFlowError):
        ctrl.record_payment("sale", sale.id, 30, "check", coordinator=coord)

    coord.submit_details(bank_name="Hapoalim", check_number="5501")
    res = ctrl.record_payment("sale", sale.id, 30, "check", coordinator=coord)

    assert res.transaction.payment_status == "paid"
    assert res.transaction.last_payment_check_details.check_number == "5501"
    checks = ctrl.references.list_checks()
    assert len(checks) == 1
    assert checks[0]["transactionId"] == sale.id
    assert checks[0]["counterpartyName"] == "Acme"
    assert coord.state == coord.IDLE


def test_check_without_details_fails(ctrl, seeded_products):
    a = seeded_products["A"]
    sale = ctrl.checkout_sale("C1", [LineItem(a.id, 1, 15)], 0, "cash")
    with pytest.raises(ValidationError, match="check details"):
        ctrl.record_payment("sale", sale.id, 5, "check")


def test_payment_only_with_explicit_check(ctrl):
    details = CheckDetails("2024-05-01", "Leumi", "77", "Supply Co", "NIS", 250.0)
    t = ctrl.record_payment_only("purchase", "V1", 250, "check", "deposit",
                                 counterparty_name="Supply Co", check_details=details)
    assert t.balance == -250 and t.is_payment_only
    assert ctrl.references.list_checks()[0]["transactionKind"] == "purchase"
    assert ctrl.counterparty_summary("purchase", "V1") == {"outstanding": 0.0, "credit": 250.0, "net": -250.0}


def test_deleted_transaction_is_not_found(ctrl, seeded_products):
    a = seeded_products["A"]
    sale = ctrl.checkout_sale("C1", [LineItem(a.id, 1, 15)], 0, "cash")
    ctrl.transactions.delete("sale", sale.id)
    with pytest.raises(NotFoundError):
        ctrl.record_payment("sale", sale.id, 5, "cash")


def test_stale_version_is_refused(conn, ctrl, seeded_products):
    a = seeded_products["A"]
    sale = ctrl.checkout_sale("C1", [LineItem(a.id, 2, 15)], 0, "cash")
    other = TransactionsRepo(conn)

    stale = other.get("sale", sale.id)
    ctrl.record_payment("sale", sale.id, 10, "cash")

    from shop_ledger.modules.payments import ledger
    res = ledger.record_payment(stale, 10, "cash")
    with pytest.raises(ConcurrencyError):
        other.save_payment(res.transaction)
    assert ctrl.transactions.get("sale", sale.id).amount_paid == 10


def test_outstanding_listing(ctrl, seeded_products):
    a = seeded_products["A"]
    ctrl.checkout_sale("C1", [LineItem(a.id, 1, 15)], 15, "cash", customer_name="Paid Up")
    open_sale = ctrl.checkout_sale("C2", [LineItem(a.id, 1, 15)], 5, "cash", customer_name="Owes Money")
    assert [t.id for t in ctrl.outstanding("sale")] == [open_sale.id]
    assert ctrl.outstanding("sale", "paid up") == []


def test_cash_payment_after_check_clears_stored_check_details(qtbot, ctrl, seeded_products):
    a = seeded_products["A"]
    sale = ctrl.checkout_sale("C1", [LineItem(a.id, 4, 15)], 0, "cash")

    coord = ctrl.new_check_coordinator()
    coord.select_method("check", 20)
    coord.submit_details(bank_name="Leumi", check_number="9001")
    ctrl.record_payment("sale", sale.id, 20, "check", coordinator=coord)
    assert ctrl.transactions.get("sale", sale.id).last_payment_check_details.check_number == "9001"

    ctrl.record_payment("sale", sale.id, 10, "cash")
    stored = ctrl.transactions.get("sale", sale.id)
    assert stored.last_payment_method == "cash"
    assert stored.last_payment_check_details is None


def test_check_amount_must_match_payment(qtbot, ctrl, seeded_products):
    a = seeded_products["A"]
    sale = ctrl.checkout_sale("C1", [LineItem(a.id, 4, 15)], 0, "cash")

    coord = ctrl.new_check_coordinator()
    coord.select_method("check", 10)
    coord.submit_details(bank_name="Leumi", check_number="12")
    with pytest.raises(ValidationError, match="does not match payment amount"):
        ctrl.record_payment("sale", sale.id, 50, "check", coordinator=coord)

    assert ctrl.transactions.get("sale", sale.id).amount_paid == 0
    assert ctrl.references.list_checks() == []
    # Captured details survive so the user can fix the amount and retry
    assert coord.state == coord.CONFIRMED

    ctrl.record_payment("sale", sale.id, 10, "check", coordinator=coord)
    assert ctrl.references.list_checks()[0]["amount"] == 10
    assert coord.state == coord.IDLE


def test_explicit_check_amount_must_match_amount_paid(ctrl, seeded_products):
    a = seeded_products["A"]
    details = CheckDetails("2024-05-01", "Leumi", "13", None, "NIS", 10.0)
    with pytest.raises(ValidationError, match="does not match payment amount"):
        ctrl.checkout_sale("C1", [LineItem(a.id, 2, 15)], 30, "check", check_details=details)
    assert ctrl.transactions.list("sale") == []
    assert _stock(ctrl)["Widget A"] == 10


def test_method_must_agree_with_coordinator(qtbot, ctrl, seeded_products):
    a = seeded_products["A"]
    sale = ctrl.checkout_sale("C1", [LineItem(a.id, 2, 15)], 0, "cash")

    coord = ctrl.new_check_coordinator()
    coord.select_method("check", 30)
    coord.submit_details(bank_name="Leumi", check_number="14")
    with pytest.raises(ValidationError, match="does not match the selected method"):
        ctrl.record_payment("sale", sale.id, 30, "cash", coordinator=coord)
    assert coord.state == coord.CONFIRMED
    assert ctrl.transactions.get("sale", sale.id).amount_paid == 0

    idle = ctrl.new_check_coordinator()
    with pytest.raises(ValidationError, match="does not match the selected method"):
        ctrl.record_payment("sale", sale.id, 30, "check", coordinator=idle,
                            check_details=CheckDetails("2024-05-01", "Leumi", "15", None, "NIS", 30.0))


def test_cash_payment_leaves_idle_coordinator_alone(qtbot, ctrl, seeded_products):
    a = seeded_products["A"]
    sale = ctrl.checkout_sale("C1", [LineItem(a.id, 1, 15)], 0, "cash")
    coord = ctrl.new_check_coordinator()
    with qtbot.assertNotEmitted(coord.state_changed):
        ctrl.record_payment("sale", sale.id, 5, "cash", coordinator=coord)
    assert coord.state == coord.IDLE


def test_failed_check_registration_rolls_back_checkout(monkeypatch, qtbot, ctrl, seeded_products):
    a = seeded_products["A"]
    coord = ctrl.new_check_coordinator()
    coord.select_method("check", 30)
    coord.submit_details(bank_name="Leumi", check_number="16")

    def broken(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(ctrl.references, "register_check", broken)
    with pytest.raises(RuntimeError, match="disk full"):
        ctrl.checkout_sale("C1", [LineItem(a.id, 2, 15)], 30, "check", coordinator=coord)

    assert ctrl.transactions.list("sale") == []
    assert _stock(ctrl)["Widget A"] == 10
    assert coord.state == coord.CONFIRMED


def test_failed_check_registration_rolls_back_payment(monkeypatch, ctrl, seeded_products):
    a = seeded_products["A"]
    sale = ctrl.checkout_sale("C1", [LineItem(a.id, 2, 15)], 0, "cash")
    details = CheckDetails("2024-05-01", "Leumi", "17", None, "NIS", 30.0)

    def broken(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(ctrl.references, "register_check", broken)
    with pytest.raises(RuntimeError):
        ctrl.record_payment("sale", sale.id, 30, "check", check_details=details)

    stored = ctrl.transactions.get("sale", sale.id)
    assert stored.amount_paid == 0 and stored.version == 1


def test_purchase_of_unknown_product_writes_nothing(ctrl, seeded_products):
    b = seeded_products["B"]
    with pytest.raises(ValidationError, match="Unknown product: ghost"):
        ctrl.record_purchase("V1", [LineItem(b.id, 1, 11), LineItem("ghost", 3, 5)], 0, "cash")
    assert ctrl.transactions.list("purchase") == []
    assert _stock(ctrl)["Widget B"] == 4
