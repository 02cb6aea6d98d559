# tests/test_financial_reports.py
from __future__ import annotations

import pytest

from shop_ledger.database.repositories import LineItem
from shop_ledger.modules.payments import PaymentsController
from shop_ledger.modules.reporting import FinancialReports


@pytest.fixture()
def populated(conn, docs, products_repo):
    """
    Widget: bought 10 @ 2 last year and 10 @ 4 in January (avg cost 3),
    sold 5 @ 10 in January. Stock now = 15.
    """
    widget = products_repo.create("Widget", stock=0)
    ctrl = PaymentsController(conn)

    p1 = ctrl.record_purchase("V1", [LineItem(widget.id, 10, 2)], 20, "cash")
    docs.update("purchases", p1.id, {"date": "2023-06-01"})
    p2 = ctrl.record_purchase("V1", [LineItem(widget.id, 10, 4)], 10, "cash")
    docs.update("purchases", p2.id, {"date": "2024-01-10"})
    s1 = ctrl.checkout_sale("C1", [LineItem(widget.id, 5, 10)], 30, "card")
    docs.update("sales", s1.id, {"date": "2024-01-15"})
    adv = ctrl.record_payment_only("sale", "C1", 12, "cash", "advance_payment")
    docs.update("sales", adv.id, {"date": "2024-01-16"})

    docs.create("incomes", {"amount": 8, "date": "2024-01-20"})
    docs.create("expenses", {"amount": 6, "date": "2024-01-21"})
    docs.create("salaryPayments", {"amount": 5, "date": "2024-01-25"})
    docs.create("workerExpenses", {"amount": 1, "date": "2024-01-26"})
    docs.create("expenses", {"amount": 1000, "date": "2023-01-01"})
    return widget


def test_income_statement_for_january(conn, populated):
    st = FinancialReports(conn).income_statement("2024-01-01", "2024-01-31")

    assert st.revenue == 50
    assert st.sale_count == 1
    assert st.purchases_value == 40
    # closing 15 @ 3, opening 15 - 10 + 5 = 10 @ 3
    assert st.closing_inventory == pytest.approx(45)
    assert st.opening_inventory == pytest.approx(30)
    assert st.cogs == pytest.approx(25)
    assert st.gross_profit == pytest.approx(25)
    assert st.other_income == 8
    assert st.operating_expenses == 12
    assert st.net_profit == pytest.approx(25 + 8 - 12)
    assert st.gross_margin_pct == pytest.approx(50.0)
    assert st.net_margin_pct == pytest.approx(42.0)
    assert st.revenue_per_sale == 50

    assert st.cash_flow.cash_in == pytest.approx(30 + 12 + 8)
    assert st.cash_flow.cash_out == pytest.approx(10 + 6)
    assert st.cash_by_method["card"].cash_in == 30

    lines = [r["line"] for r in st.as_rows()]
    assert lines[0] == "Revenue" and lines[-1] == "Net Profit"


def test_empty_period_has_zero_margins(conn, populated):
    st = FinancialReports(conn).income_statement("2022-01-01", "2022-12-31")
    assert st.revenue == 0
    assert st.gross_margin_pct == 0.0
    assert st.net_margin_pct == 0.0
    assert st.revenue_per_sale == 0.0
    assert st.cogs == 0.0   # opening == closing, nothing bought in window


def test_reports_are_not_cached(conn, docs, populated):
    reports = FinancialReports(conn)
    before = reports.income_statement("2024-01-01", "2024-01-31").other_income
    docs.create("incomes", {"amount": 2, "date": "2024-01-30"})
    assert reports.income_statement("2024-01-01", "2024-01-31").other_income == before + 2
