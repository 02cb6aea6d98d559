# shop_ledger/modules/reporting/financial_reports.py
from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ...database.repositories.documents_repo import DocumentsRepo
from ...database.repositories.products_repo import COLLECTION as PRODUCTS
from ...database.repositories.products_repo import Product
from ...database.repositories.transactions_repo import Transaction
from ...utils.loggers import get_logger
from ...utils.validators import number_or
from ..inventory.stock_valuation import (
    CashFlow,
    ReportWindow,
    cash_flow_by_method,
    compute_average_cost,
    compute_cash_flow,
    compute_cogs,
    compute_opening_closing,
    compute_profit_metrics,
    compute_purchases_value_in_window,
    compute_quantities_in_window,
    compute_sales_revenue_in_window,
)

_log = get_logger(__name__)

# Collections the period statement reads
SALES = "sales"
PURCHASES = "purchases"
INCOMES = "incomes"
EXPENSES = "expenses"
SALARY_PAYMENTS = "salaryPayments"
WORKER_EXPENSES = "workerExpenses"


@dataclass(frozen=True)
class IncomeStatement:
    window: ReportWindow
    revenue: float
    sale_count: int
    purchases_value: float
    opening_inventory: float
    closing_inventory: float
    cogs: float
    gross_profit: float
    other_income: float
    manual_expenses: float
    salaries: float
    worker_expenses: float
    net_profit: float
    cash_flow: CashFlow
    cash_by_method: Dict[Optional[str], CashFlow]

    @property
    def operating_expenses(self) -> float:
        return self.manual_expenses + self.salaries + self.worker_expenses

    @property
    def gross_margin_pct(self) -> float:
        return (self.gross_profit / self.revenue) * 100.0 if self.revenue else 0.0

    @property
    def net_margin_pct(self) -> float:
        return (self.net_profit / self.revenue) * 100.0 if self.revenue else 0.0

    @property
    def revenue_per_sale(self) -> float:
        return self.revenue / self.sale_count if self.sale_count else 0.0

    def as_rows(self) -> List[Dict[str, Any]]:
        """Flat (line, amount) rows in statement order, for tables/exports."""
        return [
            {"line": "Revenue", "amount": self.revenue},
            {"line": "Opening Inventory", "amount": self.opening_inventory},
            {"line": "Purchases", "amount": self.purchases_value},
            {"line": "Closing Inventory", "amount": self.closing_inventory},
            {"line": "COGS", "amount": self.cogs},
            {"line": "Gross Profit", "amount": self.gross_profit},
            {"line": "Other Income", "amount": self.other_income},
            {"line": "Expenses", "amount": self.manual_expenses},
            {"line": "Salaries", "amount": self.salaries},
            {"line": "Worker Expenses", "amount": self.worker_expenses},
            {"line": "Net Profit", "amount": self.net_profit},
        ]


def _sum_amounts(rows: Iterable[Mapping[str, Any]], window: ReportWindow) -> float:
    total = 0.0
    for r in rows:
        if not window.contains(r.get("date")):
            continue
        total += number_or(r.get("amount"))
    return total


def build_income_statement(
    sales: Iterable[Transaction],
    purchases: Iterable[Transaction],
    products: Iterable[Product],
    incomes: Iterable[Mapping[str, Any]],
    expenses: Iterable[Mapping[str, Any]],
    window: ReportWindow,
    salary_payments: Iterable[Mapping[str, Any]] = (),
    worker_expenses: Iterable[Mapping[str, Any]] = (),
) -> IncomeStatement:
    """
    Period statement:

      revenue         = sum(total) of in-window sales (payment-only excluded)
      COGS            = opening + purchases in window - closing   (>= 0)
      gross profit    = revenue - COGS
      net profit      = gross profit + other income
                        - (expenses + salaries + worker expenses)

    Average cost always uses the full purchase history, not just the window.
    """
    sales = list(sales)
    purchases = list(purchases)
    incomes = list(incomes)
    expenses = list(expenses)

    avg_cost = compute_average_cost(purchases)
    sold = compute_quantities_in_window(sales, window)
    bought = compute_quantities_in_window(purchases, window)
    oc = compute_opening_closing(products, sold, bought, avg_cost)

    revenue = compute_sales_revenue_in_window(sales, window)
    purchases_value = compute_purchases_value_in_window(purchases, window)
    cogs = compute_cogs(oc.opening_value, purchases_value, oc.closing_value)

    other_income = _sum_amounts(incomes, window)
    manual_expenses = _sum_amounts(expenses, window)
    salaries = _sum_amounts(salary_payments, window)
    workers = _sum_amounts(worker_expenses, window)
    metrics = compute_profit_metrics(revenue, cogs, other_income, manual_expenses + salaries + workers)

    sale_count = sum(1 for s in sales if not s.is_payment_only and window.contains(s.date))

    return IncomeStatement(
        window=window,
        revenue=revenue,
        sale_count=sale_count,
        purchases_value=purchases_value,
        opening_inventory=oc.opening_value,
        closing_inventory=oc.closing_value,
        cogs=cogs,
        gross_profit=metrics.gross_profit,
        other_income=other_income,
        manual_expenses=manual_expenses,
        salaries=salaries,
        worker_expenses=workers,
        net_profit=metrics.net_profit,
        cash_flow=compute_cash_flow(sales, purchases, incomes, expenses, window),
        cash_by_method=cash_flow_by_method(sales, purchases, incomes, expenses, window),
    )


class FinancialReports:
    """
    Loads every collection the statement needs from the store on each call
    and hands them to build_income_statement(). Nothing is cached.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self.docs = DocumentsRepo(conn)

    def _transactions(self, kind: str, collection: str) -> List[Transaction]:
        return [Transaction.from_record(kind, r) for r in self.docs.list(collection)]

    def income_statement(self, date_from=None, date_to=None) -> IncomeStatement:
        window = ReportWindow.of(date_from, date_to)
        _log.debug("income statement for %s .. %s", window.start, window.end)
        return build_income_statement(
            sales=self._transactions("sale", SALES),
            purchases=self._transactions("purchase", PURCHASES),
            products=[Product.from_record(r) for r in self.docs.list(PRODUCTS)],
            incomes=self.docs.list(INCOMES),
            expenses=self.docs.list(EXPENSES),
            window=window,
            salary_payments=self.docs.list(SALARY_PAYMENTS),
            worker_expenses=self.docs.list(WORKER_EXPENSES),
        )
