# shop_ledger/modules/inventory/stock_valuation.py
"""
Inventory valuation for a reporting window.

Pure functions over loaded records; nothing is cached, every call recomputes
from the full history it is given.

Costing model (moving average over the whole purchase history):

    unit_cost(p)  = sum(qty * priceAtPurchase) / sum(qty)   over every purchase line of p
    closing_qty   = product.stock                           (stock as of *now*)
    opening_qty   = max(0, closing_qty - purchased_in_window + sold_in_window)
    opening_value = sum(opening_qty * unit_cost)
    closing_value = sum(closing_qty * unit_cost)
    COGS          = max(0, opening_value + purchases_value_in_window - closing_value)

closing_qty is the live stock level, not a historical snapshot. A window
that ends in the past is therefore valued with today's quantities; this is
an accepted approximation, there is no stock history to replay.

Cash flow counts money that actually moved inside the window:
amount_paid of sales (payment-only receipts included) plus manual incomes
in, amount_paid of purchases plus manual expenses out.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ...database.repositories.products_repo import Product
from ...database.repositories.transactions_repo import Transaction
from ...utils.helpers import to_date
from ...utils.loggers import get_logger
from ..payments.payment_utilities.calculations import clamp_non_negative
from ..payments.payment_utilities.debit_credit_manager import group_totals, movements, totals

_log = get_logger(__name__)

DateLike = Union[date, datetime, str]


# -----------------------------
# Value types
# -----------------------------

@dataclass(frozen=True)
class CostAccumulator:
    quantity: float = 0.0
    total_cost: float = 0.0

    @property
    def unit_cost(self) -> float:
        # Guard the division; a product bought zero times has no cost
        return self.total_cost / self.quantity if self.quantity else 0.0

    def add(self, quantity: float, unit_price: float) -> "CostAccumulator":
        return CostAccumulator(self.quantity + quantity, self.total_cost + quantity * unit_price)


@dataclass(frozen=True)
class ReportWindow:
    """Inclusive [start, end] by calendar date. Either bound may be open (None)."""
    start: Optional[date] = None
    end: Optional[date] = None

    @classmethod
    def of(cls, start: Optional[DateLike] = None, end: Optional[DateLike] = None) -> "ReportWindow":
        s, e = to_date(start), to_date(end)
        if s is not None and e is not None and s > e:
            raise ValueError(f"Report window starts after it ends ({s} > {e}).")
        return cls(s, e)

    def contains(self, value: Optional[DateLike]) -> bool:
        d = to_date(value)
        if d is None:
            # Undated records cannot be placed in any window
            return False
        if self.start is not None and d < self.start:
            return False
        if self.end is not None and d > self.end:
            return False
        return True


@dataclass(frozen=True)
class ValuationLine:
    product_id: str
    name: str
    unit_cost: float
    opening_qty: float
    closing_qty: float

    @property
    def opening_value(self) -> float:
        return self.opening_qty * self.unit_cost

    @property
    def closing_value(self) -> float:
        return self.closing_qty * self.unit_cost


@dataclass(frozen=True)
class OpeningClosing:
    opening_value: float
    closing_value: float
    lines: Tuple[ValuationLine, ...] = field(default=(), compare=False)


@dataclass(frozen=True)
class ProfitMetrics:
    gross_profit: float
    net_profit: float


@dataclass(frozen=True)
class CashFlow:
    cash_in: float
    cash_out: float
    net: float


# -----------------------------
# Internals
# -----------------------------

def _in_window(transactions: Iterable[Transaction], window: ReportWindow) -> List[Transaction]:
    return [t for t in transactions if window.contains(t.date)]


# -----------------------------
# Average cost
# -----------------------------

def compute_average_cost(all_purchases: Iterable[Transaction]) -> Dict[str, float]:
    """
    product_id -> moving-average unit cost over ALL purchases ever made
    (not just the window). Payment-only purchases carry no items and drop out.
    """
    acc: Dict[str, CostAccumulator] = defaultdict(CostAccumulator)
    for purchase in all_purchases:
        if purchase.is_payment_only:
            continue
        for item in purchase.line_items:
            acc[item.product_id] = acc[item.product_id].add(item.quantity, item.unit_price)
    return {pid: a.unit_cost for pid, a in acc.items()}


# -----------------------------
# Quantities / values in window
# -----------------------------

def compute_quantities_in_window(
    transactions: Iterable[Transaction],
    window: ReportWindow,
) -> Dict[str, float]:
    """Units moved per product by transactions dated inside the window."""
    qty: Dict[str, float] = defaultdict(float)
    for t in _in_window(transactions, window):
        if t.is_payment_only:
            continue
        for item in t.line_items:
            qty[item.product_id] += item.quantity
    return dict(qty)


def compute_purchases_value_in_window(purchases: Iterable[Transaction], window: ReportWindow) -> float:
    return sum(t.total_amount for t in _in_window(purchases, window) if not t.is_payment_only)


def compute_sales_revenue_in_window(sales: Iterable[Transaction], window: ReportWindow) -> float:
    return sum(t.total_amount for t in _in_window(sales, window) if not t.is_payment_only)


# -----------------------------
# Opening / closing inventory
# -----------------------------

def compute_opening_closing(
    products: Iterable[Product],
    sold_qty: Mapping[str, float],
    purchased_qty: Mapping[str, float],
    avg_cost: Mapping[str, float],
) -> OpeningClosing:
    """
    Back out the opening quantity from today's stock and the window's
    movements; value both ends at the average cost (0 for products never
    purchased).
    """
    lines: List[ValuationLine] = []
    for p in products:
        closing = p.stock
        opening = clamp_non_negative(closing - purchased_qty.get(p.id, 0.0) + sold_qty.get(p.id, 0.0))
        cost = avg_cost.get(p.id)
        if cost is None:
            _log.debug("no purchase cost for product %s (%s); valued at 0", p.id, p.name)
            cost = 0.0
        lines.append(ValuationLine(p.id, p.name, cost, opening, closing))

    return OpeningClosing(
        opening_value=sum(line.opening_value for line in lines),
        closing_value=sum(line.closing_value for line in lines),
        lines=tuple(lines),
    )


def compute_cogs(opening_value: float, purchases_value_in_window: float, closing_value: float) -> float:
    raw = opening_value + purchases_value_in_window - closing_value
    if raw < 0:
        _log.debug("COGS came out negative (%.2f); floored at 0", raw)
    return clamp_non_negative(raw)


def compute_profit_metrics(
    sales_revenue: float,
    cogs: float,
    other_income: float,
    other_expenses: float,
) -> ProfitMetrics:
    gross = sales_revenue - cogs
    return ProfitMetrics(gross_profit=gross, net_profit=gross + other_income - other_expenses)


# -----------------------------
# Cash flow
# -----------------------------

def compute_cash_flow(
    sales: Iterable[Transaction],
    purchases: Iterable[Transaction],
    incomes: Iterable[Mapping[str, Any]],
    expenses: Iterable[Mapping[str, Any]],
    window: ReportWindow,
) -> CashFlow:
    t = totals(movements(sales, purchases, incomes, expenses, window.contains))
    return CashFlow(cash_in=t["in"], cash_out=t["out"], net=t["net"])


def cash_flow_by_method(
    sales: Iterable[Transaction],
    purchases: Iterable[Transaction],
    incomes: Iterable[Mapping[str, Any]],
    expenses: Iterable[Mapping[str, Any]],
    window: ReportWindow,
) -> Dict[Optional[str], CashFlow]:
    """Same money as compute_cash_flow, split by payment method (None = unrecorded)."""
    rows = movements(sales, purchases, incomes, expenses, window.contains)
    return {
        method: CashFlow(cash_in=b["in"], cash_out=b["out"], net=b["net"])
        for method, b in group_totals(rows, "method")
    }
