# shop_ledger/modules/inventory/__init__.py

from .stock_valuation import (
    CashFlow,
    CostAccumulator,
    OpeningClosing,
    ProfitMetrics,
    ReportWindow,
    ValuationLine,
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

__all__ = [
    "CashFlow",
    "CostAccumulator",
    "OpeningClosing",
    "ProfitMetrics",
    "ReportWindow",
    "ValuationLine",
    "cash_flow_by_method",
    "compute_average_cost",
    "compute_cash_flow",
    "compute_cogs",
    "compute_opening_closing",
    "compute_profit_metrics",
    "compute_purchases_value_in_window",
    "compute_quantities_in_window",
    "compute_sales_revenue_in_window",
]
