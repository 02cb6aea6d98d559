# shop_ledger/modules/reporting/__init__.py

from .financial_reports import FinancialReports, IncomeStatement, build_income_statement

__all__ = ["FinancialReports", "IncomeStatement", "build_income_statement"]
