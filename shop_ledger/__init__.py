# shop_ledger/__init__.py
"""
Reconciliation and inventory-valuation core for the shop dashboard.

    from shop_ledger.modules.payments import ledger
    from shop_ledger.modules.inventory import stock_valuation
"""

__version__ = "1.0.0"
