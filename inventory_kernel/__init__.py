"""
Inventory Kernel - retail stock settlement for a liquor store.

A transactional inventory ledger with:
- Weighted-average costing across purchase history
- Atomic purchase and day-end report settlement (create, update, delete)
- Full reconciliation of derived item fields from history
- Proportional allocation of purchase tax/misc charges into net profit
- Decimal money with explicit 4-place rounding
"""

__version__ = "0.1.0"
