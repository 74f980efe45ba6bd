"""Read-only selectors for the inventory kernel."""

from inventory_kernel.selectors.base import BaseSelector
from inventory_kernel.selectors.item_selector import ItemSelector
from inventory_kernel.selectors.purchase_history_selector import (
    PurchaseChargeTotals,
    PurchaseHistorySelector,
    Receipt,
)
from inventory_kernel.selectors.settings_selector import SettingsSelector

__all__ = [
    "BaseSelector",
    "SettingsSelector",
    "ItemSelector",
    "PurchaseHistorySelector",
    "PurchaseChargeTotals",
    "Receipt",
]
