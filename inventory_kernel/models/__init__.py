"""ORM models for the inventory kernel."""

from inventory_kernel.models.day_end_report import (
    DayEndReport,
    DayEndReportLine,
    SalesChannel,
)
from inventory_kernel.models.item import Item
from inventory_kernel.models.purchase import Purchase, PurchaseLineItem
from inventory_kernel.models.setting import Setting
from inventory_kernel.models.stock_adjustment import StockAdjustment

__all__ = [
    "Item",
    "Purchase",
    "PurchaseLineItem",
    "DayEndReport",
    "DayEndReportLine",
    "SalesChannel",
    "StockAdjustment",
    "Setting",
]
