"""Write-side services for the inventory kernel."""

from inventory_kernel.services.base import BaseService, TransactionalService
from inventory_kernel.services.day_end_report_service import DayEndReportService
from inventory_kernel.services.item_ledger import ItemLedger
from inventory_kernel.services.purchase_service import PurchaseService
from inventory_kernel.services.reconciliation_service import (
    InventoryReconciliationService,
)
from inventory_kernel.services.settings_service import SettingsService

__all__ = [
    "BaseService",
    "TransactionalService",
    "ItemLedger",
    "PurchaseService",
    "InventoryReconciliationService",
    "DayEndReportService",
    "SettingsService",
]
