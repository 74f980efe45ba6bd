"""
InventoryReconciliationService -- rebuild item stock and valuation from history.

Responsibility:
    Recomputes, from scratch, everything the ItemLedger maintains
    incrementally: stock on hand, both weighted averages, both inventory
    values and the latest purchase cost/MRP.  Purchase settlement runs it
    after any edit or delete that rewrites history, since an incremental
    average cannot "un-blend" a removed receipt.

Architecture position:
    Kernel > Services.  Flush-only; runs inside the caller's settlement.

Invariants enforced:
    - stock == sum(purchase qty) - sum(sold qty) + sum(adjustment qty).
    - weighted average == sum(unit cost * qty) / sum(qty) over all purchase
      lines; inventory value == average * max(stock, 0), NULL when not
      positive.
    - Idempotent: running it twice leaves the same values.

Failure modes:
    - ItemNotFoundError if an id does not exist.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, select

from inventory_kernel.domain.valuation import rebuild_weighted_average
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models import DayEndReportLine, StockAdjustment
from inventory_kernel.selectors.purchase_history_selector import PurchaseHistorySelector
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.item_ledger import ItemLedger

logger = get_logger("services.reconciliation")


class InventoryReconciliationService(BaseService):
    """Full recomputation of derived item fields."""

    def __init__(self, session, ledger: ItemLedger | None = None):
        super().__init__(session)
        self._ledger = ledger or ItemLedger(session)
        self._history = PurchaseHistorySelector(session)

    def refresh_item_inventory_stats(self, item_ids: Iterable[UUID]) -> None:
        """Rebuild each distinct item once, in first-seen order."""
        seen: set[UUID] = set()
        for item_id in item_ids:
            if item_id in seen:
                continue
            seen.add(item_id)
            self._refresh_one(item_id)
        self.session.flush()

    def _sum_units(self, column, item_column, item_id: UUID) -> int:
        total = self.session.scalar(
            select(func.coalesce(func.sum(column), 0)).where(item_column == item_id)
        )
        return int(total or 0)

    def _refresh_one(self, item_id: UUID) -> None:
        item = self._ledger.lock_item(item_id)
        previous_stock = item.current_stock_units

        receipts = self._history.receipts(item_id)
        purchased = sum(r.quantity_units for r in receipts)
        sold = self._sum_units(
            DayEndReportLine.quantity_sold_units, DayEndReportLine.item_id, item_id
        )
        adjusted = self._sum_units(
            StockAdjustment.adjustment_units, StockAdjustment.item_id, item_id
        )
        stock = purchased - sold + adjusted

        rebuilt = rebuild_weighted_average((r.as_tuple() for r in receipts), stock)

        item.current_stock_units = stock
        item.weighted_avg_cost_price = rebuilt.average
        item.weighted_avg_total_cost_price = rebuilt.average_with_charges
        item.total_inventory_value = rebuilt.total_value
        item.total_inventory_value_with_charges = rebuilt.total_value_with_charges

        latest = self._history.latest_line(item_id)
        if latest is not None:
            self._ledger.apply_latest_pricing(
                item, latest.unit_cost_price, latest.mrp_price_at_purchase
            )

        if stock != previous_stock:
            logger.info(
                "item_stock_reconciled",
                extra={
                    "item_id": str(item_id),
                    "previous_stock": previous_stock,
                    "stock": stock,
                },
            )
        logger.debug(
            "item_inventory_stats_refreshed",
            extra={
                "item_id": str(item_id),
                "purchased": purchased,
                "sold": sold,
                "adjusted": adjusted,
                "weighted_avg_cost_price": rebuilt.average,
            },
        )
