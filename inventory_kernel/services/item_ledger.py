"""
ItemLedger -- the only writer of item stock and valuation.

Responsibility:
    Applies stock movements to items: receipts and their reversal (purchase
    settlement), issues and their release (day-end settlement).  Each
    movement updates stock and the valuation fields derived from it in the
    same step, so no caller can change one without the other.

Architecture position:
    Kernel > Services.  Flush-only; always runs inside a settlement owned by
    PurchaseService or DayEndReportService.

Invariants enforced:
    - Row locking: every mutation goes through ``lock_item``, which issues
      ``SELECT ... FOR UPDATE`` so concurrent settlements touching the same
      item serialize on PostgreSQL.
    - Non-negative stock: ``issue`` refuses to take stock below zero
      (NegativeStockError), the final safeguard after shortage collection.
    - total_inventory_value == weighted_avg_cost_price * current_stock_units,
      NULL when not positive.

Failure modes:
    - ItemNotFoundError if the item row does not exist.
    - NegativeStockError from ``issue``.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.dtos import PurchaseLineInput
from inventory_kernel.domain.valuation import (
    blend_weighted_average,
    opening_value,
    stock_value,
)
from inventory_kernel.exceptions import ItemNotFoundError, NegativeStockError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models import Item
from inventory_kernel.services.base import BaseService

logger = get_logger("services.item_ledger")

# Descriptive fields copied from a purchase line onto its item when given
_METADATA_FIELDS = (
    "brand_number",
    "brand",
    "product_type",
    "size_code",
    "pack_type",
    "units_per_pack",
    "pack_size_label",
    "category",
    "volume_ml",
    "reorder_level",
    "is_active",
)


class ItemLedger(BaseService):
    """Stock and valuation mutations for items."""

    def lock_item(self, item_id: UUID) -> Item:
        """
        Load an item with a row lock held until the transaction ends.

        Raises:
            ItemNotFoundError: No item with this id.
        """
        item = self.session.scalars(
            select(Item).where(Item.id == item_id).with_for_update()
        ).first()
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    def receive(
        self,
        item: Item,
        quantity: int,
        unit_cost: Decimal,
        unit_total_cost: Decimal,
    ) -> None:
        """
        Add received units and blend their cost into both averages.

        The old inventory value is the stored value when non-zero, else the
        old stock valued at the current average (or last purchase cost).
        Receiving stock reactivates the item.
        """
        old_stock = item.current_stock_units

        base = blend_weighted_average(
            old_stock,
            opening_value(
                item.total_inventory_value,
                old_stock,
                item.weighted_avg_cost_price,
                item.purchase_cost_price,
            ),
            quantity,
            unit_cost,
        )
        with_charges = blend_weighted_average(
            old_stock,
            opening_value(
                item.total_inventory_value_with_charges,
                old_stock,
                item.weighted_avg_total_cost_price,
                item.purchase_cost_price,
            ),
            quantity,
            unit_total_cost,
        )

        item.current_stock_units = old_stock + quantity
        item.is_active = True
        item.weighted_avg_cost_price = base.average
        item.total_inventory_value = base.total_value
        item.weighted_avg_total_cost_price = with_charges.average
        item.total_inventory_value_with_charges = with_charges.total_value

        logger.debug(
            "item_received",
            extra={
                "item_id": str(item.id),
                "quantity": quantity,
                "old_stock": old_stock,
                "new_stock": item.current_stock_units,
                "weighted_avg_cost_price": base.average,
            },
        )

    def reverse_receipt(self, item: Item, quantity: int) -> None:
        """
        Remove previously received units.

        Only stock changes here; the caller rebuilds the averages with
        InventoryReconciliationService once the purchase history is final.
        Stock may dip below zero in between (a rewrite can put the units
        back); PurchaseService refuses the settlement if it ends there.
        """
        item.current_stock_units -= quantity
        logger.debug(
            "item_receipt_reversed",
            extra={
                "item_id": str(item.id),
                "quantity": quantity,
                "new_stock": item.current_stock_units,
            },
        )

    def issue(self, item: Item, quantity: int) -> None:
        """
        Take sold units out of stock at the current average.

        Raises:
            NegativeStockError: Fewer than ``quantity`` units on hand.
        """
        available = item.current_stock_units
        new_stock = available - quantity
        if new_stock < 0:
            raise NegativeStockError(item.name, quantity, available)
        self._set_stock(item, new_stock)
        logger.debug(
            "item_issued",
            extra={"item_id": str(item.id), "quantity": quantity, "new_stock": new_stock},
        )

    def release(self, item: Item, quantity: int) -> None:
        """Return previously sold units to stock (report edit or delete)."""
        self._set_stock(item, item.current_stock_units + quantity)
        logger.debug(
            "item_released",
            extra={
                "item_id": str(item.id),
                "quantity": quantity,
                "new_stock": item.current_stock_units,
            },
        )

    def _set_stock(self, item: Item, new_stock: int) -> None:
        item.current_stock_units = new_stock
        item.total_inventory_value = stock_value(item.weighted_avg_cost_price, new_stock)
        item.total_inventory_value_with_charges = stock_value(
            item.weighted_avg_total_cost_price, new_stock
        )

    def apply_metadata(self, item: Item, line: PurchaseLineInput) -> None:
        """Copy the descriptive fields the line carries onto the item."""
        for field_name in _METADATA_FIELDS:
            value = getattr(line, field_name)
            if value is not None:
                setattr(item, field_name, value)

    def apply_latest_pricing(
        self,
        item: Item,
        unit_cost: Decimal,
        mrp_price: Decimal | None,
    ) -> None:
        """Record the newest purchase's unit cost and, when given, its MRP."""
        item.purchase_cost_price = unit_cost
        if mrp_price is not None:
            item.mrp_price = mrp_price
