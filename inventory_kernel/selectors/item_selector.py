"""
Module: inventory_kernel.selectors.item_selector
Responsibility: Read access to items: lookup, low-stock alerts and the
    store-wide inventory valuation.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import select

from inventory_kernel.db.types import ZERO
from inventory_kernel.domain.dtos import InventoryValuation, ItemInfo
from inventory_kernel.models import Item
from inventory_kernel.selectors.base import BaseSelector
from inventory_kernel.selectors.settings_selector import SettingsSelector


class ItemSelector(BaseSelector):
    """Read-only queries over items."""

    def get_item(self, item_id: UUID) -> ItemInfo | None:
        item = self.session.get(Item, item_id)
        if item is None:
            return None
        return ItemInfo.from_model(item)

    def get_item_by_sku(self, sku: str) -> ItemInfo | None:
        item = self.session.scalars(select(Item).where(Item.sku == sku)).first()
        if item is None:
            return None
        return ItemInfo.from_model(item)

    def list_items(self, include_inactive: bool = False) -> list[ItemInfo]:
        stmt = select(Item).order_by(Item.name, Item.sku)
        if not include_inactive:
            stmt = stmt.where(Item.is_active.is_(True))
        return [ItemInfo.from_model(item) for item in self.session.scalars(stmt)]

    def list_low_stock(self, threshold: int | None = None) -> list[ItemInfo]:
        """
        Active items at or below their alert level.

        An item's own reorder_level wins; items without one are compared to
        ``threshold`` (the store-wide setting when not given).  Lowest stock
        first.
        """
        if threshold is None:
            threshold = SettingsSelector(self.session).get_settings().default_low_stock_threshold

        stmt = (
            select(Item)
            .where(Item.is_active.is_(True))
            .order_by(Item.current_stock_units, Item.name)
        )
        low = []
        for item in self.session.scalars(stmt):
            level = item.reorder_level if item.reorder_level is not None else threshold
            if item.current_stock_units <= level:
                low.append(ItemInfo.from_model(item))
        return low

    def inventory_valuation(self) -> InventoryValuation:
        """Stock units and inventory value summed over active items."""
        stmt = select(
            Item.current_stock_units,
            Item.total_inventory_value,
            Item.total_inventory_value_with_charges,
        ).where(Item.is_active.is_(True))

        item_count = 0
        total_units = 0
        total_value = ZERO
        total_with_charges = ZERO
        for units, value, value_with_charges in self.session.execute(stmt):
            item_count += 1
            total_units += units
            total_value += value or ZERO
            total_with_charges += value_with_charges or ZERO

        return InventoryValuation(
            item_count=item_count,
            total_units=total_units,
            total_value=total_value,
            total_value_with_charges=total_with_charges,
        )
