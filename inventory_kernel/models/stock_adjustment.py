"""
Module: inventory_kernel.models.stock_adjustment
Responsibility: ORM persistence for manual stock corrections (breakage,
    counting differences, opening balances).
Architecture position: Kernel > Models.  May import from db/ only.

Adjustments are written by the back-office collaborator, never by the
settlement services.  InventoryReconciliationService adds them to the
purchase/sale history when it rebuilds an item's stock.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import BigInteger, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from inventory_kernel.models.item import Item


class StockAdjustment(TrackedBase):
    """A signed correction to an item's stock (positive adds units)."""

    __tablename__ = "stock_adjustments"

    __table_args__ = (
        Index("idx_stock_adjustment_item", "item_id"),
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("items.id"),
        nullable=False,
    )

    adjustment_units: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    item: Mapped["Item"] = relationship()

    def __repr__(self) -> str:
        return f"<StockAdjustment item={self.item_id} units={self.adjustment_units:+d}>"
