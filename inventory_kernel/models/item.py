"""
Module: inventory_kernel.models.item
Responsibility: ORM persistence for stocked items and their running valuation
    (stock on hand, weighted-average cost, latest prices, inventory value).
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - SKU uniqueness (UNIQUE constraint uq_item_sku).
    - current_stock_units equals purchased units minus sold units plus
      adjustment units once a settlement has committed; it is never negative
      at rest.  The ItemLedger service is the only writer of the valuation
      columns.
    - Derived valuation columns (weighted averages, inventory values) are NULL
      rather than zero or negative.

Failure modes:
    - IntegrityError on duplicate sku.
"""

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase

if TYPE_CHECKING:
    from inventory_kernel.models.purchase import PurchaseLineItem


class Item(TrackedBase):
    """
    A sellable product (one brand in one size and pack).

    Contract:
        Identity is the SKU; brand_number + size_code (+ pack_type) is the
        secondary natural key used when supplier invoices carry no SKU.

    Guarantees:
        - current_stock_units >= 0 after every committed settlement.
        - weighted_avg_cost_price blends every purchase line's unit cost by
          quantity; weighted_avg_total_cost_price does the same with the
          purchase-level tax and miscellaneous charges included.
        - total_inventory_value == weighted_avg_cost_price * current_stock_units
          (NULL when not positive).

    Non-goals:
        - Does NOT track cost layers (no FIFO/LIFO); one average per item.
    """

    __tablename__ = "items"

    __table_args__ = (
        UniqueConstraint("sku", name="uq_item_sku"),
        Index("idx_item_brand_size", "brand_number", "size_code"),
        Index("idx_item_active", "is_active"),
    )

    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Descriptive metadata, mostly copied from supplier invoices
    brand: Mapped[str | None] = mapped_column(String(255), nullable=True)
    brand_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    product_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    size_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    pack_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    units_per_pack: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pack_size_label: Mapped[str | None] = mapped_column(String(100), nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    volume_ml: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Current retail price (maximum retail price printed on the bottle)
    mrp_price: Mapped[Decimal] = mapped_column(Numeric(38, 4), nullable=False)

    # Unit cost from the most recent purchase by purchase date
    purchase_cost_price: Mapped[Decimal] = mapped_column(Numeric(38, 4), nullable=False)

    weighted_avg_cost_price: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 4),
        nullable=True,
    )

    # Weighted average including allocated tax and miscellaneous charges
    weighted_avg_total_cost_price: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 4),
        nullable=True,
    )

    current_stock_units: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    total_inventory_value: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 4),
        nullable=True,
    )

    total_inventory_value_with_charges: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 4),
        nullable=True,
    )

    # Per-item low stock threshold; falls back to the store-wide setting
    reorder_level: Mapped[int | None] = mapped_column(Integer, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    purchase_lines: Mapped[list["PurchaseLineItem"]] = relationship(
        back_populates="item",
        lazy="select",
    )

    def __repr__(self) -> str:
        return f"<Item {self.sku} stock={self.current_stock_units}>"

    @property
    def unit_cost_basis(self) -> Decimal:
        """Cost per unit used to value a sale.

        Postconditions: weighted average if set, else latest purchase cost,
            else zero.
        """
        if self.weighted_avg_cost_price is not None:
            return self.weighted_avg_cost_price
        if self.purchase_cost_price is not None:
            return self.purchase_cost_price
        return Decimal("0")
