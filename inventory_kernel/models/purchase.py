"""
Module: inventory_kernel.models.purchase
Responsibility: ORM persistence for purchases (stock inflow) and their lines.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Every line belongs to exactly one purchase; deleting a purchase deletes
      its lines (ORM cascade plus ON DELETE CASCADE on the foreign key).
    - quantity_units > 0 and unit_cost_price >= 0 (CHECK constraints).
    - line_number is unique within a purchase.

Failure modes:
    - IntegrityError on a line referencing a missing item.
    - IntegrityError on a CHECK violation (zero quantity, negative cost).
"""

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from inventory_kernel.models.item import Item


class Purchase(TrackedBase):
    """
    Purchase header: one supplier invoice.

    Contract:
        Created, rewritten and deleted only through PurchaseService, which
        keeps item stock and valuation consistent with the line set.

    Guarantees:
        - tax_amount and miscellaneous_charges are stored at money precision
          and apply to the purchase as a whole, not to a line.
    """

    __tablename__ = "purchases"

    __table_args__ = (
        Index("idx_purchase_date", "purchase_date"),
    )

    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)
    supplier_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    tax_amount: Mapped[Decimal | None] = mapped_column(Numeric(38, 4), nullable=True)
    miscellaneous_charges: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 4),
        nullable=True,
    )

    line_items: Mapped[list["PurchaseLineItem"]] = relationship(
        back_populates="purchase",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PurchaseLineItem.line_number",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Purchase {self.id} date={self.purchase_date}>"

    @property
    def total_charges(self) -> Decimal:
        """Tax plus miscellaneous charges (missing values count as zero)."""
        return (self.tax_amount or Decimal("0")) + (
            self.miscellaneous_charges or Decimal("0")
        )

    @property
    def base_value(self) -> Decimal:
        """Sum of unit cost times quantity over all lines."""
        return sum(
            (line.base_value for line in self.line_items),
            Decimal("0"),
        )


class PurchaseLineItem(TrackedBase):
    """
    One item received on a purchase.

    Contract:
        unit_cost_price is the invoice cost per unit; unit_total_cost_price
        adds this line's share of the purchase-level charges.

    Guarantees:
        - quantity_units > 0, unit_cost_price >= 0.
        - line_total_cost_with_charges == base value + allocated charges.
    """

    __tablename__ = "purchase_line_items"

    __table_args__ = (
        UniqueConstraint("purchase_id", "line_number", name="uq_purchase_line_number"),
        CheckConstraint("quantity_units > 0", name="ck_purchase_line_quantity_positive"),
        CheckConstraint("unit_cost_price >= 0", name="ck_purchase_line_cost_non_negative"),
        Index("idx_purchase_line_item", "item_id"),
        Index("idx_purchase_line_purchase", "purchase_id"),
    )

    purchase_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("purchases.id", ondelete="CASCADE"),
        nullable=False,
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("items.id"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    quantity_units: Mapped[int] = mapped_column(BigInteger, nullable=False)
    cases_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    units_per_case: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Invoice details captured as received
    pack_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    pack_size_label: Mapped[str | None] = mapped_column(String(100), nullable=True)
    brand_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    product_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    size_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    unit_cost_price: Mapped[Decimal] = mapped_column(Numeric(38, 4), nullable=False)
    case_cost_price: Mapped[Decimal | None] = mapped_column(Numeric(38, 4), nullable=True)
    line_total_price: Mapped[Decimal | None] = mapped_column(Numeric(38, 4), nullable=True)
    mrp_price_at_purchase: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 4),
        nullable=True,
    )

    # Share of the purchase-level charges (NULL when zero)
    allocated_tax_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 4),
        nullable=True,
    )
    allocated_misc_charges: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 4),
        nullable=True,
    )
    line_total_cost_with_charges: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 4),
        nullable=True,
    )
    unit_total_cost_price: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 4),
        nullable=True,
    )

    purchase: Mapped["Purchase"] = relationship(back_populates="line_items")
    item: Mapped["Item"] = relationship(back_populates="purchase_lines")

    def __repr__(self) -> str:
        return (
            f"<PurchaseLineItem {self.line_number} item={self.item_id} "
            f"qty={self.quantity_units}>"
        )

    @property
    def base_value(self) -> Decimal:
        return self.unit_cost_price * self.quantity_units
