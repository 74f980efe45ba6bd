"""
Module: inventory_kernel.selectors.purchase_history_selector
Responsibility: Read access to purchase history for settlement decisions:
    pricing precedence, weighted-average rebuilds and the tax/misc totals
    used for net-profit allocation.
Architecture position: Kernel > Selectors.

Every call queries the session afresh; nothing is cached between
settlements.  Money aggregates are summed in Python over Decimal column
values rather than with SQL SUM, so results are exact on every backend.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.db.types import ZERO
from inventory_kernel.domain.dtos import PurchaseInfo, PurchaseLineInfo
from inventory_kernel.models import Purchase, PurchaseLineItem
from inventory_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class PurchaseChargeTotals:
    """Item cost and tax/misc of every purchase dated on or before a day."""

    as_of: date
    total_item_costs: Decimal
    total_tax_misc: Decimal


@dataclass(frozen=True)
class Receipt:
    """One purchase line's contribution to an item's average cost."""

    unit_cost_price: Decimal
    unit_total_cost_price: Decimal | None
    quantity_units: int

    def as_tuple(self) -> tuple[Decimal, Decimal | None, int]:
        return (self.unit_cost_price, self.unit_total_cost_price, self.quantity_units)


class PurchaseHistorySelector(BaseSelector):
    """Read-only queries over purchases and purchase lines."""

    def get_purchase(self, purchase_id: UUID) -> PurchaseInfo | None:
        purchase = self.session.get(Purchase, purchase_id)
        if purchase is None:
            return None
        return PurchaseInfo.from_model(purchase)

    def list_purchases(
        self,
        start: date | None = None,
        end: date | None = None,
    ) -> list[PurchaseInfo]:
        """Purchases in date order, optionally bounded (inclusive)."""
        stmt = select(Purchase).order_by(Purchase.purchase_date, Purchase.created_at)
        if start is not None:
            stmt = stmt.where(Purchase.purchase_date >= start)
        if end is not None:
            stmt = stmt.where(Purchase.purchase_date <= end)
        return [PurchaseInfo.from_model(p) for p in self.session.scalars(stmt)]

    def latest_purchase_date(self, item_id: UUID) -> date | None:
        """Most recent purchase date among the item's purchase lines."""
        stmt = (
            select(Purchase.purchase_date)
            .join(PurchaseLineItem, PurchaseLineItem.purchase_id == Purchase.id)
            .where(PurchaseLineItem.item_id == item_id)
            .order_by(Purchase.purchase_date.desc())
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def latest_line(self, item_id: UUID) -> PurchaseLineInfo | None:
        """
        The item's most recent purchase line.

        Ordered by purchase date, then purchase creation time, then line
        number, all descending, so same-day purchases resolve deterministically.
        """
        stmt = (
            select(PurchaseLineItem)
            .join(Purchase, PurchaseLineItem.purchase_id == Purchase.id)
            .where(PurchaseLineItem.item_id == item_id)
            .order_by(
                Purchase.purchase_date.desc(),
                Purchase.created_at.desc(),
                PurchaseLineItem.line_number.desc(),
            )
            .limit(1)
        )
        line = self.session.scalars(stmt).first()
        if line is None:
            return None
        return PurchaseLineInfo.from_model(line)

    def receipts(self, item_id: UUID) -> list[Receipt]:
        """Every purchase line of the item, oldest purchase first."""
        stmt = (
            select(
                PurchaseLineItem.unit_cost_price,
                PurchaseLineItem.unit_total_cost_price,
                PurchaseLineItem.quantity_units,
            )
            .join(Purchase, PurchaseLineItem.purchase_id == Purchase.id)
            .where(PurchaseLineItem.item_id == item_id)
            .order_by(Purchase.purchase_date, PurchaseLineItem.line_number)
        )
        return [
            Receipt(unit_cost_price=cost, unit_total_cost_price=total, quantity_units=qty)
            for cost, total, qty in self.session.execute(stmt)
        ]

    def charge_totals_up_to(self, as_of: date) -> PurchaseChargeTotals:
        """Sum item cost and tax/misc over purchases dated on or before ``as_of``."""
        item_costs = ZERO
        line_stmt = (
            select(PurchaseLineItem.unit_cost_price, PurchaseLineItem.quantity_units)
            .join(Purchase, PurchaseLineItem.purchase_id == Purchase.id)
            .where(Purchase.purchase_date <= as_of)
        )
        for unit_cost, quantity in self.session.execute(line_stmt):
            item_costs += unit_cost * quantity

        tax_misc = ZERO
        header_stmt = select(
            Purchase.tax_amount, Purchase.miscellaneous_charges
        ).where(Purchase.purchase_date <= as_of)
        for tax, misc in self.session.execute(header_stmt):
            tax_misc += (tax or ZERO) + (misc or ZERO)

        return PurchaseChargeTotals(
            as_of=as_of,
            total_item_costs=item_costs,
            total_tax_misc=tax_misc,
        )
