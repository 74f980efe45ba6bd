"""
Module: inventory_kernel.models.day_end_report
Responsibility: ORM persistence for day-end sales reports (stock outflow) and
    their per-item sales lines.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - At most one report per business date (UNIQUE constraint
      uq_day_end_report_date).
    - quantity_sold_units > 0 (CHECK constraint).
    - Deleting a report deletes its lines.

Failure modes:
    - IntegrityError on a second report for the same date.  The settlement
      service checks first and raises DuplicateReportDateError; the
      constraint catches the race between two concurrent creates.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
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


class SalesChannel(str, Enum):
    """Where a unit was sold.

    RETAIL sells at MRP; BELT (off-premises resale) sells at MRP plus the
    belt markup unless an explicit price is given.
    """

    RETAIL = "RETAIL"
    BELT = "BELT"


class DayEndReport(TrackedBase):
    """
    Day-end report header: all sales of one business day.

    Contract:
        Aggregate totals are written by DayEndReportService from the prepared
        lines and never edited independently of them.

    Guarantees:
        - total_profit == total_sales_amount - total_cost.
        - total_net_profit == total_profit minus the proportional share of
          purchase tax and miscellaneous charges.
    """

    __tablename__ = "day_end_reports"

    __table_args__ = (
        UniqueConstraint("report_date", name="uq_day_end_report_date"),
    )

    report_date: Mapped[date] = mapped_column(Date, nullable=False)
    belt_markup_rupees: Mapped[Decimal] = mapped_column(Numeric(38, 4), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    total_units_sold: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_sales_amount: Mapped[Decimal] = mapped_column(Numeric(38, 4), nullable=False)
    retail_revenue: Mapped[Decimal] = mapped_column(Numeric(38, 4), nullable=False)
    belt_revenue: Mapped[Decimal] = mapped_column(Numeric(38, 4), nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(38, 4), nullable=False)
    total_profit: Mapped[Decimal] = mapped_column(Numeric(38, 4), nullable=False)
    total_net_profit: Mapped[Decimal | None] = mapped_column(Numeric(38, 4), nullable=True)

    lines: Mapped[list["DayEndReportLine"]] = relationship(
        back_populates="report",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="DayEndReportLine.line_number",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<DayEndReport {self.report_date} units={self.total_units_sold}>"


class DayEndReportLine(TrackedBase):
    """
    One item sold through one channel on a day-end report.

    Guarantees:
        - line_revenue == quantity_sold_units * selling_price_per_unit.
        - line_cost == quantity_sold_units * cost_price_at_sale.
        - cost_price_at_sale is frozen at settlement time; later purchases
          do not change the profit of a committed report.
    """

    __tablename__ = "day_end_report_lines"

    __table_args__ = (
        UniqueConstraint("report_id", "line_number", name="uq_day_end_line_number"),
        CheckConstraint("quantity_sold_units > 0", name="ck_day_end_line_quantity_positive"),
        Index("idx_day_end_line_item", "item_id"),
        Index("idx_day_end_line_report", "report_id"),
    )

    report_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("day_end_reports.id", ondelete="CASCADE"),
        nullable=False,
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("items.id"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    channel: Mapped[SalesChannel] = mapped_column(String(10), nullable=False)
    quantity_sold_units: Mapped[int] = mapped_column(BigInteger, nullable=False)

    mrp_price: Mapped[Decimal] = mapped_column(Numeric(38, 4), nullable=False)
    selling_price_per_unit: Mapped[Decimal] = mapped_column(Numeric(38, 4), nullable=False)
    cost_price_at_sale: Mapped[Decimal] = mapped_column(Numeric(38, 4), nullable=False)
    line_revenue: Mapped[Decimal] = mapped_column(Numeric(38, 4), nullable=False)
    line_cost: Mapped[Decimal] = mapped_column(Numeric(38, 4), nullable=False)
    line_profit: Mapped[Decimal] = mapped_column(Numeric(38, 4), nullable=False)
    line_net_profit: Mapped[Decimal | None] = mapped_column(Numeric(38, 4), nullable=True)

    report: Mapped["DayEndReport"] = relationship(back_populates="lines")
    item: Mapped["Item"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<DayEndReportLine {self.line_number} {self.channel} "
            f"item={self.item_id} qty={self.quantity_sold_units}>"
        )
