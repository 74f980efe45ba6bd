"""
Data Transfer Objects for the inventory kernel.

Inputs are validated and normalized on construction (``__post_init__``), so
services can trust quantities and money values they receive.  Outputs are
frozen snapshots of ORM rows; services and selectors never hand ORM entities
across the kernel boundary.

from_model() class methods are the boundary converters from ORM rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from inventory_kernel.db.types import ZERO, normalize_money, normalize_optional_money
from inventory_kernel.domain.dates import parse_business_date
from inventory_kernel.exceptions import InvalidLineError
from inventory_kernel.models.day_end_report import SalesChannel

if TYPE_CHECKING:
    from inventory_kernel.models import (
        DayEndReport,
        DayEndReportLine,
        Item,
        Purchase,
        PurchaseLineItem,
    )


def _require_positive_units(field_name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidLineError(field_name, value, "must be a positive whole number")


def _require_non_negative(field_name: str, value: Decimal | None) -> None:
    if value is not None and value < ZERO:
        raise InvalidLineError(field_name, value, "must not be negative")


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PurchaseLineInput:
    """
    One line of a purchase as received from the caller.

    Item identity is resolved in order: item_id, sku, then
    (brand_number, size_code[, pack_type]).  The descriptive fields are also
    used to create the item when it does not exist yet, and are copied onto
    an existing item when given (None means "not given").
    """

    quantity_units: int
    unit_cost_price: Decimal
    mrp_price: Decimal
    item_id: UUID | None = None
    sku: str | None = None
    name: str | None = None
    brand: str | None = None
    brand_number: str | None = None
    product_type: str | None = None
    size_code: str | None = None
    pack_type: str | None = None
    pack_size_label: str | None = None
    units_per_pack: int | None = None
    cases_quantity: int | None = None
    category: str | None = None
    volume_ml: int | None = None
    case_cost_price: Decimal | None = None
    line_total_price: Decimal | None = None
    reorder_level: int | None = None
    is_active: bool | None = None

    def __post_init__(self) -> None:
        _require_positive_units("quantity_units", self.quantity_units)
        object.__setattr__(self, "unit_cost_price", normalize_money(self.unit_cost_price))
        object.__setattr__(self, "mrp_price", normalize_money(self.mrp_price))
        object.__setattr__(
            self, "case_cost_price", normalize_optional_money(self.case_cost_price)
        )
        object.__setattr__(
            self, "line_total_price", normalize_optional_money(self.line_total_price)
        )
        _require_non_negative("unit_cost_price", self.unit_cost_price)
        _require_non_negative("mrp_price", self.mrp_price)
        _require_non_negative("case_cost_price", self.case_cost_price)
        _require_non_negative("line_total_price", self.line_total_price)
        if self.cases_quantity is not None and self.cases_quantity < 0:
            raise InvalidLineError("cases_quantity", self.cases_quantity, "must not be negative")
        if self.units_per_pack is not None and self.units_per_pack <= 0:
            raise InvalidLineError("units_per_pack", self.units_per_pack, "must be positive")

    @property
    def base_value(self) -> Decimal:
        return self.unit_cost_price * self.quantity_units


@dataclass(frozen=True)
class PurchaseInput:
    """A purchase (supplier invoice) to create or to replace an existing one with."""

    purchase_date: date
    line_items: tuple[PurchaseLineInput, ...]
    supplier_name: str | None = None
    notes: str | None = None
    tax_amount: Decimal | None = None
    miscellaneous_charges: Decimal | None = None
    allow_item_creation: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "purchase_date", parse_business_date(self.purchase_date))
        object.__setattr__(self, "line_items", tuple(self.line_items))
        object.__setattr__(self, "tax_amount", normalize_optional_money(self.tax_amount))
        object.__setattr__(
            self,
            "miscellaneous_charges",
            normalize_optional_money(self.miscellaneous_charges),
        )
        _require_non_negative("tax_amount", self.tax_amount)
        _require_non_negative("miscellaneous_charges", self.miscellaneous_charges)

    @property
    def total_base_value(self) -> Decimal:
        return sum((line.base_value for line in self.line_items), ZERO)


@dataclass(frozen=True)
class DayEndLineInput:
    """One sales line: an item sold through one channel."""

    channel: SalesChannel
    quantity_sold_units: int
    item_id: UUID | None = None
    sku: str | None = None
    selling_price_per_unit: Decimal | None = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "channel", SalesChannel(self.channel))
        except ValueError as exc:
            raise InvalidLineError("channel", self.channel, "must be RETAIL or BELT") from exc
        _require_positive_units("quantity_sold_units", self.quantity_sold_units)
        object.__setattr__(
            self,
            "selling_price_per_unit",
            normalize_optional_money(self.selling_price_per_unit),
        )
        _require_non_negative("selling_price_per_unit", self.selling_price_per_unit)


@dataclass(frozen=True)
class DayEndReportInput:
    """All sales of one business day."""

    report_date: date
    lines: tuple[DayEndLineInput, ...]
    belt_markup_rupees: Decimal | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "report_date", parse_business_date(self.report_date))
        object.__setattr__(self, "lines", tuple(self.lines))
        object.__setattr__(
            self,
            "belt_markup_rupees",
            normalize_optional_money(self.belt_markup_rupees),
        )
        _require_non_negative("belt_markup_rupees", self.belt_markup_rupees)


# ---------------------------------------------------------------------------
# Settlement intermediates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Shortage:
    """An item whose requested sale quantity exceeds available stock."""

    item_id: UUID
    item_name: str
    required: int
    available: int


@dataclass(frozen=True)
class PreparedLine:
    """A sales line with its item resolved and its money computed."""

    item_id: UUID
    item_name: str
    sku: str
    channel: SalesChannel
    quantity_sold_units: int
    mrp_price: Decimal
    selling_price_per_unit: Decimal
    line_revenue: Decimal
    cost_price_at_sale: Decimal
    line_cost: Decimal
    line_profit: Decimal


@dataclass
class ItemDemand:
    """Units of one item requested across all lines of a report."""

    item_id: UUID
    item_name: str
    quantity: int
    available: int


@dataclass(frozen=True)
class PreparedSales:
    lines: tuple[PreparedLine, ...]
    demand: dict[UUID, ItemDemand]
    shortages: tuple[Shortage, ...]


@dataclass(frozen=True)
class SalesSummary:
    """Totals over the prepared lines of a report (before tax/misc allocation)."""

    total_revenue: Decimal
    total_units: int
    retail_revenue: Decimal
    belt_revenue: Decimal
    total_cost: Decimal
    total_profit: Decimal
    profit_margin: Decimal


@dataclass(frozen=True)
class NetProfitAllocation:
    """Share of historical purchase tax/misc charged against one report."""

    total_purchase_item_costs: Decimal
    total_purchase_tax_misc: Decimal
    ratio: Decimal
    allocated_tax_misc: Decimal
    total_net_profit: Decimal


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ItemInfo:
    """Snapshot of an item and its valuation."""

    id: UUID
    sku: str
    name: str
    brand: str | None
    brand_number: str | None
    size_code: str | None
    pack_type: str | None
    category: str | None
    mrp_price: Decimal
    purchase_cost_price: Decimal
    weighted_avg_cost_price: Decimal | None
    weighted_avg_total_cost_price: Decimal | None
    current_stock_units: int
    total_inventory_value: Decimal | None
    total_inventory_value_with_charges: Decimal | None
    reorder_level: int | None
    is_active: bool

    @classmethod
    def from_model(cls, item: Item) -> ItemInfo:
        return cls(
            id=item.id,
            sku=item.sku,
            name=item.name,
            brand=item.brand,
            brand_number=item.brand_number,
            size_code=item.size_code,
            pack_type=item.pack_type,
            category=item.category,
            mrp_price=item.mrp_price,
            purchase_cost_price=item.purchase_cost_price,
            weighted_avg_cost_price=item.weighted_avg_cost_price,
            weighted_avg_total_cost_price=item.weighted_avg_total_cost_price,
            current_stock_units=item.current_stock_units,
            total_inventory_value=item.total_inventory_value,
            total_inventory_value_with_charges=item.total_inventory_value_with_charges,
            reorder_level=item.reorder_level,
            is_active=item.is_active,
        )


@dataclass(frozen=True)
class PurchaseLineInfo:
    id: UUID
    line_number: int
    item_id: UUID
    quantity_units: int
    unit_cost_price: Decimal
    mrp_price_at_purchase: Decimal | None
    cases_quantity: int | None
    units_per_case: int | None
    case_cost_price: Decimal | None
    line_total_price: Decimal | None
    allocated_tax_amount: Decimal | None
    allocated_misc_charges: Decimal | None
    line_total_cost_with_charges: Decimal | None
    unit_total_cost_price: Decimal | None

    @classmethod
    def from_model(cls, line: PurchaseLineItem) -> PurchaseLineInfo:
        return cls(
            id=line.id,
            line_number=line.line_number,
            item_id=line.item_id,
            quantity_units=line.quantity_units,
            unit_cost_price=line.unit_cost_price,
            mrp_price_at_purchase=line.mrp_price_at_purchase,
            cases_quantity=line.cases_quantity,
            units_per_case=line.units_per_case,
            case_cost_price=line.case_cost_price,
            line_total_price=line.line_total_price,
            allocated_tax_amount=line.allocated_tax_amount,
            allocated_misc_charges=line.allocated_misc_charges,
            line_total_cost_with_charges=line.line_total_cost_with_charges,
            unit_total_cost_price=line.unit_total_cost_price,
        )


@dataclass(frozen=True)
class PurchaseInfo:
    id: UUID
    purchase_date: date
    supplier_name: str | None
    notes: str | None
    tax_amount: Decimal | None
    miscellaneous_charges: Decimal | None
    created_at: datetime | None
    lines: tuple[PurchaseLineInfo, ...] = field(default_factory=tuple)

    @classmethod
    def from_model(cls, purchase: Purchase) -> PurchaseInfo:
        return cls(
            id=purchase.id,
            purchase_date=purchase.purchase_date,
            supplier_name=purchase.supplier_name,
            notes=purchase.notes,
            tax_amount=purchase.tax_amount,
            miscellaneous_charges=purchase.miscellaneous_charges,
            created_at=purchase.created_at,
            lines=tuple(PurchaseLineInfo.from_model(line) for line in purchase.line_items),
        )


@dataclass(frozen=True)
class PurchaseTotals:
    total_quantity: int
    line_count: int


@dataclass(frozen=True)
class PurchaseResult:
    """Result of creating or rewriting a purchase."""

    purchase: PurchaseInfo
    totals: PurchaseTotals


@dataclass(frozen=True)
class DayEndReportLineInfo:
    id: UUID
    line_number: int
    item_id: UUID
    channel: SalesChannel
    quantity_sold_units: int
    mrp_price: Decimal
    selling_price_per_unit: Decimal
    cost_price_at_sale: Decimal
    line_revenue: Decimal
    line_cost: Decimal
    line_profit: Decimal
    line_net_profit: Decimal | None

    @classmethod
    def from_model(cls, line: DayEndReportLine) -> DayEndReportLineInfo:
        return cls(
            id=line.id,
            line_number=line.line_number,
            item_id=line.item_id,
            channel=SalesChannel(line.channel),
            quantity_sold_units=line.quantity_sold_units,
            mrp_price=line.mrp_price,
            selling_price_per_unit=line.selling_price_per_unit,
            cost_price_at_sale=line.cost_price_at_sale,
            line_revenue=line.line_revenue,
            line_cost=line.line_cost,
            line_profit=line.line_profit,
            line_net_profit=line.line_net_profit,
        )


@dataclass(frozen=True)
class DayEndReportInfo:
    id: UUID
    report_date: date
    belt_markup_rupees: Decimal
    notes: str | None
    total_units_sold: int
    total_sales_amount: Decimal
    retail_revenue: Decimal
    belt_revenue: Decimal
    total_cost: Decimal
    total_profit: Decimal
    total_net_profit: Decimal | None
    lines: tuple[DayEndReportLineInfo, ...] = field(default_factory=tuple)

    @classmethod
    def from_model(cls, report: DayEndReport) -> DayEndReportInfo:
        return cls(
            id=report.id,
            report_date=report.report_date,
            belt_markup_rupees=report.belt_markup_rupees,
            notes=report.notes,
            total_units_sold=report.total_units_sold,
            total_sales_amount=report.total_sales_amount,
            retail_revenue=report.retail_revenue,
            belt_revenue=report.belt_revenue,
            total_cost=report.total_cost,
            total_profit=report.total_profit,
            total_net_profit=report.total_net_profit,
            lines=tuple(DayEndReportLineInfo.from_model(line) for line in report.lines),
        )


@dataclass(frozen=True)
class DayEndPreview:
    """What a report would settle to, without touching stock."""

    summary: SalesSummary
    shortages: tuple[Shortage, ...]
    belt_markup_rupees: Decimal

    @property
    def can_commit(self) -> bool:
        return not self.shortages


@dataclass(frozen=True)
class DayEndReportResult:
    """Result of creating or rewriting a day-end report."""

    report: DayEndReportInfo
    summary: SalesSummary


@dataclass(frozen=True)
class InventoryValuation:
    """Stock and value totals across active items."""

    item_count: int
    total_units: int
    total_value: Decimal
    total_value_with_charges: Decimal


@dataclass(frozen=True)
class SettingsInfo:
    """Effective store-wide settings.

    is_default is True when no Setting row exists and the values come from
    the shipped YAML defaults.
    """

    default_belt_markup_rupees: Decimal
    default_low_stock_threshold: int
    is_default: bool = False
