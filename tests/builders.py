"""Builders for settlement inputs used across the test suite."""

from decimal import Decimal

from inventory_kernel.domain.dtos import (
    DayEndLineInput,
    DayEndReportInput,
    PurchaseInput,
    PurchaseLineInput,
)
from inventory_kernel.models import SalesChannel

DEFAULT_SKU = "WHISKY-750"


def purchase_line(
    quantity: int = 10,
    unit_cost: str | Decimal = "80",
    mrp: str | Decimal = "100",
    **kwargs,
) -> PurchaseLineInput:
    """A purchase line; pass sku=/name=/item_id= to pick the item."""
    if "item_id" not in kwargs:
        kwargs.setdefault("sku", DEFAULT_SKU)
        kwargs.setdefault("name", "Test Whisky 750ml")
    return PurchaseLineInput(
        quantity_units=quantity,
        unit_cost_price=Decimal(str(unit_cost)),
        mrp_price=Decimal(str(mrp)),
        **kwargs,
    )


def purchase_input(
    *lines: PurchaseLineInput,
    purchase_date: str = "2024-01-01",
    **kwargs,
) -> PurchaseInput:
    return PurchaseInput(
        purchase_date=purchase_date,
        line_items=lines or (purchase_line(),),
        **kwargs,
    )


def sale(
    quantity: int,
    sku: str = DEFAULT_SKU,
    channel: SalesChannel = SalesChannel.RETAIL,
    **kwargs,
) -> DayEndLineInput:
    return DayEndLineInput(
        channel=channel,
        quantity_sold_units=quantity,
        sku=sku,
        **kwargs,
    )


def report_input(
    *lines: DayEndLineInput,
    report_date: str = "2024-01-02",
    **kwargs,
) -> DayEndReportInput:
    return DayEndReportInput(report_date=report_date, lines=lines, **kwargs)
