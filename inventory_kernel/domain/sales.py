"""
Day-end sales arithmetic.

Pure functions over Decimal: pricing a sales line, summarizing a report,
collecting stock shortages and charging historical purchase tax/misc against
a report's net profit.

Net-profit allocation
---------------------
Purchase tax and miscellaneous charges are not part of the weighted-average
cost used for gross profit.  Each report instead absorbs a share of all
charges paid on purchases dated on or before the report date, in proportion
to the item cost it consumed:

    ratio      = report total_cost / sum(unit_cost * qty over those purchases)
    allocated  = sum(tax + misc over those purchases) * ratio
    net profit = gross profit - allocated

Each line takes ``allocated * line_cost / total_cost``.
"""

from collections.abc import Iterable
from decimal import Decimal

from inventory_kernel.db.types import ZERO, normalize_money
from inventory_kernel.domain.dtos import (
    ItemDemand,
    NetProfitAllocation,
    PreparedLine,
    SalesSummary,
    Shortage,
)
from inventory_kernel.models.day_end_report import SalesChannel

HUNDRED = Decimal("100")


def selling_price(
    channel: SalesChannel,
    mrp_price: Decimal,
    belt_markup: Decimal,
    override: Decimal | None = None,
) -> Decimal:
    """Explicit price, else MRP for RETAIL, else MRP plus belt markup."""
    if override is not None:
        return override
    if channel == SalesChannel.RETAIL:
        return mrp_price
    return mrp_price + belt_markup


def price_line(
    *,
    item_id,
    item_name: str,
    sku: str,
    channel: SalesChannel,
    quantity: int,
    mrp_price: Decimal,
    unit_cost: Decimal,
    belt_markup: Decimal,
    override: Decimal | None = None,
) -> PreparedLine:
    price = selling_price(channel, mrp_price, belt_markup, override)
    revenue = price * quantity
    cost = unit_cost * quantity
    return PreparedLine(
        item_id=item_id,
        item_name=item_name,
        sku=sku,
        channel=channel,
        quantity_sold_units=quantity,
        mrp_price=mrp_price,
        selling_price_per_unit=price,
        line_revenue=revenue,
        cost_price_at_sale=unit_cost,
        line_cost=cost,
        line_profit=revenue - cost,
    )


def summarize(lines: Iterable[PreparedLine]) -> SalesSummary:
    total_revenue = ZERO
    total_units = 0
    retail_revenue = ZERO
    belt_revenue = ZERO
    total_cost = ZERO
    total_profit = ZERO

    for line in lines:
        total_revenue += line.line_revenue
        total_units += line.quantity_sold_units
        total_cost += line.line_cost
        total_profit += line.line_profit
        if line.channel == SalesChannel.RETAIL:
            retail_revenue += line.line_revenue
        else:
            belt_revenue += line.line_revenue

    margin = (
        normalize_money(total_profit / total_revenue * HUNDRED)
        if total_revenue > ZERO
        else ZERO
    )
    return SalesSummary(
        total_revenue=normalize_money(total_revenue),
        total_units=total_units,
        retail_revenue=normalize_money(retail_revenue),
        belt_revenue=normalize_money(belt_revenue),
        total_cost=normalize_money(total_cost),
        total_profit=normalize_money(total_profit),
        profit_margin=margin,
    )


def find_shortages(demand: Iterable[ItemDemand]) -> tuple[Shortage, ...]:
    """Every item asked for more units than are available, in request order."""
    return tuple(
        Shortage(
            item_id=d.item_id,
            item_name=d.item_name,
            required=d.quantity,
            available=d.available,
        )
        for d in demand
        if d.quantity > d.available
    )


def allocate_net_profit(
    summary: SalesSummary,
    total_purchase_item_costs: Decimal,
    total_purchase_tax_misc: Decimal,
) -> NetProfitAllocation:
    ratio = (
        summary.total_cost / total_purchase_item_costs
        if total_purchase_item_costs > ZERO
        else ZERO
    )
    allocated = total_purchase_tax_misc * ratio
    return NetProfitAllocation(
        total_purchase_item_costs=total_purchase_item_costs,
        total_purchase_tax_misc=total_purchase_tax_misc,
        ratio=ratio,
        allocated_tax_misc=allocated,
        total_net_profit=normalize_money(summary.total_profit - allocated),
    )


def line_net_profit(
    line: PreparedLine,
    allocation: NetProfitAllocation,
    total_cost: Decimal,
) -> Decimal:
    """Line profit less its cost-proportional share; zero share when total cost is zero."""
    if total_cost > ZERO:
        share = allocation.allocated_tax_misc * (line.line_cost / total_cost)
    else:
        share = ZERO
    return normalize_money(line.line_profit - share)
